"""Tests for provider adapters: request shapes and pre-flight errors."""

import pytest

from llm import InvalidEndpointError, MissingCredentialError
from llm.providers.gemini import GEMINI_BASE_URL, GenerateContentAdapter
from llm.providers.openai import DEEPSEEK_BASE_URL, ChatCompletionAdapter
from llm.streaming import ConcatenatedObjectDecoder, SSELineDecoder
from shared_types import AIProvider


class TestChatCompletionAdapter:
    def test_stream_request(self):
        adapter = ChatCompletionAdapter(api_key="sk-test", model="gpt-4o-mini")
        req = adapter.build_request("sys", "usr", stream=True)

        assert req.method == "POST"
        assert req.url == "https://api.openai.com/v1/chat/completions"
        assert req.headers["Authorization"] == "Bearer sk-test"
        assert req.json == {
            "model": "gpt-4o-mini",
            "messages": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "usr"},
            ],
            "stream": True,
            "max_tokens": 4096,
        }

    def test_json_mode_non_stream(self):
        adapter = ChatCompletionAdapter(api_key="sk-test")
        req = adapter.build_request("sys", "usr", stream=False, json_mode=True)
        assert req.json["stream"] is False
        assert req.json["response_format"] == {"type": "json_object"}

    def test_json_mode_ignored_when_streaming(self):
        adapter = ChatCompletionAdapter(api_key="sk-test")
        req = adapter.build_request("sys", "usr", stream=True, json_mode=True)
        assert "response_format" not in req.json

    def test_deepseek_default_base_url(self):
        adapter = ChatCompletionAdapter(api_key="k", provider=AIProvider.DEEPSEEK)
        assert adapter.build_request("s", "u").url == f"{DEEPSEEK_BASE_URL}/chat/completions"
        assert adapter.provider_name == "deepseek"

    def test_custom_base_url_trailing_slash(self):
        adapter = ChatCompletionAdapter(
            api_key="k", base_url="http://localhost:8080/v1/", provider=AIProvider.CUSTOM
        )
        assert adapter.build_request("s", "u").url == "http://localhost:8080/v1/chat/completions"

    def test_missing_key(self):
        adapter = ChatCompletionAdapter(api_key=None)
        with pytest.raises(MissingCredentialError):
            adapter.build_request("s", "u")
        with pytest.raises(MissingCredentialError):
            adapter.build_probe_request()

    @pytest.mark.parametrize("base_url", ["not a url", "ftp://host/v1", "https://"])
    def test_invalid_endpoint(self, base_url):
        adapter = ChatCompletionAdapter(api_key="k", base_url=base_url)
        with pytest.raises(InvalidEndpointError):
            adapter.build_request("s", "u")

    def test_probe_request(self):
        adapter = ChatCompletionAdapter(api_key="k", model="m")
        req = adapter.build_probe_request(timeout=15.0)
        assert req.json == {"model": "m", "messages": [{"role": "user", "content": "Hi"}], "max_tokens": 1}
        assert req.timeout == 15.0

    def test_decoder(self):
        assert isinstance(ChatCompletionAdapter(api_key="k").create_decoder(), SSELineDecoder)


class TestGenerateContentAdapter:
    def test_stream_request(self):
        adapter = GenerateContentAdapter(api_key="g-key", model="gemini-2.5-flash")
        req = adapter.build_request("sys", "usr", stream=True)

        assert req.url == (
            f"{GEMINI_BASE_URL}/models/gemini-2.5-flash:streamGenerateContent?key=g-key"
        )
        assert "Authorization" not in req.headers
        assert req.json == {
            "contents": [{"parts": [{"text": "usr"}]}],
            "system_instruction": {"parts": [{"text": "sys"}]},
        }

    def test_json_mode_non_stream(self):
        adapter = GenerateContentAdapter(api_key="g-key")
        req = adapter.build_request("sys", "usr", stream=False, json_mode=True)
        assert ":generateContent?key=" in req.url
        assert req.json["generationConfig"] == {"response_mime_type": "application/json"}

    def test_key_is_url_encoded(self):
        adapter = GenerateContentAdapter(api_key="a/b&c")
        assert adapter.build_request("s", "u").url.endswith("?key=a%2Fb%26c")

    def test_probe_lists_models(self):
        req = GenerateContentAdapter(api_key="g").build_probe_request(timeout=15.0)
        assert req.method == "GET"
        assert req.url == f"{GEMINI_BASE_URL}/models?key=g"
        assert req.timeout == 15.0

    def test_missing_key(self):
        with pytest.raises(MissingCredentialError):
            GenerateContentAdapter(api_key="").build_request("s", "u")

    def test_decoder(self):
        decoder = GenerateContentAdapter(api_key="k").create_decoder()
        assert isinstance(decoder, ConcatenatedObjectDecoder)
