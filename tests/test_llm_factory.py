"""Tests for adapter factory and env-var key lookup."""

import pytest

from cli.config_models import LLMConfig
from llm import LLMClient, LLMError, create_adapter, create_llm_client
from llm.providers.gemini import GenerateContentAdapter
from llm.providers.openai import ChatCompletionAdapter


class TestCreateAdapter:
    def test_gemini(self):
        adapter = create_adapter("gemini", api_key="k")
        assert isinstance(adapter, GenerateContentAdapter)
        assert adapter.model == "gemini-2.5-flash"

    def test_openai(self):
        adapter = create_adapter("openai", api_key="k")
        assert isinstance(adapter, ChatCompletionAdapter)
        assert adapter.model == "gpt-4o-mini"

    def test_deepseek_defaults(self):
        adapter = create_adapter("deepseek", api_key="k")
        assert isinstance(adapter, ChatCompletionAdapter)
        assert adapter.model == "deepseek-chat"
        assert adapter.base_url == "https://api.deepseek.com/v1"

    def test_custom_uses_given_endpoint(self):
        adapter = create_adapter("custom", api_key="k", model="llama3", base_url="http://localhost:11434/v1")
        assert adapter.base_url == "http://localhost:11434/v1"
        assert adapter.model == "llama3"

    def test_env_key_fallback(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "from-env")
        assert create_adapter("deepseek").api_key == "from-env"

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        assert create_adapter("openai", api_key="explicit").api_key == "explicit"

    def test_unknown_provider(self):
        with pytest.raises(LLMError, match="Unknown provider"):
            create_adapter("claude")

    def test_max_tokens_passed(self):
        adapter = create_adapter("openai", api_key="k", max_tokens=1000)
        assert adapter.build_request("s", "u").json["max_tokens"] == 1000


class TestCreateLLMClient:
    def test_from_config(self):
        client = create_llm_client(LLMConfig(provider="openai", api_key="k", probe_timeout=5.0))
        assert isinstance(client, LLMClient)
        assert client.probe_timeout == 5.0
        assert client.adapter.api_key == "k"
