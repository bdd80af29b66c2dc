"""Chat-completion family adapter (OpenAI, DeepSeek, OpenAI-compatible endpoints)."""

from shared_types import AIProvider, ProviderFamily

from ..base import ProviderAdapter, ProviderRequest
from ..parsing import parse_chat_completion
from ..streaming import SSELineDecoder

OPENAI_BASE_URL = "https://api.openai.com/v1"
DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"

_DEFAULT_BASE_URLS = {
    AIProvider.OPENAI: OPENAI_BASE_URL,
    AIProvider.DEEPSEEK: DEEPSEEK_BASE_URL,
}


class ChatCompletionAdapter(ProviderAdapter):
    """`POST <base>/chat/completions` with bearer auth."""

    family = ProviderFamily.CHAT_COMPLETION
    default_base_url = OPENAI_BASE_URL
    default_model = "gpt-4o-mini"

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        base_url: str | None = None,
        provider: AIProvider | None = AIProvider.OPENAI,
        max_tokens: int = 4096,
    ):
        if not base_url:
            base_url = _DEFAULT_BASE_URLS.get(provider, OPENAI_BASE_URL)
        super().__init__(api_key, model, base_url, provider, max_tokens)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._require_key()}",
            "Content-Type": "application/json",
        }

    def build_request(
        self, system: str, user: str, stream: bool = True, json_mode: bool = False
    ) -> ProviderRequest:
        headers = self._headers()
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "stream": stream,
            "max_tokens": self.max_tokens,
        }
        if json_mode and not stream:
            body["response_format"] = {"type": "json_object"}

        return ProviderRequest(
            method="POST",
            url=self._endpoint("chat/completions"),
            headers=headers,
            json=body,
        )

    def build_probe_request(self, timeout: float = 15.0) -> ProviderRequest:
        # Spends a single completion token
        headers = self._headers()
        return ProviderRequest(
            method="POST",
            url=self._endpoint("chat/completions"),
            headers=headers,
            json={
                "model": self.model,
                "messages": [{"role": "user", "content": "Hi"}],
                "max_tokens": 1,
            },
            timeout=timeout,
        )

    def create_decoder(self) -> SSELineDecoder:
        return SSELineDecoder()

    def extract_text(self, body: bytes | str) -> str:
        return parse_chat_completion(body)
