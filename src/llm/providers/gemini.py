"""Generate-content family adapter (Google Gemini REST API, key in query string)."""

from urllib.parse import quote

from shared_types import AIProvider, ProviderFamily

from ..base import ProviderAdapter, ProviderRequest
from ..parsing import parse_generate_content
from ..streaming import ConcatenatedObjectDecoder

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GenerateContentAdapter(ProviderAdapter):
    """`POST <base>/models/<model>:{streamGenerateContent|generateContent}?key=...`"""

    family = ProviderFamily.GENERATE_CONTENT
    default_base_url = GEMINI_BASE_URL
    default_model = "gemini-2.5-flash"

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        base_url: str | None = None,
        provider: AIProvider | None = AIProvider.GEMINI,
        max_tokens: int = 4096,
    ):
        super().__init__(api_key, model, base_url, provider, max_tokens)

    def _with_key(self, path: str) -> str:
        key = self._require_key()
        return f"{self._endpoint(path)}?key={quote(key, safe='')}"

    def build_request(
        self, system: str, user: str, stream: bool = True, json_mode: bool = False
    ) -> ProviderRequest:
        method = "streamGenerateContent" if stream else "generateContent"
        url = self._with_key(f"models/{self.model}:{method}")
        body = {
            "contents": [{"parts": [{"text": user}]}],
            "system_instruction": {"parts": [{"text": system}]},
        }
        if json_mode and not stream:
            body["generationConfig"] = {"response_mime_type": "application/json"}

        return ProviderRequest(
            method="POST",
            url=url,
            headers={"Content-Type": "application/json"},
            json=body,
        )

    def build_probe_request(self, timeout: float = 15.0) -> ProviderRequest:
        # Model listing is free; no generation tokens spent
        return ProviderRequest(method="GET", url=self._with_key("models"), timeout=timeout)

    def create_decoder(self) -> ConcatenatedObjectDecoder:
        return ConcatenatedObjectDecoder()

    def extract_text(self, body: bytes | str) -> str:
        return parse_generate_content(body)
