"""Base provider adapter abstraction and error taxonomy."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from urllib.parse import urlparse

from shared_types import AIProvider, ProviderFamily


class LLMError(Exception):
    """Base LLM error."""


class MissingCredentialError(LLMError):
    """No API key configured; raised before any request is made."""


class InvalidEndpointError(LLMError):
    """Base URL cannot be turned into a request URL."""


class TransportError(LLMError):
    """Network-level failure. The httpx exception is chained as __cause__."""


class APIError(LLMError):
    """Non-2xx response from the provider."""

    def __init__(self, status_code: int, message: str):
        super().__init__(f"API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class LLMAuthError(APIError):
    """Authentication failure (401/403)."""


class LLMRateLimitError(APIError):
    """Rate limit hit (429)."""


class ParseError(LLMError):
    """Well-formed response missing a required field."""


class EmptyResponseError(LLMError):
    """Response payload present but empty."""


def api_error_for_status(status_code: int, message: str) -> APIError:
    if status_code in (401, 403):
        return LLMAuthError(status_code, message)
    if status_code == 429:
        return LLMRateLimitError(status_code, message)
    return APIError(status_code, message)


@dataclass
class ProviderRequest:
    """Transport-agnostic description of one HTTP call."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: dict | None = None
    timeout: float | None = None


class ProviderAdapter(ABC):
    """Builds provider-specific requests and decodes provider-specific bodies."""

    family: ProviderFamily
    default_base_url: str = ""
    default_model: str = ""

    def __init__(
        self,
        api_key: str | None,
        model: str | None = None,
        base_url: str | None = None,
        provider: AIProvider | None = None,
        max_tokens: int = 4096,
    ):
        self.api_key = api_key or ""
        self.model = model or self.default_model
        self.base_url = base_url or self.default_base_url
        self.provider = provider
        self.max_tokens = max_tokens

    @property
    def provider_name(self) -> str:
        return str(self.provider) if self.provider else self.family.value

    def _require_key(self) -> str:
        if not self.api_key:
            raise MissingCredentialError(f"No API key configured for {self.provider_name}")
        return self.api_key

    def _endpoint(self, path: str) -> str:
        """Join base URL and path, validating the result is an absolute http(s) URL."""
        base = self.base_url.strip().strip("/")
        url = f"{base}/{path.lstrip('/')}"
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidEndpointError(f"Invalid endpoint: {self.base_url!r}")
        return url

    @abstractmethod
    def build_request(
        self, system: str, user: str, stream: bool = True, json_mode: bool = False
    ) -> ProviderRequest:
        """Build a completion request.

        Args:
            system: System prompt
            user: User prompt
            stream: Request an incremental response
            json_mode: Force a JSON object response (non-streaming only)
        """
        ...

    @abstractmethod
    def build_probe_request(self, timeout: float = 15.0) -> ProviderRequest:
        """Build the cheapest request that proves the credentials work."""
        ...

    @abstractmethod
    def create_decoder(self):
        """Return a fresh stream decoder for this provider's streaming wire format."""
        ...

    @abstractmethod
    def extract_text(self, body: bytes | str) -> str:
        """Extract the text payload from a complete (non-streamed) response body.

        Raises:
            ParseError: If the expected field path is absent.
        """
        ...
