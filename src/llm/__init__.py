"""Multi-provider LLM transport and decoding layer."""

from .base import (
    APIError,
    EmptyResponseError,
    InvalidEndpointError,
    LLMAuthError,
    LLMError,
    LLMRateLimitError,
    MissingCredentialError,
    ParseError,
    ProviderAdapter,
    ProviderRequest,
    TransportError,
)
from .client import LLMClient
from .factory import create_adapter, create_llm_client

__all__ = [
    "ProviderAdapter",
    "ProviderRequest",
    "LLMClient",
    "create_adapter",
    "create_llm_client",
    "LLMError",
    "MissingCredentialError",
    "InvalidEndpointError",
    "TransportError",
    "APIError",
    "LLMAuthError",
    "LLMRateLimitError",
    "ParseError",
    "EmptyResponseError",
]
