"""Provider adapter factory with env-var key lookup."""

import os

import httpx

from shared_types import AIProvider

from .base import LLMError, ProviderAdapter
from .client import LLMClient

_PROVIDER_ENV_KEYS = {
    AIProvider.GEMINI: "GOOGLE_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.DEEPSEEK: "DEEPSEEK_API_KEY",
    AIProvider.CUSTOM: "WING_API_KEY",
}

_DEFAULT_MODELS = {
    AIProvider.GEMINI: "gemini-2.5-flash",
    AIProvider.OPENAI: "gpt-4o-mini",
    AIProvider.DEEPSEEK: "deepseek-chat",
}


def create_adapter(
    provider: str | AIProvider,
    api_key: str | None = None,
    model: str | None = None,
    base_url: str | None = None,
    max_tokens: int = 4096,
) -> ProviderAdapter:
    """Create the request adapter for a provider.

    Args:
        provider: "gemini", "openai", "deepseek", or "custom" (OpenAI-compatible)
        api_key: Explicit API key (overrides env var)
        model: Model name (None = provider default)
        base_url: Custom endpoint (None = provider default)
        max_tokens: Completion token cap

    Returns:
        ProviderAdapter instance. A missing key is not an error here; it
        surfaces as MissingCredentialError when a request is built.
    """
    try:
        resolved = AIProvider(provider)
    except ValueError:
        raise LLMError(
            f"Unknown provider: {provider}. Use: gemini, openai, deepseek, custom"
        ) from None

    if not api_key:
        api_key = os.getenv(_PROVIDER_ENV_KEYS[resolved])
    model = model or _DEFAULT_MODELS.get(resolved)

    if resolved == AIProvider.GEMINI:
        from .providers.gemini import GenerateContentAdapter

        return GenerateContentAdapter(
            api_key=api_key, model=model, base_url=base_url, max_tokens=max_tokens
        )

    from .providers.openai import ChatCompletionAdapter

    return ChatCompletionAdapter(
        api_key=api_key,
        model=model,
        base_url=base_url,
        provider=resolved,
        max_tokens=max_tokens,
    )


def create_llm_client(llm_config, http_client: httpx.AsyncClient | None = None) -> LLMClient:
    """Build an LLMClient from an LLMConfig model."""
    adapter = create_adapter(
        provider=llm_config.provider,
        api_key=llm_config.api_key,
        model=llm_config.model,
        base_url=llm_config.base_url,
        max_tokens=llm_config.max_tokens,
    )
    return LLMClient(adapter, http_client=http_client, probe_timeout=llm_config.probe_timeout)
