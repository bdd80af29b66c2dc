"""Async LLM client: sends adapter requests over httpx and decodes the responses."""

import asyncio
from typing import AsyncIterator

import httpx
import structlog

from .base import (
    EmptyResponseError,
    ProviderAdapter,
    ProviderRequest,
    TransportError,
    api_error_for_status,
)
from .streaming import decode_stream

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 300.0


class LLMClient:
    """One provider session.

    Calls on the same instance are serialized; separate instances share
    nothing and run in parallel. No retries happen here.
    """

    def __init__(
        self,
        adapter: ProviderAdapter,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        probe_timeout: float = 15.0,
    ):
        self.adapter = adapter
        self.probe_timeout = probe_timeout
        self._http = http_client
        self._owns_http = http_client is None
        self._timeout = timeout
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    @staticmethod
    def _request_kwargs(request: ProviderRequest) -> dict:
        kwargs = {"headers": request.headers}
        if request.json is not None:
            kwargs["json"] = request.json
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        return kwargs

    async def stream(self, system: str, user: str) -> AsyncIterator[str]:
        """Yield incremental text chunks of a streamed completion.

        The instance stays locked until the iterator is exhausted or closed,
        so consume it under `contextlib.aclosing` when breaking out early.
        Closing the iterator aborts the transport read.

        Raises:
            MissingCredentialError, InvalidEndpointError: before any request
            APIError: non-2xx status; message is the full response body
            TransportError: network failure (already-yielded text stands)
        """
        request = self.adapter.build_request(system, user, stream=True)
        decoder = self.adapter.create_decoder()
        log = logger.bind(provider=self.adapter.provider_name, model=self.adapter.model)

        async with self._lock:
            log.debug("llm.stream_started")
            chunks = 0
            try:
                async with self.http.stream(
                    request.method, request.url, **self._request_kwargs(request)
                ) as response:
                    if not response.is_success:
                        body = "".join([line async for line in response.aiter_lines()])
                        raise api_error_for_status(response.status_code, body)
                    async for text in decode_stream(decoder, response.aiter_text()):
                        chunks += 1
                        yield text
            except httpx.TransportError as e:
                log.warning("llm.stream_transport_failed", error=str(e), chunks=chunks)
                raise TransportError(f"{self.adapter.provider_name} stream failed: {e}") from e
            log.debug("llm.stream_finished", chunks=chunks)

    async def complete(self, system: str, user: str) -> str:
        """Non-streaming JSON-mode completion; returns the raw text payload.

        Raises:
            ParseError: body lacks the provider's text field
            EmptyResponseError: text field present but blank
        """
        request = self.adapter.build_request(system, user, stream=False, json_mode=True)
        async with self._lock:
            response = await self._send(request)

        text = self.adapter.extract_text(response.content)
        if not text.strip():
            raise EmptyResponseError(f"{self.adapter.provider_name} returned an empty completion")
        logger.debug(
            "llm.completion_received", provider=self.adapter.provider_name, chars=len(text)
        )
        return text

    async def probe(self) -> bool:
        """Cheap credential check. True on success; raises the usual errors otherwise."""
        request = self.adapter.build_probe_request(timeout=self.probe_timeout)
        async with self._lock:
            await self._send(request)
        logger.info("llm.probe_ok", provider=self.adapter.provider_name)
        return True

    async def _send(self, request: ProviderRequest) -> httpx.Response:
        try:
            response = await self.http.request(
                request.method, request.url, **self._request_kwargs(request)
            )
        except httpx.TransportError as e:
            raise TransportError(f"{self.adapter.provider_name} request failed: {e}") from e
        if not response.is_success:
            raise api_error_for_status(response.status_code, response.text)
        return response
