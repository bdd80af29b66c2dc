"""Incremental decoders for the two streaming wire formats.

Decoders are fed decoded text in whatever chunk sizes the transport delivers
and return the text payloads completed by that chunk. Malformed input is
skipped, never raised: a bad line or array element costs only its own chunk.
"""

import json
from abc import ABC, abstractmethod
from enum import Enum
from typing import AsyncIterable, AsyncIterator

import structlog
from pydantic import ValidationError

from .parsing import ChatCompletionChunk, generate_content_text

logger = structlog.get_logger()

SSE_PREFIX = "data: "
SSE_DONE = "[DONE]"


class StreamDecoder(ABC):
    """Stateful text-to-chunks decoder. One instance per response."""

    done: bool = False

    @abstractmethod
    def feed(self, data: str) -> list[str]:
        """Consume more raw text; return any text payloads it completed."""
        ...

    @abstractmethod
    def finish(self) -> list[str]:
        """Signal end of stream; return payloads from trailing complete input."""
        ...


class SSELineDecoder(StreamDecoder):
    """`data: {json}` line stream of the chat-completion family."""

    def __init__(self):
        self._pending = ""
        self.done = False

    def feed(self, data: str) -> list[str]:
        if self.done:
            return []
        self._pending += data
        *lines, self._pending = self._pending.split("\n")
        chunks = []
        for line in lines:
            text = self.decode_line(line)
            if self.done:
                break
            if text:
                chunks.append(text)
        return chunks

    def finish(self) -> list[str]:
        tail, self._pending = self._pending, ""
        if self.done or not tail:
            return []
        text = self.decode_line(tail)
        return [text] if text else []

    def decode_line(self, line: str) -> str | None:
        """Text carried by one line, or None (not a data line, malformed, or terminal)."""
        line = line.strip()
        if not line.startswith(SSE_PREFIX):
            return None
        payload = line[len(SSE_PREFIX):].strip()
        if payload == SSE_DONE:
            self.done = True
            return None
        try:
            return ChatCompletionChunk.model_validate_json(payload).text
        except ValidationError:
            logger.debug("llm.sse_line_skipped", preview=payload[:80])
            return None


class _State(Enum):
    IDLE = "idle"
    IN_OBJECT = "in_object"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


class ConcatenatedObjectDecoder(StreamDecoder):
    """Top-level `{...}` objects of a generate-content array stream.

    Splitting on the array punctuation breaks as soon as an object nests
    braces or carries braces inside a string, so objects are delimited by
    brace depth, with counting suspended inside string literals.
    """

    def __init__(self):
        self._state = _State.IDLE
        self._depth = 0
        self._buffer: list[str] = []
        self.done = False

    def feed(self, data: str) -> list[str]:
        chunks = []
        for char in data:
            text = self._step(char)
            if text:
                chunks.append(text)
        return chunks

    def finish(self) -> list[str]:
        if self._buffer:
            logger.debug("llm.partial_object_discarded", size=len(self._buffer))
        self._reset()
        return []

    def _step(self, char: str) -> str | None:
        state = self._state

        if state is _State.IDLE:
            if char == "{":
                self._state = _State.IN_OBJECT
                self._depth = 1
                self._buffer = [char]
            return None

        self._buffer.append(char)

        if state is _State.ESCAPED:
            self._state = _State.IN_STRING
        elif state is _State.IN_STRING:
            if char == "\\":
                self._state = _State.ESCAPED
            elif char == '"':
                self._state = _State.IN_OBJECT
        elif char == '"':
            self._state = _State.IN_STRING
        elif char == "{":
            self._depth += 1
        elif char == "}":
            self._depth -= 1
            if self._depth == 0:
                raw = "".join(self._buffer)
                self._reset()
                return self._extract(raw)
        return None

    def _reset(self):
        self._state = _State.IDLE
        self._depth = 0
        self._buffer = []

    @staticmethod
    def _extract(raw: str) -> str | None:
        try:
            obj = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("llm.stream_object_skipped", preview=raw[:80])
            return None
        if not isinstance(obj, dict):
            return None
        return generate_content_text(obj)


async def decode_stream(decoder: StreamDecoder, source: AsyncIterable[str]) -> AsyncIterator[str]:
    """Drive `decoder` over an async text source, yielding payloads as they complete."""
    async for data in source:
        for chunk in decoder.feed(data):
            yield chunk
        if decoder.done:
            return
    for chunk in decoder.finish():
        yield chunk
