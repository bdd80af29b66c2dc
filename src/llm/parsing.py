"""Response body parsing: typed payload extraction, fence stripping, structured decode."""

import re
from typing import TypeVar

import structlog
from pydantic import BaseModel, Field, ValidationError

from journal.models import JournalOutput
from memory.models import MemoryExtractionResult

from .base import ParseError

logger = structlog.get_logger()

T = TypeVar("T", bound=BaseModel)

# Opening fence with optional language tag, body, closing fence
_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n?(?P<body>.*?)\n?[ \t]*```$", re.DOTALL)


# --- chat-completion wire shapes ---


class _ChatDelta(BaseModel):
    content: str | None = None


class _ChatStreamChoice(BaseModel):
    delta: _ChatDelta = Field(default_factory=_ChatDelta)


class ChatCompletionChunk(BaseModel):
    """One `data: {...}` line of a chat-completion stream."""

    choices: list[_ChatStreamChoice] = Field(default_factory=list)

    @property
    def text(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].delta.content


class _ChatMessage(BaseModel):
    content: str


class _ChatChoice(BaseModel):
    message: _ChatMessage


class ChatCompletionResponse(BaseModel):
    choices: list[_ChatChoice] = Field(min_length=1)

    @property
    def text(self) -> str:
        return self.choices[0].message.content


# --- generate-content wire shapes ---


class _Part(BaseModel):
    text: str


class _Content(BaseModel):
    parts: list[_Part] = Field(min_length=1)


class _Candidate(BaseModel):
    content: _Content


class GenerateContentResponse(BaseModel):
    """Shape of both the full body and each streamed array element."""

    candidates: list[_Candidate] = Field(min_length=1)

    @property
    def text(self) -> str:
        return self.candidates[0].content.parts[0].text


def _validate_body(model: type[T], body: bytes | str) -> T:
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise ParseError(f"Unexpected {model.__name__} body: {e.error_count()} error(s)") from e


def parse_chat_completion(body: bytes | str) -> str:
    """`choices[0].message.content` of a non-streaming chat-completion body."""
    return _validate_body(ChatCompletionResponse, body).text


def parse_generate_content(body: bytes | str) -> str:
    """`candidates[0].content.parts[0].text` of a generate-content body."""
    return _validate_body(GenerateContentResponse, body).text


def generate_content_text(obj: dict) -> str | None:
    """Soft variant for streamed elements: None when the field path is absent."""
    try:
        return GenerateContentResponse.model_validate(obj).text
    except ValidationError:
        return None


# --- structured output ---


def strip_code_fence(text: str) -> str:
    """Trim and remove a surrounding markdown code fence (```json ... ```)."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    match = _FENCE_RE.match(text)
    if match:
        return match.group("body").strip()
    # Unterminated fence: drop the opening line only
    return text.split("\n", 1)[-1].strip() if "\n" in text else text.lstrip("`").strip()


def decode_structured(text: str, model: type[T]) -> T | None:
    """Decode fence-stripped JSON into `model`; None on any decode failure."""
    try:
        return model.model_validate_json(text)
    except ValidationError:
        return None


def parse_journal_output(raw: str) -> JournalOutput:
    """Decode a journal object. Never raises: falls back to a placeholder-titled entry."""
    cleaned = strip_code_fence(raw)
    output = decode_structured(cleaned, JournalOutput)
    if output is None:
        logger.warning("llm.journal_parse_fallback", preview=cleaned[:200])
        return JournalOutput.fallback(cleaned)
    return output.model_copy(update={"raw_json": cleaned}).sanitized()


def parse_memory_output(raw: str) -> MemoryExtractionResult:
    """Decode a memory extraction result. Never raises: empty result on failure."""
    cleaned = strip_code_fence(raw)
    result = decode_structured(cleaned, MemoryExtractionResult)
    if result is None:
        logger.warning("llm.memory_parse_failed", preview=cleaned[:200])
        return MemoryExtractionResult()
    return result
