"""Journal data models: raw fragments in, structured journal output out."""

import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from shared_types import FragmentKind

FALLBACK_TITLE = "无题日记"
FALLBACK_SUMMARY = "今日的记录"
FALLBACK_MOOD = "📝"
FALLBACK_INSIGHTS = "今天的想法已被记录下来。"


def _now_ms() -> int:
    return int(time.time() * 1000)


def sanitize_newlines(text: str) -> str:
    """Turn escaped (`\\n`) and mis-escaped (`/n`) newline artifacts into real newlines."""
    return text.replace("\\n", "\n").replace("/n/n", "\n\n").replace("/n", "\n")


@dataclass
class Fragment:
    """One user-authored input unit. The core only reads it."""

    content: str
    timestamp: int  # ms since epoch
    kind: FragmentKind = FragmentKind.TEXT
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attachment_ref: Optional[str] = None
    edited_at: Optional[int] = None

    def edit(self, content: str) -> None:
        """Manual text edit; records the edit time."""
        self.content = content
        self.edited_at = _now_ms()


class JournalOutput(BaseModel):
    """Structured journal entry returned by the batch (JSON-mode) path."""

    title: str
    summary: str
    mood: str
    content: str
    insights: str
    raw_json: Optional[str] = None

    @classmethod
    def fallback(cls, raw_content: str) -> "JournalOutput":
        """Placeholder entry carrying the unparsed text as its body."""
        return cls(
            title=FALLBACK_TITLE,
            summary=FALLBACK_SUMMARY,
            mood=FALLBACK_MOOD,
            content=raw_content,
            insights=FALLBACK_INSIGHTS,
        )

    def sanitized(self) -> "JournalOutput":
        return self.model_copy(
            update={
                "content": sanitize_newlines(self.content),
                "insights": sanitize_newlines(self.insights),
            }
        )


class WritingStyle(StrEnum):
    LETTER = "letter"
    PROSE = "prose"
    REPORT = "report"
    CUSTOM = "custom"

    @property
    def default_prompt(self) -> str:
        return _WRITING_STYLE_PROMPTS[self]


class TitleStyle(StrEnum):
    ABSTRACT = "abstract"
    SUMMARY = "summary"
    POETIC = "poetic"
    CUSTOM = "custom"

    @property
    def default_prompt(self) -> str:
        return _TITLE_STYLE_PROMPTS[self]


_WRITING_STYLE_PROMPTS = {
    WritingStyle.LETTER: (
        "Tone: Write as a warm personal letter to the reader, "
        "using intimate and conversational style."
    ),
    WritingStyle.PROSE: "Tone: Warm, reflective, literary prose.",
    WritingStyle.REPORT: (
        "Tone: Structured and objective, like a daily report with clear sections."
    ),
    WritingStyle.CUSTOM: "",
}

_TITLE_STYLE_PROMPTS = {
    TitleStyle.ABSTRACT: "A short, evocative title (2-6 words) capturing the feeling of the day",
    TitleStyle.SUMMARY: "A plain, descriptive title naming the main event of the day",
    TitleStyle.POETIC: "A poetic title, like a line from a poem, inspired by the day",
    TitleStyle.CUSTOM: "",
}

DEFAULT_INSIGHT_PROMPT = "A short reflection on the user's day. Be observant but objective."
