"""Data models for the long-term memory system."""

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from shared_types import MemoryType


def now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


# --- extraction results (LLM output, not persisted) ---


class SemanticMemoryItem(BaseModel):
    key: str
    value: str
    confidence: float

    @field_validator("confidence")
    @classmethod
    def clamp_confidence(cls, v: float) -> float:
        return min(1.0, max(0.0, v))


class EpisodicMemoryItem(BaseModel):
    event: str
    date: str
    emotion: Optional[str] = None
    context: Optional[str] = None


class ProceduralMemoryItem(BaseModel):
    pattern: str
    preference: str
    trigger: Optional[str] = None


class MemoryExtractionResult(BaseModel):
    semantic: list[SemanticMemoryItem] = Field(default_factory=list)
    episodic: list[EpisodicMemoryItem] = Field(default_factory=list)
    procedural: list[ProceduralMemoryItem] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.semantic or self.episodic or self.procedural)


# --- persisted rows ---


@dataclass
class SemanticMemory:
    key: str
    value: str
    confidence: float
    source_entry_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
    memory_type = MemoryType.SEMANTIC


@dataclass
class EpisodicMemory:
    event: str
    date: str
    source_entry_id: str
    emotion: Optional[str] = None
    context: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: int = field(default_factory=now_ms)
    memory_type = MemoryType.EPISODIC


@dataclass
class ProceduralMemory:
    pattern: str
    preference: str
    trigger: Optional[str] = None
    frequency: int = 1
    source_entry_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
    memory_type = MemoryType.PROCEDURAL


MEMORY_MODELS = {
    MemoryType.SEMANTIC: SemanticMemory,
    MemoryType.EPISODIC: EpisodicMemory,
    MemoryType.PROCEDURAL: ProceduralMemory,
}


def union_ids(existing: list[str], incoming: list[str]) -> list[str]:
    """Ordered set union: keeps existing order, appends unseen ids."""
    merged = list(existing)
    for source_id in incoming:
        if source_id not in merged:
            merged.append(source_id)
    return merged


@dataclass
class MergeCandidateGroup:
    """A cluster of probably-duplicate memories awaiting a merge decision."""

    type: MemoryType
    group_key: str
    memory_ids: list[str]
    suggested_content: Optional[str] = None
    id: str = field(default_factory=_new_id)


@dataclass
class IngestionReport:
    """Counts of what one extraction call did to the repository."""

    source_id: str
    semantic_added: int = 0
    semantic_merged: int = 0
    episodic_added: int = 0
    episodic_skipped: int = 0
    procedural_added: int = 0
    procedural_merged: int = 0

    @property
    def total_added(self) -> int:
        return self.semantic_added + self.episodic_added + self.procedural_added
