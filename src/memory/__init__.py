"""Long-term memory: ingestion with dedup, plus manual merge consolidation."""

from .models import (
    EpisodicMemory,
    MemoryExtractionResult,
    MergeCandidateGroup,
    ProceduralMemory,
    SemanticMemory,
)
from .store import MemoryRepository, SQLiteMemoryRepository

__all__ = [
    "SemanticMemory",
    "EpisodicMemory",
    "ProceduralMemory",
    "MemoryExtractionResult",
    "MergeCandidateGroup",
    "MemoryRepository",
    "SQLiteMemoryRepository",
]
