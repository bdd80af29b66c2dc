"""LLM-powered memory extraction and ingestion into the long-term store."""

import asyncio
from datetime import datetime

import structlog

from llm.client import LLMClient
from llm.parsing import parse_memory_output

from .models import (
    EpisodicMemory,
    EpisodicMemoryItem,
    IngestionReport,
    MemoryExtractionResult,
    ProceduralMemory,
    ProceduralMemoryItem,
    SemanticMemory,
    SemanticMemoryItem,
    now_ms,
    union_ids,
)
from .store import MemoryRepository

logger = structlog.get_logger()


def entry_date(created_at_ms: int) -> str:
    """Local calendar date (YYYY-MM-DD) of an entry timestamp."""
    return datetime.fromtimestamp(created_at_ms / 1000).strftime("%Y-%m-%d")


def normalize_date(date: str, default_date: str) -> str:
    """Dashed dates pass through; anything else ("Today", "") becomes the entry date."""
    date = (date or "").strip()
    return date if "-" in date else default_date


def is_contained_duplicate(a: str, b: str) -> bool:
    """Case-insensitive substring containment in either direction. Blank text matches nothing."""
    a, b = a.strip().casefold(), b.strip().casefold()
    if not a or not b:
        return False
    return a in b or b in a


class MemoryExtractor:
    """Runs the extraction completion and folds results into the repository.

    Each call is one unit of work: all three dedup policies apply, then a
    single save() commits them. Calls on one instance are serialized.
    """

    def __init__(self, repository: MemoryRepository, client: LLMClient | None = None, prompts=None):
        self.repository = repository
        self.client = client
        self._prompts = prompts
        self._lock = asyncio.Lock()

    def _get_prompts(self):
        if self._prompts is None:
            from journal.prompts import PromptBuilder

            self._prompts = PromptBuilder()
        return self._prompts

    async def extract(self, entry_id: str, content: str, created_at_ms: int) -> IngestionReport:
        """Extract memories from an entry's markdown and ingest them."""
        if not content or not content.strip():
            return IngestionReport(source_id=entry_id)
        if self.client is None:
            raise ValueError("MemoryExtractor.extract needs an LLMClient")

        async with self._lock:
            logger.info("memory.extraction_started", entry_id=entry_id)
            raw = await self.client.complete(self._get_prompts().memory_system_prompt(), content)
            result = parse_memory_output(raw)
            return self.ingest(result, entry_id, default_date=entry_date(created_at_ms))

    def ingest(
        self, result: MemoryExtractionResult, source_id: str, default_date: str
    ) -> IngestionReport:
        """Apply the dedup policies for one extraction result and commit."""
        report = IngestionReport(source_id=source_id)
        try:
            self.process_semantic(result.semantic, source_id, report)
            self.process_episodic(result.episodic, source_id, default_date, report)
            self.process_procedural(result.procedural, source_id, report)
            self.repository.save()
        except Exception:
            self.repository.rollback()
            raise

        logger.info(
            "memory.extraction_saved",
            source_id=source_id,
            added=report.total_added,
            semantic_merged=report.semantic_merged,
            episodic_skipped=report.episodic_skipped,
            procedural_merged=report.procedural_merged,
        )
        return report

    def process_semantic(
        self,
        items: list[SemanticMemoryItem],
        source_id: str,
        report: IngestionReport | None = None,
    ) -> None:
        """Exact key match: first value wins; later sightings only add provenance."""
        report = report or IngestionReport(source_id=source_id)
        now = now_ms()
        for item in items:
            existing = self.repository.fetch_all(SemanticMemory, lambda m: m.key == item.key)
            if existing:
                memory = existing[0]
                memory.source_entry_ids = union_ids(memory.source_entry_ids, [source_id])
                memory.updated_at = now
                report.semantic_merged += 1
            else:
                self.repository.insert(
                    SemanticMemory(
                        key=item.key,
                        value=item.value,
                        confidence=item.confidence,
                        source_entry_ids=[source_id],
                        created_at=now,
                        updated_at=now,
                    )
                )
                report.semantic_added += 1

    def process_episodic(
        self,
        items: list[EpisodicMemoryItem],
        source_id: str,
        default_date: str,
        report: IngestionReport | None = None,
    ) -> None:
        """Skip an event already recorded on the same date (containment check)."""
        report = report or IngestionReport(source_id=source_id)
        now = now_ms()
        for item in items:
            if not item.event.strip():
                report.episodic_skipped += 1
                continue
            date = normalize_date(item.date, default_date)
            same_day = self.repository.fetch_all(EpisodicMemory, lambda m: m.date == date)
            if any(is_contained_duplicate(m.event, item.event) for m in same_day):
                report.episodic_skipped += 1
                continue

            self.repository.insert(
                EpisodicMemory(
                    event=item.event,
                    date=date,
                    source_entry_id=source_id,
                    emotion=item.emotion,
                    context=item.context,
                    created_at=now,
                )
            )
            report.episodic_added += 1

    def process_procedural(
        self,
        items: list[ProceduralMemoryItem],
        source_id: str,
        report: IngestionReport | None = None,
    ) -> None:
        """Exact pattern match bumps frequency instead of inserting."""
        report = report or IngestionReport(source_id=source_id)
        now = now_ms()
        for item in items:
            existing = self.repository.fetch_all(
                ProceduralMemory, lambda m: m.pattern == item.pattern
            )
            if existing:
                memory = existing[0]
                memory.frequency += 1
                memory.source_entry_ids = union_ids(memory.source_entry_ids, [source_id])
                memory.updated_at = now
                report.procedural_merged += 1
            else:
                self.repository.insert(
                    ProceduralMemory(
                        pattern=item.pattern,
                        preference=item.preference,
                        trigger=item.trigger,
                        frequency=1,
                        source_entry_ids=[source_id],
                        created_at=now,
                        updated_at=now,
                    )
                )
                report.procedural_added += 1
