"""Merge candidate discovery and manual merge execution."""

from typing import Callable, Sequence, TypeVar

import structlog

from shared_types import MemoryType

from .models import (
    MEMORY_MODELS,
    EpisodicMemory,
    MergeCandidateGroup,
    ProceduralMemory,
    SemanticMemory,
    now_ms,
    union_ids,
)
from .similarity import similarity
from .store import MemoryRepository

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_EPISODIC_THRESHOLD = 0.45
DEFAULT_PROCEDURAL_THRESHOLD = 0.55


def greedy_clusters(
    items: Sequence[T], text_of: Callable[[T], str], threshold: float
) -> list[list[T]]:
    """Single-pass clustering against each cluster's seed row.

    Members are compared to the seed only, never to each other, so a
    cluster is not a transitive closure. Singletons are dropped.
    """
    visited = [False] * len(items)
    clusters: list[list[T]] = []
    for i, seed in enumerate(items):
        if visited[i]:
            continue
        visited[i] = True
        cluster = [seed]
        seed_text = text_of(seed)
        for j in range(i + 1, len(items)):
            if visited[j]:
                continue
            if similarity(seed_text, text_of(items[j])) > threshold:
                visited[j] = True
                cluster.append(items[j])
        if len(cluster) > 1:
            clusters.append(cluster)
    return clusters


def _first_max(items: Sequence[T], score: Callable[[T], float]) -> T:
    """Highest-scoring item; the earliest one wins ties."""
    best = items[0]
    for item in items[1:]:
        if score(item) > score(best):
            best = item
    return best


class MergeCandidateFinder:
    """Surfaces groups of probably-duplicate memories for manual review."""

    def __init__(
        self,
        repository: MemoryRepository,
        episodic_threshold: float = DEFAULT_EPISODIC_THRESHOLD,
        procedural_threshold: float = DEFAULT_PROCEDURAL_THRESHOLD,
    ):
        self.repository = repository
        self.episodic_threshold = episodic_threshold
        self.procedural_threshold = procedural_threshold

    def find(self, memory_type: MemoryType) -> list[MergeCandidateGroup]:
        memory_type = MemoryType(memory_type)
        if memory_type == MemoryType.SEMANTIC:
            groups = self._semantic_groups()
        elif memory_type == MemoryType.EPISODIC:
            groups = self._episodic_groups()
        else:
            groups = self._procedural_groups()
        logger.debug("memory.merge_candidates", type=memory_type.value, groups=len(groups))
        return groups

    def find_all(self) -> dict[MemoryType, list[MergeCandidateGroup]]:
        return {memory_type: self.find(memory_type) for memory_type in MemoryType}

    def _semantic_groups(self) -> list[MergeCandidateGroup]:
        by_key: dict[str, list[SemanticMemory]] = {}
        for memory in self.repository.fetch_all(SemanticMemory):
            by_key.setdefault(memory.key, []).append(memory)

        groups = []
        for key in sorted(by_key):
            rows = by_key[key]
            if len(rows) < 2:
                continue
            best = _first_max(rows, lambda m: m.confidence)
            groups.append(
                MergeCandidateGroup(
                    type=MemoryType.SEMANTIC,
                    group_key=key,
                    memory_ids=[m.id for m in rows],
                    suggested_content=best.value,
                )
            )
        return groups

    def _episodic_groups(self) -> list[MergeCandidateGroup]:
        by_date: dict[str, list[EpisodicMemory]] = {}
        for memory in self.repository.fetch_all(EpisodicMemory):
            by_date.setdefault(memory.date, []).append(memory)

        groups = []
        for date in sorted(by_date):
            for cluster in greedy_clusters(
                by_date[date], lambda m: m.event, self.episodic_threshold
            ):
                longest = _first_max(cluster, lambda m: len(m.event))
                groups.append(
                    MergeCandidateGroup(
                        type=MemoryType.EPISODIC,
                        group_key=date,
                        memory_ids=[m.id for m in cluster],
                        suggested_content=longest.event,
                    )
                )
        return groups

    def _procedural_groups(self) -> list[MergeCandidateGroup]:
        rows = self.repository.fetch_all(ProceduralMemory)
        groups = []
        for cluster in greedy_clusters(rows, lambda m: m.pattern, self.procedural_threshold):
            top = _first_max(cluster, lambda m: m.frequency)
            groups.append(
                MergeCandidateGroup(
                    type=MemoryType.PROCEDURAL,
                    group_key=cluster[0].pattern,
                    memory_ids=[m.id for m in cluster],
                    suggested_content=top.pattern,
                )
            )
        return groups


class MergeExecutor:
    """Folds discard rows into a keeper and deletes them in one unit of work."""

    def __init__(self, repository: MemoryRepository):
        self.repository = repository

    def merge(self, keeper_id: str, discard_ids: Sequence[str], memory_type: MemoryType) -> int:
        """Merge discards into the keeper. Returns the number of rows deleted."""
        memory_type = MemoryType(memory_type)
        model = MEMORY_MODELS[memory_type]
        wanted = [i for i in dict.fromkeys(discard_ids) if i != keeper_id]

        keeper = self.repository.get(model, keeper_id)
        if keeper is None and memory_type != MemoryType.EPISODIC:
            logger.warning("memory.merge_keeper_missing", type=memory_type.value, keeper_id=keeper_id)
            self.repository.rollback()
            return 0

        wanted_set = set(wanted)
        discards = self.repository.fetch_all(model, lambda m: m.id in wanted_set)

        try:
            if memory_type == MemoryType.SEMANTIC:
                for row in discards:
                    keeper.source_entry_ids = union_ids(keeper.source_entry_ids, row.source_entry_ids)
                keeper.updated_at = now_ms()
            elif memory_type == MemoryType.PROCEDURAL:
                for row in discards:
                    keeper.source_entry_ids = union_ids(keeper.source_entry_ids, row.source_entry_ids)
                    keeper.frequency += row.frequency
                keeper.updated_at = now_ms()

            for row in discards:
                self.repository.delete(row)
            self.repository.save()
        except Exception:
            self.repository.rollback()
            raise

        logger.info(
            "memory.merged",
            type=memory_type.value,
            keeper_id=keeper_id,
            deleted=len(discards),
        )
        return len(discards)
