"""Memory retrieval for prompt context (RAG side path)."""

import re

import structlog

from .models import EpisodicMemory, ProceduralMemory, SemanticMemory
from .store import MemoryRepository

logger = structlog.get_logger()

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def _tokens(text: str) -> set[str]:
    return {t for t in _TOKEN_RE.findall(text.lower()) if len(t) > 1}


class MemoryRetriever:
    """Scores stored memories against fragment text by token overlap.

    High-confidence facts are always included; everything else needs at
    least one shared token or a verbatim mention in the query.
    """

    def __init__(
        self,
        repository: MemoryRepository,
        max_memories: int = 25,
        high_confidence_threshold: float = 0.9,
    ):
        self.repository = repository
        self.max_memories = max_memories
        self.high_confidence_threshold = high_confidence_threshold

    def retrieve_relevant(self, text: str, limit: int | None = None) -> list[str]:
        limit = limit or self.max_memories
        query_tokens = _tokens(text)
        query_lower = text.lower()
        scored: list[tuple[float, str]] = []

        for fact in self.repository.fetch_all(SemanticMemory):
            score = self._score(query_tokens, query_lower, f"{fact.key} {fact.value}", fact.value)
            if fact.confidence >= self.high_confidence_threshold:
                score += 1.0
            if score > 0:
                scored.append((score, f"Fact: {fact.key} = {fact.value}"))

        for event in self.repository.fetch_all(EpisodicMemory):
            score = self._score(query_tokens, query_lower, event.event, event.event)
            if score > 0:
                line = f"Event ({event.date}): {event.event}"
                if event.emotion:
                    line += f" [{event.emotion}]"
                scored.append((score, line))

        for pattern in self.repository.fetch_all(ProceduralMemory):
            text_blob = f"{pattern.pattern} {pattern.preference}"
            score = self._score(query_tokens, query_lower, text_blob, pattern.pattern)
            if score > 0:
                scored.append(
                    (score + 0.1 * pattern.frequency,
                     f"Pattern: {pattern.pattern} ({pattern.preference})")
                )

        # Stable sort keeps repository order among equal scores
        scored.sort(key=lambda item: item[0], reverse=True)
        results = [line for _, line in scored[:limit]]
        logger.debug("memory.retrieved", candidates=len(scored), returned=len(results))
        return results

    @staticmethod
    def _score(query_tokens: set[str], query_lower: str, text: str, mention: str) -> float:
        score = float(len(query_tokens & _tokens(text)))
        if mention and mention.lower() in query_lower:
            score += 2.0
        return score
