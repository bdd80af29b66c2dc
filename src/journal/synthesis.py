"""Journal synthesis from the day's fragments, streamed or as a structured entry."""

import asyncio
from contextlib import aclosing
from enum import StrEnum
from typing import AsyncIterator, Callable, Optional

import structlog

from llm.client import LLMClient
from llm.parsing import parse_journal_output

from .models import Fragment, JournalOutput
from .prompts import PromptBuilder

logger = structlog.get_logger()


class SynthesisError(Exception):
    """Raised when a journal cannot be synthesized from the given input."""


class SynthesisProgress(StrEnum):
    STARTED = "started"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


ProgressCallback = Callable[[SynthesisProgress], None]


class JournalSynthesizer:
    """Turns fragments into a diary entry via one LLM session.

    Memory retrieval is optional context; if it fails the entry is still
    generated without it.
    """

    def __init__(
        self,
        client: LLMClient,
        prompts: Optional[PromptBuilder] = None,
        retriever=None,
        retrieval_enabled: bool = False,
        max_memories: Optional[int] = None,
    ):
        self.client = client
        self.prompts = prompts or PromptBuilder()
        self.retriever = retriever
        self.retrieval_enabled = retrieval_enabled
        self.max_memories = max_memories
        self._lock = asyncio.Lock()

    def _retrieve_memories(self, fragments: list[Fragment]) -> list[str]:
        if not self.retrieval_enabled or self.retriever is None:
            return []
        query = "\n".join(f.content for f in fragments if f.content)
        try:
            return self.retriever.retrieve_relevant(query, limit=self.max_memories)
        except Exception as e:
            logger.warning("journal.memory_retrieval_failed", error=str(e))
            return []

    def _user_prompt(self, fragments: list[Fragment]) -> str:
        if not fragments:
            raise SynthesisError("No fragments to synthesize")
        memories = self._retrieve_memories(fragments)
        return self.prompts.user_prompt(fragments, memories=memories)

    async def stream(self, fragments: list[Fragment]) -> AsyncIterator[str]:
        """Yield markdown chunks of the diary body as they arrive."""
        user = self._user_prompt(fragments)
        async with self._lock:
            logger.info("journal.stream_started", fragments=len(fragments))
            chunks = self.client.stream(self.prompts.stream_system_prompt(), user)
            async with aclosing(chunks):
                async for chunk in chunks:
                    yield chunk

    async def synthesize(
        self, fragments: list[Fragment], progress: Optional[ProgressCallback] = None
    ) -> JournalOutput:
        """Generate a structured entry. Unparseable model output yields a fallback entry."""

        def report(stage: SynthesisProgress) -> None:
            if progress is not None:
                progress(stage)

        report(SynthesisProgress.STARTED)
        try:
            user = self._user_prompt(fragments)
            async with self._lock:
                report(SynthesisProgress.GENERATING)
                raw = await self.client.complete(self.prompts.journal_system_prompt(), user)
        except Exception:
            report(SynthesisProgress.FAILED)
            raise

        output = parse_journal_output(raw)
        report(SynthesisProgress.COMPLETED)
        logger.info("journal.synthesized", fragments=len(fragments), title=output.title)
        return output
