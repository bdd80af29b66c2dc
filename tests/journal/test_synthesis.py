"""Tests for JournalSynthesizer with a mocked LLM client."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from journal.models import FALLBACK_TITLE
from journal.synthesis import JournalSynthesizer, SynthesisError, SynthesisProgress
from llm import TransportError

JOURNAL_JSON = json.dumps(
    {
        "title": "Coffee and Reports",
        "summary": "A productive day.",
        "mood": "☕️",
        "content": "Morning coffee.\\nThen work.",
        "insights": "Small rituals help.",
    }
)


async def _astream(*chunks):
    for c in chunks:
        yield c


class TestSynthesize:
    @pytest.mark.asyncio
    async def test_returns_parsed_output(self, mock_client, fragments):
        mock_client.complete.return_value = JOURNAL_JSON
        output = await JournalSynthesizer(mock_client).synthesize(fragments)

        assert output.title == "Coffee and Reports"
        assert output.content == "Morning coffee.\nThen work."
        system, user = mock_client.complete.call_args.args
        assert "expert ghostwriter" in system
        assert "Morning coffee at the corner cafe" in user

    @pytest.mark.asyncio
    async def test_unparseable_output_falls_back(self, mock_client, fragments):
        mock_client.complete.return_value = "Just prose, no JSON."
        output = await JournalSynthesizer(mock_client).synthesize(fragments)
        assert output.title == FALLBACK_TITLE
        assert output.content == "Just prose, no JSON."

    @pytest.mark.asyncio
    async def test_empty_fragments(self, mock_client):
        with pytest.raises(SynthesisError):
            await JournalSynthesizer(mock_client).synthesize([])
        mock_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_progress_stages(self, mock_client, fragments):
        mock_client.complete.return_value = JOURNAL_JSON
        stages = []
        await JournalSynthesizer(mock_client).synthesize(fragments, progress=stages.append)
        assert stages == [
            SynthesisProgress.STARTED,
            SynthesisProgress.GENERATING,
            SynthesisProgress.COMPLETED,
        ]

    @pytest.mark.asyncio
    async def test_progress_failed(self, mock_client, fragments):
        mock_client.complete.side_effect = TransportError("down")
        stages = []
        with pytest.raises(TransportError):
            await JournalSynthesizer(mock_client).synthesize(fragments, progress=stages.append)
        assert stages[-1] == SynthesisProgress.FAILED


class TestMemoryContext:
    @pytest.mark.asyncio
    async def test_memories_included(self, mock_client, fragments):
        mock_client.complete.return_value = JOURNAL_JSON
        retriever = MagicMock()
        retriever.retrieve_relevant.return_value = ["Fact: user_name = Hans"]

        synth = JournalSynthesizer(mock_client, retriever=retriever, retrieval_enabled=True)
        await synth.synthesize(fragments)

        _, user = mock_client.complete.call_args.args
        assert "Fact: user_name = Hans" in user

    @pytest.mark.asyncio
    async def test_retrieval_failure_does_not_abort(self, mock_client, fragments):
        mock_client.complete.return_value = JOURNAL_JSON
        retriever = MagicMock()
        retriever.retrieve_relevant.side_effect = RuntimeError("db locked")

        synth = JournalSynthesizer(mock_client, retriever=retriever, retrieval_enabled=True)
        output = await synth.synthesize(fragments)

        assert output.title == "Coffee and Reports"
        _, user = mock_client.complete.call_args.args
        assert "Background Context" not in user

    @pytest.mark.asyncio
    async def test_retrieval_disabled(self, mock_client, fragments):
        mock_client.complete.return_value = JOURNAL_JSON
        retriever = MagicMock()
        await JournalSynthesizer(mock_client, retriever=retriever).synthesize(fragments)
        retriever.retrieve_relevant.assert_not_called()


class TestStream:
    @pytest.mark.asyncio
    async def test_streams_chunks(self, fragments):
        client = MagicMock()
        client.stream = MagicMock(return_value=_astream("Today ", "was ", "good."))

        chunks = [c async for c in JournalSynthesizer(client).stream(fragments)]

        assert "".join(chunks) == "Today was good."
        system, _ = client.stream.call_args.args
        assert "Do not wrap in JSON" in system

    @pytest.mark.asyncio
    async def test_stream_empty_fragments(self):
        client = MagicMock()
        with pytest.raises(SynthesisError):
            [c async for c in JournalSynthesizer(client).stream([])]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_calls_on_one_instance_are_queued(self, mock_client, fragments):
        state = {"active": 0, "peak": 0}

        async def complete(system, user):
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
            await asyncio.sleep(0.01)
            state["active"] -= 1
            return JOURNAL_JSON

        mock_client.complete.side_effect = complete
        synthesizer = JournalSynthesizer(mock_client)

        outputs = await asyncio.gather(
            synthesizer.synthesize(fragments), synthesizer.synthesize(fragments)
        )

        assert [o.title for o in outputs] == ["Coffee and Reports"] * 2
        assert state["peak"] == 1

    @pytest.mark.asyncio
    async def test_early_close_closes_client_stream(self, fragments):
        closed = []

        async def chunks(system, user):
            try:
                for c in ["a", "b", "c"]:
                    yield c
            finally:
                closed.append(True)

        client = MagicMock()
        client.stream = chunks
        synthesizer = JournalSynthesizer(client)

        stream = synthesizer.stream(fragments)
        async for _ in stream:
            break
        await stream.aclose()

        assert closed == [True]
        assert not synthesizer._lock.locked()
