"""Shared test fixtures for Wing."""

import json
import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from journal.models import Fragment  # noqa: E402
from memory.store import SQLiteMemoryRepository  # noqa: E402


def ms(year, month, day, hour=0, minute=0) -> int:
    """Local datetime to epoch milliseconds."""
    return int(datetime(year, month, day, hour, minute).timestamp() * 1000)


def sse_body(*contents, done=True) -> str:
    """Chat-completion SSE stream carrying the given delta contents."""
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": c}}]}) for c in contents
    ]
    if done:
        lines.append("data: [DONE]")
    return "\n\n".join(lines) + "\n\n"


def gemini_chunk(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def repo(tmp_path):
    return SQLiteMemoryRepository(tmp_path / "memory.db")


@pytest.fixture
def fragments():
    return [
        Fragment(content="Finished the quarterly report", timestamp=ms(2026, 2, 5, 18, 30)),
        Fragment(content="Morning coffee at the corner cafe", timestamp=ms(2026, 2, 5, 8, 15)),
    ]


@pytest.fixture
def mock_client():
    """LLMClient stand-in with async complete/stream."""
    client = MagicMock()
    client.complete = AsyncMock()
    return client


@pytest.fixture
def make_http():
    """Build an httpx.AsyncClient whose transport is a handler function."""

    def _make(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
