"""Shared CLI utilities."""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

import structlog
from rich.console import Console

console = Console()
logger = structlog.get_logger()


def get_components(skip_llm: bool = False):
    """Initialize all components from config.

    Args:
        skip_llm: If True, skip LLM client init (for commands that only touch the store)
    """
    from cli.config import load_config_model
    from journal.prompts import PromptBuilder
    from llm import LLMError, create_llm_client
    from memory.store import SQLiteMemoryRepository

    try:
        config = load_config_model()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    repository = SQLiteMemoryRepository(config.paths.memory_db)
    prompts = PromptBuilder.from_config(config.journal)

    client = None
    if not skip_llm:
        try:
            client = create_llm_client(config.llm)
        except LLMError as e:
            console.print(f"[red]Config error:[/] {e}")
            sys.exit(1)

    return {
        "config": config,
        "repository": repository,
        "prompts": prompts,
        "client": client,
    }


def run_async(coro):
    """Run a coroutine to completion from a sync click command."""
    return asyncio.run(coro)


def read_fragments(path: Path):
    """One text fragment per non-empty line, timestamped from the file's mtime."""
    from journal.models import Fragment

    base = int(path.stat().st_mtime * 1000)
    lines = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    return [
        Fragment(content=line, timestamp=base + i)
        for i, line in enumerate(l for l in lines if l)
    ]


def parse_entry_date(value: str) -> int:
    """YYYY-MM-DD to local-midnight epoch milliseconds."""
    return int(datetime.strptime(value, "%Y-%m-%d").timestamp() * 1000)
