"""Memory CLI commands: extract, status, list, candidates, merge, clear."""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from cli.utils import get_components, parse_entry_date, run_async
from shared_types import MemoryType

console = Console()

TYPE_CHOICE = click.Choice([t.value for t in MemoryType])


@click.group()
def memory():
    """Long-term memory extracted from diary entries."""
    pass


@memory.command("extract")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--entry-id", required=True, help="Source entry id recorded on each memory")
@click.option("--date", "entry_date", required=True, help="Entry date (YYYY-MM-DD)")
def memory_extract(file: Path, entry_id: str, entry_date: str):
    """Extract memories from a diary entry's markdown FILE."""
    from cli.retry import retry_from_config
    from llm import LLMError
    from memory.extractor import MemoryExtractor

    try:
        created_at = parse_entry_date(entry_date)
    except ValueError:
        console.print(f"[red]Invalid date: {entry_date}[/] (expected YYYY-MM-DD)")
        sys.exit(1)

    c = get_components()
    if not c["config"].memory.enabled:
        console.print("[yellow]Memory is disabled in config.[/]")
        return

    extractor = MemoryExtractor(c["repository"], c["client"], c["prompts"])
    content = file.read_text(encoding="utf-8")

    @retry_from_config(c["config"].retry)
    async def _extract():
        return await extractor.extract(entry_id, content, created_at)

    async def _run():
        async with c["client"]:
            return await _extract()

    try:
        with console.status("Extracting memories..."):
            report = run_async(_run())
    except LLMError as e:
        console.print(f"[red]{type(e).__name__}:[/] {e}")
        sys.exit(1)

    console.print(
        f"Semantic: {report.semantic_added} added, {report.semantic_merged} merged\n"
        f"Episodic: {report.episodic_added} added, {report.episodic_skipped} skipped\n"
        f"Procedural: {report.procedural_added} added, {report.procedural_merged} merged"
    )


@memory.command("status")
def memory_status():
    """Show memory counts by type."""
    c = get_components(skip_llm=True)
    stats = c["repository"].stats()

    console.print(f"Total memories: {sum(stats.values())}")
    for memory_type, count in stats.items():
        console.print(f"  {memory_type}: {count}")


def _memory_table(memory_type: MemoryType, rows) -> Table:
    table = Table(title=f"{memory_type.value.title()} Memories")
    table.add_column("ID", style="dim", width=8)
    if memory_type == MemoryType.SEMANTIC:
        table.add_column("Key", style="cyan")
        table.add_column("Value")
        table.add_column("Conf", width=5)
        table.add_column("Sources", width=7)
        for m in rows:
            table.add_row(
                m.id[:8], m.key, m.value[:80], f"{m.confidence:.1f}", str(len(m.source_entry_ids))
            )
    elif memory_type == MemoryType.EPISODIC:
        table.add_column("Date", style="cyan", width=10)
        table.add_column("Event")
        table.add_column("Emotion", width=12)
        for m in rows:
            table.add_row(m.id[:8], m.date, m.event[:80], m.emotion or "")
    else:
        table.add_column("Pattern", style="cyan")
        table.add_column("Preference")
        table.add_column("Freq", width=5)
        for m in rows:
            table.add_row(m.id[:8], m.pattern[:50], m.preference[:50], str(m.frequency))
    return table


@memory.command("list")
@click.option("--type", "-t", "type_", type=TYPE_CHOICE, default=None, help="Filter by type")
def memory_list(type_: str | None):
    """List stored memories, one table per type."""
    from memory.models import MEMORY_MODELS

    c = get_components(skip_llm=True)
    types = [MemoryType(type_)] if type_ else list(MemoryType)

    shown = 0
    for memory_type in types:
        rows = c["repository"].fetch_all(MEMORY_MODELS[memory_type])
        if rows:
            console.print(_memory_table(memory_type, rows))
            shown += len(rows)

    if not shown:
        console.print("No memories stored.")


@memory.command("candidates")
@click.option("--type", "-t", "type_", type=TYPE_CHOICE, required=True)
def memory_candidates(type_: str):
    """Show groups of probably-duplicate memories."""
    from memory.merge import MergeCandidateFinder

    c = get_components(skip_llm=True)
    cfg = c["config"].memory
    finder = MergeCandidateFinder(
        c["repository"],
        episodic_threshold=cfg.episodic_cluster_threshold,
        procedural_threshold=cfg.procedural_cluster_threshold,
    )
    groups = finder.find(MemoryType(type_))

    if not groups:
        console.print("No merge candidates.")
        return

    for group in groups:
        console.print(f"\n[cyan]{group.group_key}[/] ({len(group.memory_ids)} memories)")
        console.print(f"  Suggested: {group.suggested_content}")
        for memory_id in group.memory_ids:
            console.print(f"  [dim]{memory_id}[/]")


@memory.command("merge")
@click.option("--type", "-t", "type_", type=TYPE_CHOICE, required=True)
@click.option("--keep", "keeper_id", required=True, help="Id of the memory to keep")
@click.argument("discard_ids", nargs=-1, required=True)
def memory_merge(type_: str, keeper_id: str, discard_ids: tuple[str, ...]):
    """Merge DISCARD_IDS into the kept memory and delete them."""
    from memory.merge import MergeExecutor

    c = get_components(skip_llm=True)
    deleted = MergeExecutor(c["repository"]).merge(keeper_id, list(discard_ids), MemoryType(type_))
    console.print(f"Merged {deleted} memories into {keeper_id[:8]}")


@memory.command("clear")
@click.option("--type", "-t", "type_", type=TYPE_CHOICE, required=True)
@click.confirmation_option(prompt="Delete ALL memories of this type? This cannot be undone.")
def memory_clear(type_: str):
    """Delete all memories of one type."""
    from memory.models import MEMORY_MODELS

    c = get_components(skip_llm=True)
    count = c["repository"].clear(MEMORY_MODELS[MemoryType(type_)])
    console.print(f"Deleted {count} {type_} memories")
