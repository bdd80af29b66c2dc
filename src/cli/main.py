"""CLI entry point for Wing."""

import sys
from contextlib import aclosing
from pathlib import Path

import click
import structlog
from rich.markdown import Markdown

from cli.commands import memory
from cli.utils import console, get_components, read_fragments, run_async
from llm import APIError, LLMError

logger = structlog.get_logger()


@click.group()
@click.version_option(version="0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Wing - AI diary from the day's fragments."""
    from cli.config import load_config_model
    from cli.logging_config import setup_logging

    try:
        config = load_config_model()
    except ValueError:
        # Reported by the command itself via get_components
        setup_logging(level="DEBUG" if verbose else "WARNING")
        return
    setup_logging(
        json_mode=config.logging.json_format,
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.paths.log_file,
        file_level=config.logging.file_level,
    )


cli.add_command(memory)


def _fail(e: LLMError) -> None:
    if isinstance(e, APIError):
        console.print(f"[red]API error {e.status_code}:[/] {e.message[:500]}")
    else:
        console.print(f"[red]{type(e).__name__}:[/] {e}")
    sys.exit(1)


@cli.command("probe")
def probe():
    """Check that the configured provider accepts the API key."""
    c = get_components()
    client = c["client"]

    async def _probe():
        async with client:
            return await client.probe()

    try:
        with console.status(f"Probing {client.adapter.provider_name}..."):
            run_async(_probe())
    except LLMError as e:
        _fail(e)
    console.print(f"[green]OK:[/] {client.adapter.provider_name} ({client.adapter.model})")


@cli.command("write")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--stream", "use_stream", is_flag=True, help="Stream plain markdown as it arrives")
def write(file: Path, use_stream: bool):
    """Write a diary entry from FILE (one fragment per line)."""
    from cli.retry import retry_from_config
    from journal.synthesis import JournalSynthesizer, SynthesisError
    from memory.retrieval import MemoryRetriever

    c = get_components()
    config = c["config"]
    fragments = read_fragments(file)

    retriever = None
    if config.memory.enabled and config.memory.retrieval_enabled:
        retriever = MemoryRetriever(
            c["repository"],
            max_memories=config.memory.max_context_memories,
            high_confidence_threshold=config.memory.high_confidence_threshold,
        )
    synthesizer = JournalSynthesizer(
        c["client"],
        c["prompts"],
        retriever=retriever,
        retrieval_enabled=retriever is not None,
        max_memories=config.memory.max_context_memories,
    )

    async def _stream():
        async with c["client"]:
            async with aclosing(synthesizer.stream(fragments)) as chunks:
                async for chunk in chunks:
                    console.print(chunk, end="", markup=False, highlight=False)
        console.print()

    @retry_from_config(config.retry)
    async def _synthesize():
        return await synthesizer.synthesize(fragments)

    async def _batch():
        async with c["client"]:
            return await _synthesize()

    try:
        if use_stream:
            run_async(_stream())
            return
        with console.status("Writing..."):
            output = run_async(_batch())
    except SynthesisError as e:
        console.print(f"[yellow]{e}[/]")
        return
    except LLMError as e:
        _fail(e)

    console.print(f"\n[bold]{output.mood} {output.title}[/]")
    console.print(f"[dim]{output.summary}[/]\n")
    console.print(Markdown(output.content))
    console.print(f"\n[cyan]Insight:[/] {output.insights}")


if __name__ == "__main__":
    cli()
