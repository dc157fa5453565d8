"""Command-line interface for the Anki word queue."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click
import structlog

from .config import PROMPT_CONFIG_FILE, WORD_QUEUE_FILE
from .errors import WordQueueError
from .models import WordStatus
from .service import WordQueueService
from .utils import load_words_from_file

log = structlog.get_logger()


def configure_logging(verbose: bool = False):
    """JSON logs by default, readable console logs with ``--verbose``."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING, format="%(message)s")
    renderer = structlog.dev.ConsoleRenderer() if verbose else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def run_with_service(ctx: click.Context, action):
    """Run ``action(service)`` in a fresh event loop and close the service after."""

    async def _run():
        async with WordQueueService.from_paths(ctx.obj["queue_file"], ctx.obj["prompt_file"]) as service:
            return await action(service)

    try:
        return asyncio.run(_run())
    except WordQueueError as e:
        raise click.ClickException(str(e))


def echo_json(data):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


STATUS_CHOICE = click.Choice([s.value for s in WordStatus])


@click.group()
@click.option(
    "--queue-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=WORD_QUEUE_FILE,
    show_default=True,
    help="JSON file holding the word queue"
)
@click.option(
    "--prompt-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=PROMPT_CONFIG_FILE,
    show_default=True,
    help="Prompt override file"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose logging"
)
@click.pass_context
def main(ctx: click.Context, queue_file: Path, prompt_file: Path, verbose: bool):
    """Generate GRE vocabulary flashcards with OpenAI and push them to Anki."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["queue_file"] = queue_file
    ctx.obj["prompt_file"] = prompt_file


@main.command()
@click.argument("words", nargs=-1)
@click.option(
    "-i", "--input",
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Input file with words (one per line)"
)
@click.pass_context
def add(ctx: click.Context, words, input_file: Optional[Path]):
    """Add words and generate their content."""
    text = "\n".join(words)
    if input_file:
        text += "\n" + "\n".join(load_words_from_file(input_file))

    async def action(service: WordQueueService):
        entries = await service.submit_words(text)
        await service.wait_idle()
        return entries

    entries = run_with_service(ctx, action)
    if not entries:
        raise click.ClickException("No words given")
    click.echo(f"Added {len(entries)} word(s)")


@main.command()
@click.argument("word_id")
@click.pass_context
def regenerate(ctx: click.Context, word_id: str):
    """Generate content again for WORD_ID."""

    async def action(service: WordQueueService):
        await service.regenerate(word_id)
        await service.wait_idle()

    run_with_service(ctx, action)
    click.echo(f"Regenerated {word_id}")


@main.command()
@click.pass_context
def resume(ctx: click.Context):
    """Generate content for words still pending from an earlier run."""

    async def action(service: WordQueueService):
        count = await service.resume_pending()
        await service.wait_idle()
        return count

    count = run_with_service(ctx, action)
    click.echo(f"Processed {count} pending word(s)")


@main.command(name="list")
@click.option("--status", type=STATUS_CHOICE, help="Only show words in this status")
@click.option("--json", "as_json", is_flag=True, help="Print full records as JSON")
@click.pass_context
def list_words(ctx: click.Context, status: Optional[str], as_json: bool):
    """List words in the queue."""

    async def action(service: WordQueueService):
        return await service.list_words(WordStatus(status) if status else None)

    entries = run_with_service(ctx, action)
    if as_json:
        echo_json([e.model_dump(mode="json") for e in entries])
        return
    for entry in entries:
        click.echo(f"{entry.id}  {entry.status.value:<17}  {entry.word}")


@main.command()
@click.argument("word_id")
@click.pass_context
def delete(ctx: click.Context, word_id: str):
    """Delete WORD_ID from the queue."""
    removed = run_with_service(ctx, lambda service: service.delete(word_id))
    click.echo(f"Deleted {removed.word}")


@main.command()
@click.option("--status", type=STATUS_CHOICE, help="Only remove words in this status")
@click.confirmation_option(prompt="Remove words from the queue?")
@click.pass_context
def clear(ctx: click.Context, status: Optional[str]):
    """Remove all words, or all words in one status."""
    if status:
        removed = run_with_service(ctx, lambda service: service.clear_by_status(WordStatus(status)))
    else:
        removed = run_with_service(ctx, lambda service: service.clear_all())
    click.echo(f"Removed {removed} word(s)")


@main.command()
@click.argument("word_id")
@click.pass_context
def approve(ctx: click.Context, word_id: str):
    """Approve WORD_ID for export."""
    entry = run_with_service(ctx, lambda service: service.approve(word_id))
    click.echo(f"Approved {entry.word}")


@main.command()
@click.argument("word_id")
@click.pass_context
def reject(ctx: click.Context, word_id: str):
    """Reject WORD_ID so it is never exported."""
    entry = run_with_service(ctx, lambda service: service.reject(word_id))
    click.echo(f"Rejected {entry.word}")


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show queue counts and AnkiConnect connectivity."""

    async def action(service: WordQueueService):
        entries = await service.list_words()
        counts = {s.value: sum(1 for e in entries if e.status == s) for s in WordStatus}
        return {
            "queue": service.queue_status().model_dump(),
            "words": counts,
            "anki": (await service.anki_status()).model_dump(),
        }

    echo_json(run_with_service(ctx, action))


@main.command()
@click.pass_context
def export(ctx: click.Context):
    """Create Anki cards for every word ready for export."""
    result = run_with_service(ctx, lambda service: service.export())
    echo_json(result.model_dump())
    if not result.success:
        raise click.ClickException(result.message)


@main.command()
@click.pass_context
def sync(ctx: click.Context):
    """Ask Anki to sync with AnkiWeb."""
    result = run_with_service(ctx, lambda service: service.sync())
    if not result.success:
        raise click.ClickException(f"{result.error}. {result.message}")
    click.echo(result.message)


@main.command(name="config")
@click.pass_context
def show_config(ctx: click.Context):
    """Show the prompt templates in effect."""

    async def action(service: WordQueueService):
        return service.prompt_config()

    echo_json(run_with_service(ctx, action).model_dump())


if __name__ == "__main__":
    main()
