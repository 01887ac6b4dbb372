"""CLI entry point: ebookforge.

Usage:
  ebookforge serve                 run the HTTP API with workers and scheduler
  ebookforge worker                run the queue and scheduler without HTTP
  ebookforge generate -t THEME     generate one ebook and wait for it
  ebookforge sweep                 process due schedules once
  ebookforge trigger ID            run one schedule now
  ebookforge reprocess             backfill files for completed ebooks
  ebookforge ebooks / schedules    list rows for a user
"""

import asyncio
import logging
import sys

import click
from rich.progress import Progress, SpinnerColumn, TextColumn

from cli.theme import (
    app_header,
    command_panel,
    ebook_table,
    error_panel,
    file_table,
    get_console,
    schedule_table,
    status_text,
    success_panel,
)
from config.exceptions import EbookForgeError
from config.logging_config import setup_logging
from config.settings import Settings
from models.database import Database
from models.enums import EbookStatus

console = get_console()


def _init_logging(verbose: bool, settings: Settings, console_enabled: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=console_enabled or verbose)


def _build(settings: Settings):
    from workflow.pipeline import EbookGenerationPipeline
    from workflow.queue import GenerationQueue
    from workflow.scheduler import SchedulerWorker

    db = Database(settings.sqlite_db_path)
    pipeline = EbookGenerationPipeline(db, settings)
    queue = GenerationQueue(pipeline, workers=settings.generation_workers)
    scheduler = SchedulerWorker(db, queue.submit, settings=settings)
    return db, queue, scheduler


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, verbose):
    """ebookforge: AI ebook generation with recurring schedules."""
    settings = Settings()
    _init_logging(verbose, settings)
    ctx.meta["verbose"] = verbose
    ctx.obj = settings


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8000, type=int, help="Bind port")
@click.pass_obj
def serve(settings, host, port):
    """Run the HTTP API (queue workers and scheduler included)."""
    _init_logging(click.get_current_context().meta["verbose"], settings, console_enabled=True)
    import uvicorn
    from api.app import build_state, create_app

    console.print(app_header())
    console.print(command_panel("API", {"Address": f"http://{host}:{port}", "Database": settings.sqlite_db_path}))
    uvicorn.run(create_app(build_state(settings)), host=host, port=port, log_config=None)


@cli.command()
@click.pass_obj
def worker(settings):
    """Run generation workers and the scheduler loop until interrupted."""
    _init_logging(click.get_current_context().meta["verbose"], settings, console_enabled=True)
    console.print(app_header())
    console.print(command_panel("Worker", {
        "Workers": settings.generation_workers,
        "Sweep interval": f"{settings.scheduler_interval_seconds}s",
    }))

    async def _run():
        _, queue, scheduler = _build(settings)
        queue.start(recover=True)
        try:
            await scheduler.run_forever()
        finally:
            await queue.stop(timeout=5)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[muted]Stopped.[/]")


async def _drain(queue, label: str):
    with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console, transient=True) as progress:
        progress.add_task(label, total=None)
        await queue.join()


@cli.command()
@click.option("--wait/--no-wait", default=True, help="Wait for the queued ebooks to finish")
@click.pass_obj
def sweep(settings, wait):
    """Process due schedules once."""

    async def _run():
        db, queue, scheduler = _build(settings)
        created = await scheduler.sweep()
        if created and wait:
            queue.start(recover=False)
            await _drain(queue, f"Generating {len(created)} ebook(s)...")
            await queue.stop()
        return db, created

    db, created = asyncio.run(_run())
    if not created:
        console.print("[muted]No schedules were due.[/]")
        return
    console.print(ebook_table([db.get_ebook(i) for i in created if db.get_ebook(i)]))


@cli.command()
@click.argument("schedule_id", type=int)
@click.option("--wait/--no-wait", default=True, help="Wait for the queued ebook to finish")
@click.pass_obj
def trigger(settings, schedule_id, wait):
    """Run one schedule immediately."""

    async def _run():
        db, queue, scheduler = _build(settings)
        created = await scheduler.trigger_now(schedule_id)
        if created and wait:
            queue.start(recover=False)
            await _drain(queue, "Generating...")
            await queue.stop()
        return db, created

    try:
        db, created = asyncio.run(_run())
    except EbookForgeError as e:
        console.print(error_panel("Trigger failed", str(e)))
        sys.exit(1)
    if not created:
        console.print(f"[warning]Schedule {schedule_id} produced no ebook (inactive or finished).[/]")
        return
    console.print(ebook_table([db.get_ebook(i) for i in created if db.get_ebook(i)]))


@cli.command()
@click.option("--theme", "-t", required=True, help="Ebook theme")
@click.option("--author", "-a", required=True, help="Author name printed in the ebook")
@click.option("--chapters", "-c", default=None, type=int, help="Number of chapters (3-10)")
@click.option("--languages", "-l", default=None, help="Comma-separated codes, first is primary (e.g. pt,en,es)")
@click.option("--user", "-u", "user_id", default=1, type=int, help="Owner user id")
@click.pass_obj
def generate(settings, theme, author, chapters, languages, user_id):
    """Create an ebook and wait for generation to finish."""
    from api import services

    console.print(app_header())
    console.print(command_panel("New ebook", {
        "Theme": theme,
        "Author": author,
        "Chapters": settings.default_num_chapters if chapters is None else chapters,
        "Languages": languages or settings.default_languages,
    }))

    async def _run():
        db, queue, _ = _build(settings)
        result = await services.create_ebook(
            db, user_id, queue.submit, theme=theme, author=author,
            num_chapters=chapters, languages=languages, settings=settings,
        )
        queue.start(recover=False)
        await _drain(queue, "Generating content, translations and covers...")
        await queue.stop()
        return db, result["id"]

    try:
        db, ebook_id = asyncio.run(_run())
    except EbookForgeError as e:
        console.print(error_panel("Invalid request", str(e)))
        sys.exit(1)

    ebook = db.get_ebook(ebook_id)
    if ebook.status == EbookStatus.COMPLETED:
        console.print(success_panel(ebook.title, f"Ebook {ebook.id} {status_text(ebook.status)}"))
    else:
        console.print(error_panel(f"Ebook {ebook.id}", ebook.error_message or "generation failed"))
    files = db.get_ebook_files(ebook_id)
    if files:
        console.print(file_table(files))
    if ebook.status != EbookStatus.COMPLETED:
        sys.exit(1)


@cli.command()
@click.pass_obj
def reprocess(settings):
    """Backfill language files for completed ebooks that have none."""
    from workflow.pipeline import EbookGenerationPipeline

    console.print(app_header())
    pipeline = EbookGenerationPipeline(Database(settings.sqlite_db_path), settings)

    async def _run():
        with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console, transient=True) as progress:
            progress.add_task("Regenerating language files...", total=None)
            return await pipeline.backfill_files()

    result = asyncio.run(_run())
    console.print(command_panel("Reprocess", {
        "Processed": result["processed"],
        "Failed": result["failed"],
        "Skipped": result["skipped"],
        "Total": result["total"],
    }))
    if result["failed"]:
        sys.exit(1)


@cli.command()
@click.option("--user", "-u", "user_id", default=1, type=int, help="Owner user id")
@click.option("--id", "ebook_id", default=None, type=int, help="Show one ebook's files")
@click.pass_obj
def ebooks(settings, user_id, ebook_id):
    """List ebooks, or the language files of one ebook."""
    db = Database(settings.sqlite_db_path)
    if ebook_id is None:
        rows = db.list_ebooks(user_id)
        if not rows:
            console.print("[muted]No ebooks yet.[/]")
            return
        console.print(ebook_table(rows))
        return

    ebook = db.get_ebook(ebook_id)
    if ebook is None or ebook.user_id != user_id:
        console.print(f"[error]Ebook {ebook_id} not found[/]")
        sys.exit(1)
    console.print(ebook_table([ebook]))
    console.print(file_table(db.get_ebook_files(ebook_id)))


@cli.command()
@click.option("--user", "-u", "user_id", default=1, type=int, help="Owner user id")
@click.pass_obj
def schedules(settings, user_id):
    """List recurring schedules."""
    db = Database(settings.sqlite_db_path)
    rows = db.list_schedules(user_id)
    if not rows:
        console.print("[muted]No schedules yet.[/]")
        return
    console.print(schedule_table(rows))


def main():
    cli()


if __name__ == "__main__":
    main()
