"""CLI interface for cronsync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .app import Application
from .config import Config, load_config
from .exceptions import ConfigError, InvalidScheduleError, SchedulerError, StorageError
from .scheduler import parse_schedule
from .utils import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, format_size

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Configure logging for the whole process.

    Args:
        verbose: Enable debug output (including botocore and apscheduler)
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    logging.getLogger("cronsync").setLevel(level)
    if not verbose:
        # Third-party libraries are chatty at INFO
        for name in ("botocore", "boto3", "s3transfer", "urllib3", "apscheduler"):
            logging.getLogger(name).setLevel(logging.WARNING)


def _load(ctx: Any) -> Config:
    config_path: Path = ctx.obj["config_path"]
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


def _build_app(ctx: Any, config: Config) -> Application:
    try:
        return Application.from_config(config)
    except (StorageError, SchedulerError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.exit(1)
        raise  # Unreachable, but helps type checker


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    envvar=CONFIG_PATH_ENV,
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the YAML configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: Any, config_path: Path, verbose: bool) -> None:
    """cronsync - Mirror local directories into S3 buckets on a cron schedule."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@main.command()
@click.pass_context
def run(ctx: Any) -> None:
    """Run the scheduler until SIGINT or SIGTERM.

    Pending uploads are finished before the process exits.
    """
    config = _load(ctx)
    app = _build_app(ctx, config)
    app.run_forever()


@main.command()
@click.pass_context
def once(ctx: Any) -> None:
    """Run every task once, wait for the uploads and exit."""
    config = _load(ctx)
    app = _build_app(ctx, config)

    try:
        results, stats = app.run_once()
    except KeyboardInterrupt:
        console.print("[yellow]Sync cancelled by user[/yellow]")
        ctx.exit(130)
        return

    table = Table(title="Sync summary")
    table.add_column("Task")
    table.add_column("Local files", justify="right")
    table.add_column("Already remote", justify="right")
    table.add_column("Queued", justify="right")
    table.add_column("Status")
    for key, result in results.items():
        status = "[red]aborted[/red]" if result.get("aborted") else "[green]ok[/green]"
        table.add_row(
            key,
            str(result.get("scanned", 0)),
            str(result.get("present", 0)),
            str(result.get("queued", 0)),
            status,
        )
    console.print(table)

    failed = stats["open_failed"] + stats["upload_failed"]
    console.print(
        f"Uploaded {stats['uploaded']} file(s) ({format_size(stats['bytes'])}), "
        f"{failed} failed"
    )


@main.command()
@click.option(
    "--timezone",
    default=None,
    help="Timezone used to validate schedules (defaults to local time)",
)
@click.pass_context
def check(ctx: Any, timezone: Optional[str]) -> None:
    """Validate the configuration file without contacting the remote."""
    config = _load(ctx)

    table = Table(title=str(ctx.obj["config_path"]))
    table.add_column("Bucket")
    table.add_column("Task")
    table.add_column("Local path")
    table.add_column("Remote prefix")
    table.add_column("Schedule")

    invalid = 0
    for bucket, task in config.tasks:
        try:
            parse_schedule(task.schedule, timezone=timezone)
            schedule = escape(task.schedule)
        except InvalidScheduleError as e:
            invalid += 1
            schedule = f"[red]{escape(str(e))}[/red]"
        table.add_row(
            bucket.name, task.name, task.local_path, task.remote_path or "/", schedule
        )

    console.print(table)
    console.print(
        f"Concurrency: {config.concurrency}, queue size: "
        f"{config.queue_size or 'unbounded'}, overlap: {config.overlap}"
    )
    if invalid:
        console.print(f"[yellow]{invalid} task(s) have an invalid schedule[/yellow]")
        ctx.exit(1)


if __name__ == "__main__":
    main()
