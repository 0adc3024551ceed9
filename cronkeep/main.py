"""Main CLI entry point for cronkeep."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from cronkeep import __app_name__, __version__
from cronkeep.cli import db, history, jobs
from cronkeep.cli.exit_codes import ExitCode
from cronkeep.config import get_config, load_config, set_config
from cronkeep.logging_setup import setup_logging

# Create the main Typer app
app = typer.Typer(
    name=__app_name__,
    help="cronkeep - inspect a persistent recurring-job scheduler.",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

# Register command groups
app.add_typer(jobs.app, name="jobs")
app.add_typer(history.app, name="history")
app.add_typer(db.app, name="db")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{__app_name__} v{__version__}")
        raise typer.Exit(code=ExitCode.SUCCESS)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a config file (default: ~/.config/cronkeep/config.toml).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output (INFO level logging).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode (DEBUG level logging).",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log to file (logs DEBUG level regardless of console settings).",
    ),
) -> None:
    """cronkeep - inspect a persistent recurring-job scheduler.

    [bold]Commands:[/bold]

    • [cyan]jobs[/cyan] - List, show and retire job records
    • [cyan]history[/cyan] - Show and prune run history
    • [cyan]db[/cyan] - Create the database tables

    [bold]Examples:[/bold]

        cronkeep jobs list
        cronkeep history show cleanup --limit 5
        cronkeep history prune --days 7
    """
    if config_file is not None:
        if not config_file.exists():
            console.print(f"[red]Config file not found: {config_file}[/red]")
            raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)
        set_config(load_config(config_file))

    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    setup_logging(level=level, log_file=log_file or get_config().logging.file)

    logger = logging.getLogger(__name__)
    logger.debug(f"cronkeep v{__version__} starting")


def run() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    run()
