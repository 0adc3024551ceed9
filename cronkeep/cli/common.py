"""Helpers shared by the CLI command modules."""

from datetime import datetime
from typing import NoReturn, Optional

import typer
from rich.console import Console

from cronkeep.cli.exit_codes import ExitCode
from cronkeep.config import get_config, validate_config
from cronkeep.errors import StorageError
from cronkeep.store import SQLRunRecordStore

console = Console()
err_console = Console(stderr=True)


def format_time(value: Optional[datetime], empty: str = "-") -> str:
    """Format a stored UTC timestamp for display."""
    if value is None:
        return empty
    return value.strftime("%Y-%m-%d %H:%M:%S")


def open_store() -> SQLRunRecordStore:
    """Build a record store from the global configuration.

    Exits with CONFIGURATION_ERROR if the configuration is invalid.
    """
    config = get_config()
    problems = [p for p in validate_config(config) if p.severity == "error"]
    if problems:
        for problem in problems:
            err_console.print(f"[red]{problem}[/red]")
        raise typer.Exit(code=ExitCode.CONFIGURATION_ERROR)
    return SQLRunRecordStore(config)


def fail_storage(error: StorageError) -> NoReturn:
    """Report a storage error and exit."""
    err_console.print(f"[red]Storage error:[/red] {error}")
    raise typer.Exit(code=ExitCode.STORAGE_ERROR)
