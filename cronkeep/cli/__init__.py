"""CLI command modules for cronkeep."""

from cronkeep.cli import db, history, jobs
from cronkeep.cli.exit_codes import ExitCode

__all__ = [
    "ExitCode",
    "db",
    "history",
    "jobs",
]
