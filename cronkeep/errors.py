"""Exceptions raised by the cronkeep scheduler."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cronkeep.scheduler.job import JobResult


class CronkeepError(Exception):
    """Base exception for cronkeep errors."""
    pass


class StorageError(CronkeepError):
    """Raised when the run record store fails to read or write.

    This is the only error that stops a scheduler loop. The underlying
    driver exception is kept as ``__cause__``.
    """

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.message} (operation: {self.operation})"
        return self.message


class JobFailed(CronkeepError):
    """Raised by a job to report a failure while still steering its schedule.

    The attached result is handled like a returned one: its payload is
    recorded and its ``next_run`` / ``never_run_again`` fields decide the
    next run.
    """

    def __init__(self, message: str, result: JobResult | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.result = result
