"""Job definitions run by the scheduler.

A job is any subclass of ``CronJob``: it names itself, says when it should
first run, gives a default spacing between runs, and does the work. The
scheduler never looks past these four operations.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from croniter import croniter

from cronkeep.errors import JobFailed
from cronkeep.timeutil import to_naive_utc, utc_now


@dataclass
class JobResult:
    """What a job reports back after running.

    Attributes:
        result: Payload recorded with the run (must be JSON serializable)
        next_run: Explicit next run time, used instead of the default interval
        never_run_again: Terminate the schedule after this run
    """

    result: Optional[Dict[str, Any]] = None
    next_run: Optional[datetime] = None
    never_run_again: bool = False


class CronJob(ABC):
    """Abstract base class for recurring jobs.

    Subclasses must implement:
    - ``type`` property: unique, stable identifier of the job
    - ``schedule_first_run``: when the job runs for the first time ever
    - ``default_run_interval``: time until the next run when the job does
      not choose one itself
    - ``run``: the work itself

    ``run`` signals failure by raising. The message is recorded with the
    run and the schedule continues. Raise ``JobFailed`` with a result
    attached to also choose the next run time.

    Example:
        class CleanupJob(CronJob):
            @property
            def type(self) -> str:
                return "cleanup"

            def schedule_first_run(self) -> datetime:
                return utc_now()

            def default_run_interval(self) -> timedelta:
                return timedelta(hours=1)

            async def run(self) -> Optional[JobResult]:
                removed = await purge_expired_sessions()
                return JobResult(result={"removed": removed})
    """

    @property
    @abstractmethod
    def type(self) -> str:
        """Unique identifier for this job.

        Used as the key of the persisted job record, so it must not change
        between deployments.
        """
        pass

    @abstractmethod
    def schedule_first_run(self) -> datetime:
        """Time of the first run when no job record exists yet."""
        pass

    @abstractmethod
    def default_run_interval(self) -> timedelta:
        """Default time from the end of a run until the next one."""
        pass

    @abstractmethod
    async def run(self) -> Optional[JobResult]:
        """Execute the job.

        Returns:
            Optional result describing the payload and rescheduling
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} type={self.type!r}>"


def next_cron_time(expression: str, after: Optional[datetime] = None) -> datetime:
    """Calculate the next fire time of a cron expression in UTC.

    Supports both 5-part (minute hour day month weekday) and 6-part
    (second minute hour day month weekday) formats.

    Args:
        expression: Cron expression
        after: Reference time (defaults to now)

    Returns:
        Next fire time as a naive UTC datetime

    Raises:
        ValueError: If the expression is invalid
    """
    parts = expression.split()
    if len(parts) not in (5, 6):
        raise ValueError(
            f"Invalid cron expression: '{expression}'. "
            "Expected 5 or 6 parts (minute hour day month weekday "
            "or second minute hour day month weekday)"
        )

    if len(parts) == 6:
        # croniter expects seconds as the trailing field
        expression = " ".join(parts[1:] + parts[:1])

    start = to_naive_utc(after or utc_now()).replace(tzinfo=timezone.utc)
    try:
        cron = croniter(expression, start)
    except (KeyError, ValueError) as e:
        raise ValueError(f"Invalid cron expression: '{expression}': {e}") from e

    return to_naive_utc(cron.get_next(datetime))


class CronExpressionJob(CronJob):
    """Base class for jobs scheduled by a cron expression.

    The first run is the next fire time of ``schedule``; after each run the
    job asks to be scheduled at the following fire time. Subclasses
    implement ``execute`` and may return a payload mapping from it.

    Example:
        class NightlyReport(CronExpressionJob):
            schedule = "0 2 * * *"

            @property
            def type(self) -> str:
                return "nightly-report"

            async def execute(self) -> Optional[Dict[str, Any]]:
                rows = await build_report()
                return {"rows": rows}
    """

    schedule: str = "0 * * * *"  # Default: hourly

    def schedule_first_run(self) -> datetime:
        return next_cron_time(self.schedule)

    def default_run_interval(self) -> timedelta:
        """Spacing between the next two fire times of the schedule."""
        first = next_cron_time(self.schedule)
        return next_cron_time(self.schedule, first) - first

    @abstractmethod
    async def execute(self) -> Optional[Dict[str, Any]]:
        """Do the work and optionally return a payload to record."""
        pass

    async def run(self) -> Optional[JobResult]:
        """Run ``execute`` and schedule the next fire time.

        A failure keeps the job on its cron schedule: errors from
        ``execute`` are re-raised as ``JobFailed`` carrying the next fire
        time, unless a ``JobFailed`` already chose its own result.
        """
        try:
            payload = await self.execute()
        except JobFailed as e:
            if e.result is None:
                e.result = JobResult(next_run=next_cron_time(self.schedule))
            raise
        except Exception as e:
            message = str(e) or e.__class__.__name__
            raise JobFailed(
                message,
                result=JobResult(next_run=next_cron_time(self.schedule)),
            ) from e
        return JobResult(result=payload, next_run=next_cron_time(self.schedule))
