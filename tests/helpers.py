"""Test doubles shared by the cronkeep tests."""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

from cronkeep.errors import StorageError
from cronkeep.scheduler.job import CronJob, JobResult
from cronkeep.store import SQLRunRecordStore
from cronkeep.timeutil import utc_now


class FakeJob(CronJob):
    """Configurable job for tests.

    ``outcomes`` is consumed one entry per run: a JobResult (or None) is
    returned, an exception is raised. When exhausted, runs return None.
    """

    def __init__(
        self,
        job_type: str = "cleanup",
        first_run: Optional[datetime] = None,
        interval: timedelta = timedelta(hours=1),
        outcomes: Optional[List[Any]] = None,
    ) -> None:
        self._type = job_type
        self._first_run = first_run
        self._interval = interval
        self._outcomes = list(outcomes or [])
        self.calls = 0
        self.ran = asyncio.Event()
        self.on_run: Optional[Callable[[], Any]] = None

    @property
    def type(self) -> str:
        return self._type

    def schedule_first_run(self) -> datetime:
        return self._first_run if self._first_run is not None else utc_now()

    def default_run_interval(self) -> timedelta:
        return self._interval

    async def run(self) -> Optional[JobResult]:
        self.calls += 1
        self.ran.set()
        if self.on_run is not None:
            await self.on_run()
        outcome = self._outcomes.pop(0) if self._outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FailingStore:
    """Store wrapper that raises StorageError from selected operations."""

    def __init__(self, store: SQLRunRecordStore, fail_on: str) -> None:
        self._store = store
        self.fail_on = fail_on

    def _maybe_fail(self, operation: str) -> None:
        if operation == self.fail_on:
            raise StorageError("simulated storage failure", operation=operation)

    def find_active_job(self, job_type):
        self._maybe_fail("find_active_job")
        return self._store.find_active_job(job_type)

    def insert_job(self, record):
        self._maybe_fail("insert_job")
        return self._store.insert_job(record)

    def update_job(self, record):
        self._maybe_fail("update_job")
        return self._store.update_job(record)

    def insert_run(self, run):
        self._maybe_fail("insert_run")
        return self._store.insert_run(run)

    def update_run(self, run):
        self._maybe_fail("update_run")
        return self._store.update_run(run)


async def wait_for_calls(job: FakeJob, count: int, timeout: float = 5.0) -> None:
    """Wait until a FakeJob has been run ``count`` times."""
    async def _poll() -> None:
        while job.calls < count:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)
