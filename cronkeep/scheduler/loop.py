"""Per-job scheduler loop.

Each registered job gets one ``SchedulerLoop``. The loop waits until the
job's persisted ``next_run_at``, runs it through the ``JobRunner``, and
repeats until the schedule terminates or the shared stop event is set.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum, auto
from typing import Optional

from cronkeep.database.models import CronJobRecord
from cronkeep.errors import StorageError
from cronkeep.scheduler.job import CronJob
from cronkeep.scheduler.runner import JobRunner
from cronkeep.store import RunRecordStore
from cronkeep.timeutil import to_naive_utc, utc_now

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """State of a scheduler loop."""

    WAITING = auto()  # Waiting for the next run time or the stop event
    RUNNING = auto()  # A run is in flight
    STOPPED = auto()  # Stop requested, schedule terminated, or storage failed


class SchedulerLoop:
    """Drives one job's recurring execution.

    A run in flight is never interrupted: the stop event is only looked at
    while waiting, so a pending stop takes effect after the current run has
    been persisted.

    Example:
        loop = SchedulerLoop(job, store)
        await loop.run(stop_event)
    """

    def __init__(
        self,
        job: CronJob,
        store: RunRecordStore,
        runner: Optional[JobRunner] = None,
    ) -> None:
        """Initialize the loop.

        Args:
            job: The job to schedule
            store: Record store for job records and runs
            runner: Runner for single executions (created from store if None)
        """
        self._job = job
        self._store = store
        self._runner = runner or JobRunner(store)
        self._state = LoopState.WAITING
        self._iterations = 0

    @property
    def job(self) -> CronJob:
        return self._job

    @property
    def state(self) -> LoopState:
        """Current state of the loop."""
        return self._state

    @property
    def iterations(self) -> int:
        """Number of runs executed by this loop."""
        return self._iterations

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run the job on its schedule until stopped.

        Args:
            stop_event: Shared event; once set the loop stops waiting and exits

        Raises:
            StorageError: If the job record or a run cannot be read or saved
        """
        try:
            record = self._load_or_create_record()

            while True:
                if record.next_run_at is None:
                    logger.info(f"Job '{self._job.type}' has no next run, schedule terminated")
                    break

                if record.is_deleted:
                    logger.info(
                        f"Job record {record.id} for '{self._job.type}' was retired, "
                        "leaving loop until the next start"
                    )
                    break

                if stop_event.is_set():
                    logger.debug(f"Stop requested, leaving loop for job '{self._job.type}'")
                    break

                self._state = LoopState.WAITING
                if await self._wait_until(record.next_run_at, stop_event):
                    logger.debug(f"Stop requested while job '{self._job.type}' was waiting")
                    break

                self._state = LoopState.RUNNING
                record = await self._runner.execute_once(self._job, record)
                self._iterations += 1
        except StorageError:
            logger.debug(f"Storage failure in loop for job '{self._job.type}'", exc_info=True)
            raise
        finally:
            self._state = LoopState.STOPPED

    def _load_or_create_record(self) -> CronJobRecord:
        """Find the active job record, creating it on first encounter."""
        record = self._store.find_active_job(self._job.type)
        if record is not None:
            logger.debug(
                f"Resuming job '{self._job.type}' (record {record.id}), "
                f"next run: {record.next_run_at or 'never'}"
            )
            return record

        now = utc_now()
        record = self._store.insert_job(
            CronJobRecord(
                type=self._job.type,
                created_at=now,
                next_run_at=to_naive_utc(self._job.schedule_first_run()),
            )
        )
        logger.info(
            f"Created job record {record.id} for '{self._job.type}', "
            f"first run: {record.next_run_at}"
        )
        return record

    async def _wait_until(self, when: datetime, stop_event: asyncio.Event) -> bool:
        """Wait until ``when`` or until the stop event is set.

        Returns:
            True if the stop event was set, False if the time was reached
        """
        timeout = max(0.0, (when - utc_now()).total_seconds())
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            # Stop set in the same tick as the timer still wins
            return stop_event.is_set()
