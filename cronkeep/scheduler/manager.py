"""Cron job manager.

The manager owns the registered job definitions and runs one
``SchedulerLoop`` per job concurrently until a shared stop event is set.
Jobs are independent: a storage failure in one loop is logged and never
stops the others.
"""

import asyncio
import logging
from typing import List, Optional

from cronkeep.config import CronkeepConfig
from cronkeep.scheduler.job import CronJob
from cronkeep.scheduler.loop import SchedulerLoop
from cronkeep.store import RunRecordStore, SQLRunRecordStore

logger = logging.getLogger(__name__)


class CronJobManager:
    """Runs registered jobs on their persisted schedules.

    Example:
        manager = create_manager(config)
        manager.register(CleanupJob(), ReportJob())

        stop_event = asyncio.Event()
        await manager.run(stop_event)  # returns once every loop has exited
    """

    def __init__(self, store: RunRecordStore) -> None:
        """Initialize the manager.

        Args:
            store: Record store shared by all loops
        """
        self._store = store
        self._jobs: List[CronJob] = []
        self._loops: List[SchedulerLoop] = []
        self._running = False

    @property
    def store(self) -> RunRecordStore:
        return self._store

    @property
    def jobs(self) -> List[CronJob]:
        """Registered jobs, in registration order."""
        return list(self._jobs)

    @property
    def loops(self) -> List[SchedulerLoop]:
        """Loops started by the current or most recent run."""
        return list(self._loops)

    @property
    def is_running(self) -> bool:
        return self._running

    def register(self, *jobs: CronJob) -> None:
        """Register one or more jobs.

        Must be called before ``run``; jobs registered while running are
        kept but not scheduled until the next ``run``.

        Raises:
            ValueError: If a job type is already registered
        """
        known = {job.type for job in self._jobs}
        for job in jobs:
            if job.type in known:
                raise ValueError(f"Job type '{job.type}' is already registered")
            known.add(job.type)

        self._jobs.extend(jobs)

        if self._running:
            logger.warning(
                f"Registered {len(jobs)} job(s) while running; "
                "they will not be scheduled until the next run"
            )
        else:
            logger.debug(f"Registered jobs: {', '.join(job.type for job in jobs)}")

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run all registered jobs until they have all stopped.

        Each job gets its own loop observing ``stop_event``. Returns once
        every loop has exited, either because the stop event was set or
        because the job's schedule terminated.

        Args:
            stop_event: Shared stop signal
        """
        if self._running:
            raise RuntimeError("Manager is already running")

        self._loops = [SchedulerLoop(job, self._store) for job in self._jobs]
        if not self._loops:
            logger.warning("No jobs registered, nothing to run")
            return

        self._running = True
        logger.info(f"Starting {len(self._loops)} job loop(s)")

        try:
            results = await asyncio.gather(
                *(loop.run(stop_event) for loop in self._loops),
                return_exceptions=True,
            )
        finally:
            self._running = False

        for loop, result in zip(self._loops, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(
                    f"Cron job manager error for job '{loop.job.type}': {result}",
                    exc_info=result,
                )

        logger.info("All job loops stopped")


def create_manager(config: Optional[CronkeepConfig] = None) -> CronJobManager:
    """Create a manager backed by the configured database.

    Creates the job and run tables if they do not exist yet.

    Args:
        config: cronkeep configuration (uses global if not provided)

    Returns:
        A manager with no jobs registered
    """
    store = SQLRunRecordStore(config)
    store.create_schema()
    return CronJobManager(store)
