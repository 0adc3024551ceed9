"""Daemon service for running a cronkeep manager in a process.

This module provides:
- Service lifecycle management (start/stop)
- Signal handling for graceful shutdown
"""

import asyncio
import logging
import signal
from typing import Optional

from cronkeep.scheduler.manager import CronJobManager

logger = logging.getLogger(__name__)


class CronkeepDaemon:
    """Runs a CronJobManager until shutdown is requested.

    Shutdown sets the manager's stop event: loops that are waiting exit
    right away, loops with a run in flight exit once that run has been
    recorded.

    Example:
        daemon = CronkeepDaemon(manager)
        await daemon.start()
        ...
        daemon.request_shutdown()
        await daemon.wait()
    """

    def __init__(self, manager: CronJobManager) -> None:
        """Initialize the daemon.

        Args:
            manager: Manager with its jobs already registered
        """
        self._manager = manager
        self._shutdown_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def manager(self) -> CronJobManager:
        return self._manager

    @property
    def is_running(self) -> bool:
        """Whether the manager task is still running."""
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start running the manager in a background task."""
        if self.is_running:
            logger.warning("Daemon already running")
            return

        logger.info(f"Starting cronkeep daemon with {len(self._manager.jobs)} job(s)")
        self._shutdown_event.clear()
        self._task = asyncio.create_task(
            self._manager.run(self._shutdown_event),
            name="cronkeep_manager",
        )

    def request_shutdown(self) -> None:
        """Request daemon shutdown."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    async def wait(self) -> None:
        """Wait until every job loop has exited."""
        if self._task is None:
            return
        await self._task
        logger.info("cronkeep daemon stopped")

    async def stop(self) -> None:
        """Request shutdown and wait for the loops to finish."""
        self.request_shutdown()
        await self.wait()


async def run_daemon(manager: CronJobManager) -> None:
    """Run a manager until SIGINT or SIGTERM.

    Args:
        manager: Manager with its jobs already registered
    """
    daemon = CronkeepDaemon(manager)
    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        daemon.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda signum, frame: handle_signal(signal.Signals(signum)))

    try:
        await daemon.start()
        await daemon.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
