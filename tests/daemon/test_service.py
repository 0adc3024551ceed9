"""Tests for daemon service."""

import asyncio
import os
import signal
from datetime import timedelta

import pytest

from cronkeep.daemon.service import CronkeepDaemon, run_daemon
from cronkeep.scheduler.manager import CronJobManager
from cronkeep.store import SQLRunRecordStore
from cronkeep.timeutil import utc_now
from helpers import FakeJob, wait_for_calls


@pytest.fixture
def manager(store: SQLRunRecordStore) -> CronJobManager:
    """Manager with one job that is due now and one far in the future."""
    m = CronJobManager(store)
    m.register(
        FakeJob("cleanup", interval=timedelta(hours=1)),
        FakeJob("later", first_run=utc_now() + timedelta(days=1)),
    )
    return m


class TestCronkeepDaemon:
    """Tests for CronkeepDaemon class."""

    @pytest.mark.asyncio
    async def test_daemon_initialization(self, manager: CronJobManager) -> None:
        """Test daemon initialization."""
        daemon = CronkeepDaemon(manager)

        assert daemon.manager is manager
        assert daemon.is_running is False

    @pytest.mark.asyncio
    async def test_start_and_stop(self, manager: CronJobManager, store: SQLRunRecordStore) -> None:
        """Test that the daemon runs the manager until stopped."""
        daemon = CronkeepDaemon(manager)

        await daemon.start()
        assert daemon.is_running

        await wait_for_calls(manager.jobs[0], 1)
        await asyncio.sleep(0.05)
        await asyncio.wait_for(daemon.stop(), timeout=5)

        assert daemon.is_running is False
        assert manager.is_running is False
        assert len(store.history(job_type="cleanup")) == 1

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, manager: CronJobManager) -> None:
        """Test that starting a running daemon does not start a second manager."""
        daemon = CronkeepDaemon(manager)

        await daemon.start()
        first_task = daemon._task
        await daemon.start()

        assert daemon._task is first_task
        await asyncio.wait_for(daemon.stop(), timeout=5)

    @pytest.mark.asyncio
    async def test_wait_without_start(self, manager: CronJobManager) -> None:
        """Test that waiting on a daemon that never started returns."""
        await asyncio.wait_for(CronkeepDaemon(manager).wait(), timeout=1)


class TestRunDaemon:
    """Tests for run_daemon."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT])
    async def test_signal_stops_daemon(self, manager: CronJobManager, sig: signal.Signals) -> None:
        """Test that SIGTERM and SIGINT shut the daemon down gracefully."""
        loop = asyncio.get_running_loop()
        loop.call_later(0.1, os.kill, os.getpid(), sig)

        await asyncio.wait_for(run_daemon(manager), timeout=5)

        assert manager.is_running is False
