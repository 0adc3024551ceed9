"""Daemon module for running the cronkeep manager as a service."""

from cronkeep.daemon.service import CronkeepDaemon, run_daemon

__all__ = [
    "CronkeepDaemon",
    "run_daemon",
]
