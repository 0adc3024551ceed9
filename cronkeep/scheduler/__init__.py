"""Job scheduling: job definitions, the per-job loop, and the manager.

The manager runs one loop per registered job. Each loop waits for the
job's persisted next run time, executes it through the runner and
records the outcome.
"""

from cronkeep.scheduler.job import CronExpressionJob, CronJob, JobResult, next_cron_time
from cronkeep.scheduler.loop import LoopState, SchedulerLoop
from cronkeep.scheduler.manager import CronJobManager, create_manager
from cronkeep.scheduler.runner import JobRunner

__all__ = [
    "CronExpressionJob",
    "CronJob",
    "CronJobManager",
    "JobResult",
    "JobRunner",
    "LoopState",
    "SchedulerLoop",
    "create_manager",
    "next_cron_time",
]
