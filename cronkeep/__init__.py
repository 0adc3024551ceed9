"""cronkeep - persistent recurring-job scheduler.

Runs a fixed set of named job definitions on independent schedules and
records every run in a database, so schedules resume from persisted state
after a restart.
"""

__app_name__ = "cronkeep"
__version__ = "0.1.0"

from cronkeep.errors import CronkeepError, JobFailed, StorageError
from cronkeep.scheduler.job import CronExpressionJob, CronJob, JobResult
from cronkeep.scheduler.manager import CronJobManager, create_manager

__all__ = [
    "CronExpressionJob",
    "CronJob",
    "CronJobManager",
    "CronkeepError",
    "JobFailed",
    "JobResult",
    "StorageError",
    "create_manager",
]
