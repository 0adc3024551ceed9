"""Database persistence for job records and run history."""

from cronkeep.database.connection import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_db_session,
    init_engine,
)
from cronkeep.database.models import Base, CronJobRecord, CronJobRun
from cronkeep.database.repositories import (
    CronJobRepository,
    CronJobRunRepository,
    RepositoryFactory,
)

__all__ = [
    "Base",
    "CronJobRecord",
    "CronJobRepository",
    "CronJobRun",
    "CronJobRunRepository",
    "RepositoryFactory",
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_db_session",
    "init_engine",
]
