"""Run record store used by the scheduler.

The scheduler core only depends on the ``RunRecordStore`` protocol: find,
insert and update for job records, insert and update for run records.
``SQLRunRecordStore`` implements it on top of the SQLAlchemy repositories.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Generator, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from cronkeep.config import CronkeepConfig
from cronkeep.database.connection import create_tables, get_db_session
from cronkeep.database.models import CronJobRecord, CronJobRun
from cronkeep.database.repositories import RepositoryFactory
from cronkeep.errors import StorageError

logger = logging.getLogger(__name__)


class RunRecordStore(Protocol):
    """Persistence operations the scheduler needs.

    Every method raises ``StorageError`` on failure. ``find_active_job``
    returns None when no active record exists; that is not an error.
    Implementations must tolerate concurrent calls from several loops.
    """

    def find_active_job(self, job_type: str) -> Optional[CronJobRecord]:
        ...

    def insert_job(self, record: CronJobRecord) -> CronJobRecord:
        ...

    def update_job(self, record: CronJobRecord) -> CronJobRecord:
        """Persist the record's next run time.

        Only ``next_run_at`` is written. Soft deletion belongs to
        ``retire_job`` and is never undone from a stale in-memory copy.
        """
        ...

    def insert_run(self, run: CronJobRun) -> CronJobRun:
        ...

    def update_run(self, run: CronJobRun) -> CronJobRun:
        ...


class SQLRunRecordStore:
    """SQLAlchemy-backed run record store.

    Each operation runs in its own short session and returns detached
    records with all columns loaded, so callers can keep them across
    awaits without holding a session open.

    Example:
        store = SQLRunRecordStore(config)
        store.create_schema()
        record = store.find_active_job("cleanup")
    """

    def __init__(self, config: Optional[CronkeepConfig] = None) -> None:
        """Initialize the store.

        Args:
            config: cronkeep configuration (uses global if not provided)
        """
        self._config = config

    @contextmanager
    def _repositories(self, operation: str) -> Generator[RepositoryFactory, None, None]:
        """Open a session and translate driver errors into StorageError."""
        try:
            with get_db_session(self._config) as session:
                yield RepositoryFactory(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Database error: {e}", operation=operation) from e

    def create_schema(self) -> None:
        """Create the job and run tables if they do not exist."""
        try:
            create_tables(self._config)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to create tables: {e}", operation="create_schema") from e

    def find_active_job(self, job_type: str) -> Optional[CronJobRecord]:
        with self._repositories("find_active_job") as repos:
            return repos.jobs.get_active_by_type(job_type)

    def insert_job(self, record: CronJobRecord) -> CronJobRecord:
        with self._repositories("insert_job") as repos:
            record = repos.jobs.add(record)
        logger.debug(f"Inserted job record {record.id} for '{record.type}'")
        return record

    def update_job(self, record: CronJobRecord) -> CronJobRecord:
        with self._repositories("update_job") as repos:
            updated = repos.jobs.set_next_run(record.id, record.next_run_at)
        if updated is None:
            raise StorageError(
                f"Job record {record.id} ('{record.type}') does not exist",
                operation="update_job",
            )
        return updated

    def insert_run(self, run: CronJobRun) -> CronJobRun:
        with self._repositories("insert_run") as repos:
            return repos.runs.add(run)

    def update_run(self, run: CronJobRun) -> CronJobRun:
        with self._repositories("update_run") as repos:
            finished = repos.runs.finish(
                run.id,
                ended_at=run.ended_at,
                succeeded=run.succeeded,
                result=run.result,
                error=run.error,
                next_run_at=run.next_run_at,
            )
        if finished is None:
            raise StorageError(
                f"Run {run.id} does not exist or was already finalized",
                operation="update_run",
            )
        return finished

    def list_jobs(self, include_deleted: bool = False) -> List[CronJobRecord]:
        """Job records ordered by type, active only unless asked otherwise."""
        with self._repositories("list_jobs") as repos:
            return repos.jobs.get_all(include_deleted=include_deleted)

    def retire_job(self, job_type: str) -> Optional[CronJobRecord]:
        """Soft-delete the active record for a type.

        The next time a job of that type is run, a fresh record is created
        from its first-run schedule. Returns None if no active record exists.
        """
        with self._repositories("retire_job") as repos:
            record = repos.jobs.soft_delete(job_type)
        if record is not None:
            logger.info(f"Retired job record {record.id} for '{job_type}'")
        return record

    def run_stats(self, record_id: int) -> Dict[str, int]:
        """Success and failure counts for one job record."""
        with self._repositories("run_stats") as repos:
            return repos.runs.stats(record_id)

    def prune_history(self, before: datetime) -> int:
        """Delete finished runs started before ``before``; returns the count."""
        with self._repositories("prune_history") as repos:
            deleted = repos.runs.delete_old_runs(before)
        logger.info(f"Pruned {deleted} run record(s) started before {before}")
        return deleted

    def history(self, job_type: Optional[str] = None, limit: int = 10) -> List[CronJobRun]:
        """Most recent runs, newest first, optionally for one job type."""
        with self._repositories("history") as repos:
            return repos.runs.get_history(job_type=job_type, limit=limit)
