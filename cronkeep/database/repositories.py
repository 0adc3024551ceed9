"""Database repositories for cronkeep.

Provides data access for job records and their run history. Each
repository is bound to one SQLAlchemy session and commits its own writes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload

from cronkeep.database.models import CronJobRecord, CronJobRun
from cronkeep.timeutil import utc_now


class CronJobRepository:
    """
    Repository for job record persistence.

    Lookups by type only consider active (non-deleted) records.
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def add(self, record: CronJobRecord) -> CronJobRecord:
        """
        Insert a job record built by the caller.

        Args:
            record: Transient CronJobRecord

        Returns:
            The same record with its id assigned
        """
        if record.created_at is None:
            record.created_at = utc_now()
        self.session.add(record)
        self.session.commit()
        self.session.refresh(record)
        return record

    def get_by_id(self, record_id: int) -> Optional[CronJobRecord]:
        """
        Get a job record by its primary key, deleted or not.

        Args:
            record_id: Job record id

        Returns:
            CronJobRecord if found, None otherwise
        """
        return self.session.get(CronJobRecord, record_id)

    def get_active_by_type(self, job_type: str) -> Optional[CronJobRecord]:
        """
        Get the active job record for a type.

        Args:
            job_type: Job type name

        Returns:
            CronJobRecord if found, None otherwise
        """
        return self.session.query(CronJobRecord).filter(
            CronJobRecord.deleted_at.is_(None),
            CronJobRecord.type == job_type,
        ).order_by(CronJobRecord.id).first()

    def get_all(self, include_deleted: bool = False) -> List[CronJobRecord]:
        """
        Get job records ordered by type.

        Args:
            include_deleted: Also return soft-deleted records

        Returns:
            List of job records
        """
        query = self.session.query(CronJobRecord)
        if not include_deleted:
            query = query.filter(CronJobRecord.deleted_at.is_(None))
        return query.order_by(CronJobRecord.type, CronJobRecord.id).all()

    def update(self, record_id: int, **kwargs: Any) -> Optional[CronJobRecord]:
        """
        Update a job record.

        Args:
            record_id: Id of the record to update
            **kwargs: Attributes to update

        Returns:
            Updated CronJobRecord or None if not found
        """
        record = self.get_by_id(record_id)
        if not record:
            return None

        for key, value in kwargs.items():
            if key in ("id", "type"):
                raise ValueError(f"Job record field '{key}' is immutable")
            if hasattr(record, key):
                setattr(record, key, value)

        self.session.commit()
        self.session.refresh(record)
        return record

    def set_next_run(self, record_id: int, next_run_at: Optional[datetime]) -> Optional[CronJobRecord]:
        """Persist a newly computed next run time."""
        return self.update(record_id, next_run_at=next_run_at)

    def soft_delete(self, job_type: str) -> Optional[CronJobRecord]:
        """
        Soft-delete the active record for a type.

        Args:
            job_type: Job type name

        Returns:
            The deleted record, or None if no active record exists
        """
        record = self.get_active_by_type(job_type)
        if not record:
            return None

        record.deleted_at = utc_now()
        self.session.commit()
        self.session.refresh(record)
        return record


class CronJobRunRepository:
    """
    Repository for run history.

    Runs are append-only: created at start and finished exactly once.
    """

    def __init__(self, session: Session):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session

    def add(self, run: CronJobRun) -> CronJobRun:
        """Insert a run built by the caller."""
        self.session.add(run)
        self.session.commit()
        self.session.refresh(run)
        return run

    def get_by_id(self, run_id: int) -> Optional[CronJobRun]:
        """
        Get a run by its id.

        Args:
            run_id: Run id

        Returns:
            CronJobRun if found, None otherwise
        """
        return self.session.get(CronJobRun, run_id)

    def finish(
        self,
        run_id: int,
        ended_at: datetime,
        succeeded: bool,
        result: Optional[str] = None,
        error: Optional[str] = None,
        next_run_at: Optional[datetime] = None,
    ) -> Optional[CronJobRun]:
        """
        Record the outcome of a run.

        Args:
            run_id: Id of the run
            ended_at: Completion time
            succeeded: Whether the job succeeded
            result: JSON-encoded result payload
            error: Error message if the job failed
            next_run_at: Next run time computed by this run

        Returns:
            The finished CronJobRun, or None if the run does not exist or
            was already finished
        """
        run = self.get_by_id(run_id)
        if not run or run.ended_at is not None:
            return None

        run.ended_at = ended_at
        run.succeeded = succeeded
        run.result = result
        run.error = error
        run.next_run_at = next_run_at

        self.session.commit()
        self.session.refresh(run)
        return run

    def get_history(
        self,
        job_type: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> List[CronJobRun]:
        """
        Get run history.

        Args:
            job_type: Filter by job type, across active and deleted records
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of runs ordered by started_at descending
        """
        query = self.session.query(CronJobRun).options(
            joinedload(CronJobRun.cronjob)
        ).order_by(desc(CronJobRun.started_at), desc(CronJobRun.id))

        if job_type:
            query = query.join(CronJobRecord).filter(CronJobRecord.type == job_type)

        return query.offset(offset).limit(limit).all()

    def get_success_count(self, cronjob_id: Optional[int] = None) -> int:
        """
        Get count of successful runs.

        Args:
            cronjob_id: Filter by job record (optional)

        Returns:
            Number of successful runs
        """
        query = self.session.query(CronJobRun).filter(CronJobRun.succeeded.is_(True))
        if cronjob_id is not None:
            query = query.filter(CronJobRun.cronjob_id == cronjob_id)
        return query.count()

    def get_failure_count(self, cronjob_id: Optional[int] = None) -> int:
        """
        Get count of failed runs.

        Args:
            cronjob_id: Filter by job record (optional)

        Returns:
            Number of failed runs
        """
        query = self.session.query(CronJobRun).filter(CronJobRun.succeeded.is_(False))
        if cronjob_id is not None:
            query = query.filter(CronJobRun.cronjob_id == cronjob_id)
        return query.count()

    def delete_old_runs(self, before: datetime) -> int:
        """
        Delete finished runs that started before a given time.

        Args:
            before: Delete runs started before this time

        Returns:
            Number of runs deleted
        """
        result = self.session.query(CronJobRun).filter(
            CronJobRun.started_at < before,
            CronJobRun.ended_at.isnot(None),
        ).delete(synchronize_session=False)
        self.session.commit()
        return result

    def stats(self, cronjob_id: int) -> Dict[str, int]:
        """Success and failure counts for one job record."""
        return {
            "succeeded": self.get_success_count(cronjob_id),
            "failed": self.get_failure_count(cronjob_id),
        }


class RepositoryFactory:
    """
    Factory for creating repository instances.

    Usage:
        with get_db_session() as session:
            repos = RepositoryFactory(session)
            record = repos.jobs.get_active_by_type("cleanup")
    """

    def __init__(self, session: Session):
        """
        Initialize factory with database session.

        Args:
            session: SQLAlchemy session
        """
        self.session = session
        self._jobs: Optional[CronJobRepository] = None
        self._runs: Optional[CronJobRunRepository] = None

    @property
    def jobs(self) -> CronJobRepository:
        """Get the job record repository."""
        if self._jobs is None:
            self._jobs = CronJobRepository(self.session)
        return self._jobs

    @property
    def runs(self) -> CronJobRunRepository:
        """Get the run history repository."""
        if self._runs is None:
            self._runs = CronJobRunRepository(self.session)
        return self._runs
