"""Tests for database models and repositories."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from cronkeep.config import CronkeepConfig
from cronkeep.database.connection import drop_tables, get_db_path, get_db_session
from cronkeep.database.models import CronJobRecord, CronJobRun
from cronkeep.database.repositories import (
    CronJobRepository,
    CronJobRunRepository,
    RepositoryFactory,
)
from cronkeep.errors import StorageError
from cronkeep.store import SQLRunRecordStore
from cronkeep.timeutil import utc_now


def _add_job(session, job_type: str, next_run_at) -> CronJobRecord:
    return CronJobRepository(session).add(CronJobRecord(type=job_type, next_run_at=next_run_at))


def _add_run(session, cronjob_id: int, started_at=None) -> CronJobRun:
    run = CronJobRun(cronjob_id=cronjob_id, started_at=started_at or utc_now())
    return CronJobRunRepository(session).add(run)


@pytest.fixture
def session(store: SQLRunRecordStore):
    """Database session on a fresh schema."""
    with get_db_session() as s:
        yield s


class TestConnection:
    """Tests for connection helpers."""

    def test_db_path_from_data_dir(self, config: CronkeepConfig) -> None:
        """Test that the default database lives in the data directory."""
        assert get_db_path(config) == config.data_dir / "cronkeep.db"

    def test_db_path_in_memory(self) -> None:
        """Test that in-memory and server URLs have no path."""
        assert get_db_path(CronkeepConfig(database_url="sqlite:///:memory:")) is None
        assert get_db_path(CronkeepConfig(database_url="postgresql://db/cronkeep")) is None

    def test_schema_creates_database_file(self, store: SQLRunRecordStore, config: CronkeepConfig) -> None:
        """Test that creating the schema creates the SQLite file."""
        assert (config.data_dir / "cronkeep.db").exists()

    def test_drop_tables(self, store: SQLRunRecordStore, config: CronkeepConfig) -> None:
        """Test that dropped tables make store calls fail with StorageError."""
        drop_tables(config)

        with pytest.raises(StorageError):
            store.find_active_job("cleanup")


class TestCronJobRepository:
    """Tests for CronJobRepository."""

    def test_add_and_get(self, session) -> None:
        """Test adding a record and reading it back."""
        repo = CronJobRepository(session)
        next_run = utc_now() + timedelta(hours=1)

        record = _add_job(session, "cleanup", next_run)

        assert record.id is not None
        assert record.created_at is not None
        assert repo.get_by_id(record.id).next_run_at == next_run
        assert repo.get_active_by_type("cleanup").id == record.id

    def test_get_active_ignores_deleted(self, session) -> None:
        """Test that soft-deleted records are not found by type."""
        repo = CronJobRepository(session)
        _add_job(session, "cleanup", utc_now())

        deleted = repo.soft_delete("cleanup")

        assert deleted.is_deleted
        assert repo.get_active_by_type("cleanup") is None
        assert repo.get_by_id(deleted.id) is not None

    def test_soft_delete_missing(self, session) -> None:
        """Test soft-deleting a type with no active record."""
        assert CronJobRepository(session).soft_delete("missing") is None

    def test_one_active_record_per_type(self, session) -> None:
        """Test that a second active record for a type is rejected."""
        _add_job(session, "cleanup", utc_now())

        with pytest.raises(IntegrityError):
            _add_job(session, "cleanup", utc_now())
        session.rollback()

    def test_new_record_after_soft_delete(self, session) -> None:
        """Test that a type can get a new record once the old one is deleted."""
        repo = CronJobRepository(session)
        old = _add_job(session, "cleanup", utc_now())
        repo.soft_delete("cleanup")

        new = _add_job(session, "cleanup", utc_now())

        assert new.id != old.id
        assert [r.id for r in repo.get_all(include_deleted=True)] == [old.id, new.id]
        assert [r.id for r in repo.get_all()] == [new.id]

    def test_update_next_run(self, session) -> None:
        """Test updating the next run time, including clearing it."""
        repo = CronJobRepository(session)
        record = _add_job(session, "cleanup", utc_now())

        assert repo.set_next_run(record.id, None).next_run_at is None

    def test_update_missing(self, session) -> None:
        """Test that updating a missing record returns None."""
        assert CronJobRepository(session).update(999, next_run_at=None) is None

    def test_update_type_rejected(self, session) -> None:
        """Test that a record's type cannot be changed."""
        repo = CronJobRepository(session)
        record = _add_job(session, "cleanup", utc_now())

        with pytest.raises(ValueError):
            repo.update(record.id, type="other")

    def test_to_dict(self, session) -> None:
        """Test dictionary representation."""
        record = _add_job(session, "cleanup", None)

        data = record.to_dict()

        assert data["type"] == "cleanup"
        assert data["next_run_at"] is None
        assert data["deleted_at"] is None


class TestCronJobRunRepository:
    """Tests for CronJobRunRepository."""

    def _record(self, session, job_type: str = "cleanup") -> CronJobRecord:
        return _add_job(session, job_type, utc_now())

    def test_add_unfinished(self, session) -> None:
        """Test that a new run only has its start time."""
        record = self._record(session)

        run = _add_run(session, record.id)

        assert run.started_at is not None
        assert not run.is_finished
        assert run.succeeded is None
        assert run.result_data() is None

    def test_finish(self, session) -> None:
        """Test recording a run's outcome."""
        record = self._record(session)
        repo = CronJobRunRepository(session)
        run = _add_run(session, record.id)
        ended = utc_now()

        finished = repo.finish(
            run.id, ended_at=ended, succeeded=True, result='{"rows": 42}', next_run_at=ended
        )

        assert finished.is_finished
        assert finished.result_data() == {"rows": 42}
        assert finished.to_dict()["result"] == {"rows": 42}

    def test_finish_only_once(self, session) -> None:
        """Test that a finished run cannot be finished again."""
        record = self._record(session)
        repo = CronJobRunRepository(session)
        run = _add_run(session, record.id)
        repo.finish(run.id, ended_at=utc_now(), succeeded=False, error="boom")

        assert repo.finish(run.id, ended_at=utc_now(), succeeded=True) is None
        assert repo.get_by_id(run.id).error == "boom"

    def test_finish_missing(self, session) -> None:
        """Test finishing a run that does not exist."""
        assert CronJobRunRepository(session).finish(999, ended_at=utc_now(), succeeded=True) is None

    def test_run_requires_job_record(self, session) -> None:
        """Test that runs reference an existing job record."""
        with pytest.raises(IntegrityError):
            _add_run(session, 999)
        session.rollback()

    def test_history_newest_first_and_filtered(self, session) -> None:
        """Test history ordering and filtering by type."""
        cleanup = self._record(session, "cleanup")
        report = self._record(session, "report")
        repo = CronJobRunRepository(session)
        base = utc_now()
        first = _add_run(session, cleanup.id, started_at=base)
        second = _add_run(session, report.id, started_at=base + timedelta(seconds=1))
        third = _add_run(session, cleanup.id, started_at=base + timedelta(seconds=2))

        assert [r.id for r in repo.get_history()] == [third.id, second.id, first.id]
        assert [r.id for r in repo.get_history(job_type="cleanup")] == [third.id, first.id]
        assert [r.id for r in repo.get_history(limit=1)] == [third.id]
        assert repo.get_history()[0].cronjob.type == "cleanup"

    def test_counts(self, session) -> None:
        """Test success and failure counts per record."""
        record = self._record(session)
        repo = CronJobRunRepository(session)
        for succeeded in (True, True, False):
            run = _add_run(session, record.id)
            repo.finish(run.id, ended_at=utc_now(), succeeded=succeeded)
        _add_run(session, record.id)  # still running

        assert repo.stats(record.id) == {"succeeded": 2, "failed": 1}
        assert len(repo.get_history(limit=100)) == 4

    def test_delete_old_runs_keeps_unfinished(self, session) -> None:
        """Test pruning only removes finished runs older than the cutoff."""
        record = self._record(session)
        repo = CronJobRunRepository(session)
        old = utc_now() - timedelta(days=40)
        finished = _add_run(session, record.id, started_at=old)
        repo.finish(finished.id, ended_at=old, succeeded=True)
        unfinished = _add_run(session, record.id, started_at=old)
        recent = _add_run(session, record.id)
        repo.finish(recent.id, ended_at=utc_now(), succeeded=True)

        deleted = repo.delete_old_runs(utc_now() - timedelta(days=30))

        assert deleted == 1
        assert {r.id for r in repo.get_history(limit=100)} == {unfinished.id, recent.id}


class TestRepositoryFactory:
    """Tests for RepositoryFactory."""

    def test_repositories_cached(self, session) -> None:
        """Test that the factory returns the same repository instances."""
        repos = RepositoryFactory(session)

        assert repos.jobs is repos.jobs
        assert repos.runs is repos.runs
        assert isinstance(repos.runs, CronJobRunRepository)
