"""
SQLAlchemy models for the cronkeep database.

Two tables back the scheduler:
- ``cronjobs``: one row per job type holding its current schedule state
- ``cronjob_runs``: append-only audit history, one row per execution attempt
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

from cronkeep.timeutil import utc_now

# Create base class for all models
Base = declarative_base()


class CronJobRecord(Base):
    """
    Persisted identity and schedule state of one job type.

    ``next_run_at`` of None means the schedule has terminated. Soft-deleted
    rows (``deleted_at`` set) are kept for history but ignored by lookups;
    at most one non-deleted row exists per type.
    """

    __tablename__ = "cronjobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        nullable=False,
    )
    next_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    runs: Mapped[List["CronJobRun"]] = relationship(
        "CronJobRun",
        back_populates="cronjob",
        lazy="select",
    )

    __table_args__ = (
        Index(
            "ux_cronjobs_active_type",
            "type",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<CronJobRecord id={self.id} type={self.type!r} next_run_at={self.next_run_at}>"

    def to_dict(self) -> Dict[str, Any]:
        """Convert job record to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
        }


class CronJobRun(Base):
    """
    A single execution attempt of a job.

    Created before the job runs with only ``started_at`` set, then updated
    once with the outcome. ``result`` holds the JSON-encoded payload the
    job returned, if any.
    """

    __tablename__ = "cronjob_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cronjob_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("cronjobs.id"),
        nullable=False,
        index=True,
    )

    # Execution timing
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Outcome
    succeeded: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    result: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    next_run_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    cronjob: Mapped[CronJobRecord] = relationship("CronJobRecord", back_populates="runs")

    @property
    def is_finished(self) -> bool:
        return self.ended_at is not None

    def result_data(self) -> Optional[Dict[str, Any]]:
        """Decode the stored result payload."""
        if self.result is None:
            return None
        return json.loads(self.result)

    def __repr__(self) -> str:
        return (
            f"<CronJobRun id={self.id} cronjob_id={self.cronjob_id} "
            f"started_at={self.started_at} succeeded={self.succeeded}>"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert run to dictionary representation."""
        return {
            "id": self.id,
            "cronjob_id": self.cronjob_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "succeeded": self.succeeded,
            "result": self.result_data(),
            "error": self.error,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
        }


Index("ix_cronjob_runs_started_at", CronJobRun.started_at.desc())
