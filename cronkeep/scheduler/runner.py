"""Job runner: executes one attempt of a job and records its outcome.

The runner separates two kinds of failure:
- Errors raised by the job are recorded on the run and swallowed, so the
  schedule continues.
- ``StorageError`` from the record store propagates; it is the only error
  that stops a scheduler loop.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from cronkeep.database.models import CronJobRecord, CronJobRun
from cronkeep.errors import JobFailed
from cronkeep.scheduler.job import CronJob, JobResult
from cronkeep.store import RunRecordStore
from cronkeep.timeutil import to_naive_utc, utc_now

logger = logging.getLogger(__name__)


def _error_message(exc: BaseException) -> str:
    message = str(exc)
    return message if message else exc.__class__.__name__


def encode_result(payload: Dict[str, Any]) -> str:
    """Serialize a job payload for storage.

    Raises:
        TypeError: If the payload holds values JSON cannot encode
        ValueError: If the payload is circular or holds NaN-like values
    """
    return json.dumps(payload, sort_keys=True, allow_nan=False)


class JobRunner:
    """Executes a job once and persists the run.

    Example:
        runner = JobRunner(store)
        record = await runner.execute_once(job, record)
    """

    def __init__(self, store: RunRecordStore) -> None:
        """Initialize the runner.

        Args:
            store: Record store for runs and job records
        """
        self._store = store

    async def execute_once(self, job: CronJob, record: CronJobRecord) -> CronJobRecord:
        """Run the job once and record the outcome.

        Args:
            job: The job definition to invoke
            record: The job's active record

        Returns:
            The job record with its new ``next_run_at`` persisted

        Raises:
            StorageError: If the run or the job record cannot be saved
        """
        run = self._store.insert_run(
            CronJobRun(cronjob_id=record.id, started_at=utc_now())
        )
        logger.info(f"Running job '{job.type}' (run {run.id})")

        result, error = await self._invoke(job)

        run.ended_at = utc_now()
        run.succeeded = error is None
        run.error = error

        if result is not None and result.result:
            run.result = self._encode_payload(job, result.result)

        run.next_run_at = self._next_run(job, result, run.ended_at)

        run = self._store.update_run(run)

        record.next_run_at = run.next_run_at
        record = self._store.update_job(record)

        if run.succeeded:
            logger.info(f"Job '{job.type}' succeeded, next run: {run.next_run_at or 'never'}")
        else:
            logger.error(
                f"Job '{job.type}' failed: {run.error}, next run: {run.next_run_at or 'never'}"
            )

        return record

    async def _invoke(self, job: CronJob) -> Tuple[Optional[JobResult], Optional[str]]:
        """Call the job, turning a raised error into an outcome."""
        try:
            return await job.run(), None
        except JobFailed as e:
            logger.debug(f"Job '{job.type}' reported failure", exc_info=True)
            return e.result, _error_message(e)
        except Exception as e:
            logger.debug(f"Job '{job.type}' raised", exc_info=True)
            return None, _error_message(e)

    def _encode_payload(self, job: CronJob, payload: Dict[str, Any]) -> Optional[str]:
        try:
            return encode_result(payload)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize result of job '{job.type}': {e}")
            return None

    def _next_run(
        self,
        job: CronJob,
        result: Optional[JobResult],
        now: datetime,
    ) -> Optional[datetime]:
        """Pick the next run time.

        None when the job asked never to run again, otherwise the explicit
        time from the result, otherwise ``now`` plus the default interval.
        """
        if result is not None and result.never_run_again:
            return None
        if result is not None and result.next_run is not None:
            return to_naive_utc(result.next_run)
        return now + job.default_run_interval()
