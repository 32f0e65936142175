"""
===============================================================================
USE CASE: Cleanup Old Completed Jobs (retention)
===============================================================================

Business Goal:
    Keep the job table bounded: delete COMPLETED jobs whose completion time
    is older than the retention window. Non-completed jobs are never touched.

Rules:
    - older_than_days must be >= 0 (0 means "everything completed before now").
    - Returns the number of deleted records.

Collaborators:
    - CacheJobStateRepository.delete_old_completed_jobs
    - crosscutting.metrics.record_jobs_cleaned
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Final

from ....crosscutting.exceptions import error_log_fields
from ....crosscutting.logger import logger as default_logger
from ....crosscutting.metrics import record_jobs_cleaned
from ....domain.repositories import CacheJobStateRepository
from .recovery_results import CleanupResult, RecoveryError, RecoveryErrorCode

DEFAULT_RETENTION_DAYS: Final[int] = 30

_MSG_STORE_UNAVAILABLE: Final[str] = "Could not delete old completed cache jobs."


@dataclass(frozen=True)
class CleanupOldCompletedJobsInput:
    older_than_days: int = DEFAULT_RETENTION_DAYS


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CleanupOldCompletedJobsUseCase:
    def __init__(
        self,
        job_repository: CacheJobStateRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
        logger: logging.Logger | None = None,
    ) -> None:
        self._jobs = job_repository
        self._clock = clock
        self._log = logger or default_logger

    def execute(self, input_data: CleanupOldCompletedJobsInput) -> CleanupResult:
        days = input_data.older_than_days
        if days < 0:
            raise ValueError("older_than_days must be >= 0")

        cutoff = self._clock() - timedelta(days=days)

        try:
            deleted = self._jobs.delete_old_completed_jobs(cutoff)
        except Exception as exc:
            self._log.exception(
                "Error deleting old completed cache jobs",
                extra={"cutoff": cutoff.isoformat(), **error_log_fields(exc)},
            )
            return CleanupResult(
                cutoff=cutoff,
                error=RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_STORE_UNAVAILABLE,
                    resource="CacheJobStore",
                ),
            )

        record_jobs_cleaned(deleted)
        self._log.info(
            "Deleted old completed cache jobs",
            extra={"deleted": deleted, "older_than_days": days},
        )
        return CleanupResult(deleted=deleted, cutoff=cutoff)
