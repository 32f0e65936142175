"""
===============================================================================
USE CASE: Disable Job Resumption (close the one-way gate)
===============================================================================

Business Goal:
    Permanently stop a job from being resumed: can_resume=False and
    status=FAILED with the reason recorded.

Rules:
    - Idempotent: disabling a disabled job only re-records the reason.
    - A COMPLETED job keeps its status (terminal), also when it completes
      between the read and the writes: neither write carries a status read
      here, and the store refuses to move a COMPLETED job to FAILED.
    - Best-effort: store failures are logged and reported in the result,
      never re-raised.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Class:
    DisableJobResumptionUseCase

Collaborators:
    - CacheJobStateRepository: get_by_job_id, update (gate), update_status
    - crosscutting.metrics.record_job_disabled
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from ....crosscutting.exceptions import error_log_fields
from ....crosscutting.logger import logger as default_logger
from ....crosscutting.metrics import record_job_disabled
from ....domain.entities import CacheJobStatus
from ....domain.repositories import CacheJobStateRepository
from .recovery_results import (
    DisableResumptionResult,
    RecoveryError,
    RecoveryErrorCode,
)

_RESOURCE_JOB: Final[str] = "CacheJob"
_RESOURCE_STORE: Final[str] = "CacheJobStore"

_DEFAULT_REASON: Final[str] = "Resumption disabled by operator"
_MSG_JOB_NOT_FOUND: Final[str] = "Cache job not found."
_MSG_STORE_UNAVAILABLE: Final[str] = "Cache job store unavailable."


@dataclass(frozen=True)
class DisableJobResumptionInput:
    job_id: str
    reason: str = _DEFAULT_REASON


class DisableJobResumptionUseCase:
    def __init__(
        self,
        job_repository: CacheJobStateRepository,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._jobs = job_repository
        self._log = logger or default_logger

    def execute(self, input_data: DisableJobResumptionInput) -> DisableResumptionResult:
        job_id = (input_data.job_id or "").strip()
        if not job_id:
            raise ValueError("job_id is required")
        reason = (input_data.reason or "").strip() or _DEFAULT_REASON

        self._log.warning(
            "Disabling job resumption", extra={"job_id": job_id, "reason": reason}
        )

        try:
            job = self._jobs.get_by_job_id(job_id)
            if job is None:
                self._log.warning("Cannot disable unknown job", extra={"job_id": job_id})
                return DisableResumptionResult(
                    job_id=job_id,
                    reason=reason,
                    error=RecoveryError(
                        code=RecoveryErrorCode.NOT_FOUND,
                        message=_MSG_JOB_NOT_FOUND,
                        resource=_RESOURCE_JOB,
                    ),
                )

            job.disable_resume()
            self._jobs.update(job)
            # R: the store refuses FAILED for a job that is COMPLETED by now.
            self._jobs.update_status(job_id, CacheJobStatus.FAILED, reason)
        except Exception as exc:
            # R: best-effort; the job stays resumable until the next cycle.
            self._log.exception(
                "Failed to disable job resumption",
                extra={"job_id": job_id, **error_log_fields(exc)},
            )
            return DisableResumptionResult(
                job_id=job_id,
                reason=reason,
                error=RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_STORE_UNAVAILABLE,
                    resource=_RESOURCE_STORE,
                ),
            )

        record_job_disabled()
        return DisableResumptionResult(job_id=job_id, disabled=True, reason=reason)
