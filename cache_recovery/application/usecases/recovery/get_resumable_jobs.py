"""
===============================================================================
USE CASE: Get Resumable Jobs (read-only)
===============================================================================

Business Goal:
    List the IDs of incomplete jobs whose resumability gate is still open,
    e.g. for an operator deciding what a recovery pass will pick up.

Collaborators:
    - CacheJobStateRepository.get_incomplete_jobs
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Final

from ....crosscutting.exceptions import error_log_fields
from ....crosscutting.logger import logger as default_logger
from ....domain.repositories import CacheJobStateRepository
from .recovery_results import RecoveryError, RecoveryErrorCode, ResumableJobsResult

_MSG_STORE_UNAVAILABLE: Final[str] = "Could not list incomplete cache jobs."


class GetResumableJobsUseCase:
    def __init__(
        self,
        job_repository: CacheJobStateRepository,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._jobs = job_repository
        self._log = logger or default_logger

    def execute(self) -> ResumableJobsResult:
        try:
            jobs = self._jobs.get_incomplete_jobs()
        except Exception as exc:
            self._log.exception(
                "Error listing resumable cache jobs", extra=error_log_fields(exc)
            )
            return ResumableJobsResult(
                error=RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_STORE_UNAVAILABLE,
                    resource="CacheJobStore",
                )
            )

        return ResumableJobsResult(
            job_ids=tuple(job.job_id for job in jobs if job.is_resumable)
        )
