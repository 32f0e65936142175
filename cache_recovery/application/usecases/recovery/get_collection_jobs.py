"""
===============================================================================
USE CASE: Get Collection Jobs (read-only progress view)
===============================================================================

Business Goal:
    Show every job targeting a collection with its progress, so an operator
    can see what a resume or a disable would act on.

Rules:
    - Completed and disabled jobs are listed too (newest first).
    - Progress counts processed plus skipped items against total_images.

Collaborators:
    - CacheJobStateRepository.get_by_collection_id
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Final

from ....crosscutting.exceptions import error_log_fields
from ....crosscutting.logger import logger as default_logger
from ....domain.entities import CacheJobState
from ....domain.repositories import CacheJobStateRepository
from .recovery_results import (
    CollectionJobsResult,
    JobProgress,
    RecoveryError,
    RecoveryErrorCode,
)

_MSG_STORE_UNAVAILABLE: Final[str] = "Could not list cache jobs of the collection."


def job_progress(job: CacheJobState) -> JobProgress:
    return JobProgress(
        job_id=job.job_id,
        status=job.status,
        can_resume=job.can_resume,
        total_images=job.total_images,
        processed=len(job.processed_image_ids),
        skipped=len(job.skipped_image_ids),
        remaining=job.remaining_count(),
        progress_percent=job.progress_percent(),
    )


class GetCollectionJobsUseCase:
    def __init__(
        self,
        job_repository: CacheJobStateRepository,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._jobs = job_repository
        self._log = logger or default_logger

    def execute(self, collection_id: str) -> CollectionJobsResult:
        collection_id = (collection_id or "").strip()
        if not collection_id:
            raise ValueError("collection_id is required")

        try:
            jobs = self._jobs.get_by_collection_id(collection_id)
        except Exception as exc:
            self._log.exception(
                "Error listing cache jobs of collection",
                extra={"collection_id": collection_id, **error_log_fields(exc)},
            )
            return CollectionJobsResult(
                collection_id=collection_id,
                error=RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_STORE_UNAVAILABLE,
                    resource="CacheJobStore",
                ),
            )

        return CollectionJobsResult(
            collection_id=collection_id,
            jobs=tuple(job_progress(job) for job in jobs),
        )
