"""
===============================================================================
RECOVERY USE CASES PACKAGE (Public API / Exports)
===============================================================================

Business Goal:
    One stable import point for the recovery operations of cache-generation
    jobs and their result/error models.

Catalog:
    - RecoverIncompleteJobsUseCase: bulk pass over every non-completed job
    - ResumeCacheJobUseCase: resume one job
    - GetResumableJobsUseCase: read-only listing
    - GetCollectionJobsUseCase: per-collection progress view
    - DisableJobResumptionUseCase: close the one-way gate
    - CleanupOldCompletedJobsUseCase: retention
===============================================================================
"""

from __future__ import annotations

# -----------------------------------------------------------------------------
# Use Cases
# -----------------------------------------------------------------------------
from .cleanup_completed_jobs import (
    DEFAULT_RETENTION_DAYS,
    CleanupOldCompletedJobsInput,
    CleanupOldCompletedJobsUseCase,
)
from .disable_job_resumption import (
    DisableJobResumptionInput,
    DisableJobResumptionUseCase,
)
from .get_collection_jobs import GetCollectionJobsUseCase
from .get_resumable_jobs import GetResumableJobsUseCase
from .recover_incomplete_jobs import RecoverIncompleteJobsUseCase

# -----------------------------------------------------------------------------
# Results / errors
# -----------------------------------------------------------------------------
from .recovery_results import (
    CleanupResult,
    CollectionJobsResult,
    DisableResumptionResult,
    JobProgress,
    RecoveryError,
    RecoveryErrorCode,
    RecoveryReport,
    ResumableJobsResult,
    ResumeJobResult,
)
from .resume_cache_job import (
    COLLECTION_NOT_FOUND_REASON,
    ResumeCacheJobInput,
    ResumeCacheJobUseCase,
)

__all__ = [
    # Use cases
    "RecoverIncompleteJobsUseCase",
    "ResumeCacheJobUseCase",
    "ResumeCacheJobInput",
    "GetResumableJobsUseCase",
    "GetCollectionJobsUseCase",
    "DisableJobResumptionUseCase",
    "DisableJobResumptionInput",
    "CleanupOldCompletedJobsUseCase",
    "CleanupOldCompletedJobsInput",
    "DEFAULT_RETENTION_DAYS",
    "COLLECTION_NOT_FOUND_REASON",
    # Results
    "RecoveryError",
    "RecoveryErrorCode",
    "RecoveryReport",
    "ResumeJobResult",
    "ResumableJobsResult",
    "DisableResumptionResult",
    "CleanupResult",
    "CollectionJobsResult",
    "JobProgress",
]
