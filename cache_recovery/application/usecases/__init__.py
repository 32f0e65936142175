"""
Application use cases (public exports).

Recovery of cache-generation jobs lives in `usecases/recovery/`.
"""

from .recovery import (
    CleanupOldCompletedJobsInput,
    CleanupOldCompletedJobsUseCase,
    DisableJobResumptionInput,
    DisableJobResumptionUseCase,
    GetCollectionJobsUseCase,
    GetResumableJobsUseCase,
    RecoverIncompleteJobsUseCase,
    ResumeCacheJobInput,
    ResumeCacheJobUseCase,
)

__all__ = [
    "RecoverIncompleteJobsUseCase",
    "ResumeCacheJobUseCase",
    "ResumeCacheJobInput",
    "GetResumableJobsUseCase",
    "GetCollectionJobsUseCase",
    "DisableJobResumptionUseCase",
    "DisableJobResumptionInput",
    "CleanupOldCompletedJobsUseCase",
    "CleanupOldCompletedJobsInput",
]
