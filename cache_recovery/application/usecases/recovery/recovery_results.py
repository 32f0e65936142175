"""
===============================================================================
RECOVERY USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Name:
    Recovery Use Case Results

Business Goal:
    Typed results and errors for the recovery operations, so that callers
    (worker jobs, CLI) never see a raw collaborator exception.

Why:
    - Use cases return results instead of propagating infrastructure errors.
    - Per-job failures inside a bulk pass are values that can be counted.
    - `resource` tells which record or collaborator failed.

-------------------------------------------------------------------------------
CRC CARD (Module-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Component:
    recovery_results models (module)

Responsibilities:
    - RecoveryErrorCode: stable error categories.
    - RecoveryError: minimal error contract.
    - Result DTOs: ResumeJobResult, RecoveryReport, ResumableJobsResult,
      DisableResumptionResult, CleanupResult, JobProgress,
      CollectionJobsResult.

Collaborators:
    - domain.entities.CacheJobStatus
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ....domain.entities import CacheJobStatus


class RecoveryErrorCode(str, Enum):
    """
    Error categories of the recovery operations.

    Codes:
      - NOT_FOUND: job or collection record absent (terminal, not retried).
      - NON_RESUMABLE: the job's resumability gate is closed (expected).
      - COLLABORATOR_UNAVAILABLE: store/queue/collection I/O failed; the
        caller retries on the next pass.
      - VALIDATION_ERROR: inconsistent input detected at runtime.
    """

    NOT_FOUND = "NOT_FOUND"
    NON_RESUMABLE = "NON_RESUMABLE"
    COLLABORATOR_UNAVAILABLE = "COLLABORATOR_UNAVAILABLE"
    VALIDATION_ERROR = "VALIDATION_ERROR"


@dataclass(frozen=True)
class RecoveryError:
    """
    Use-case error.

    Attributes:
      - code: stable category
      - message: human readable, no secrets
      - resource: failed record/collaborator ("CacheJob", "Collection",
        "CacheJobStore", "CacheGenerationQueue", ...)
    """

    code: RecoveryErrorCode
    message: str
    resource: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "resource": self.resource}


@dataclass(frozen=True)
class ResumeJobResult:
    """
    Outcome of one resume.

    success is True when the job was resumed or was already/now complete.
    `skipped` counts items missing from the collection in this pass.
    """

    job_id: str
    success: bool
    outcome: str
    status: Optional[CacheJobStatus] = None
    published: int = 0
    skipped: int = 0
    error: Optional[RecoveryError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "success": self.success,
            "outcome": self.outcome,
            "status": self.status.value if self.status else None,
            "published": self.published,
            "skipped": self.skipped,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class RecoveryReport:
    """Aggregate of a bulk recovery pass."""

    total: int = 0
    recovered: int = 0
    failed: int = 0
    failed_job_ids: Tuple[str, ...] = ()
    timed_out_job_ids: Tuple[str, ...] = ()
    duration_seconds: float = 0.0
    error: Optional[RecoveryError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "recovered": self.recovered,
            "failed": self.failed,
            "failed_job_ids": list(self.failed_job_ids),
            "timed_out_job_ids": list(self.timed_out_job_ids),
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class ResumableJobsResult:
    job_ids: Tuple[str, ...] = field(default_factory=tuple)
    error: Optional[RecoveryError] = None


@dataclass(frozen=True)
class DisableResumptionResult:
    job_id: str
    disabled: bool = False
    reason: Optional[str] = None
    error: Optional[RecoveryError] = None


@dataclass(frozen=True)
class CleanupResult:
    deleted: int = 0
    cutoff: Optional[datetime] = None
    error: Optional[RecoveryError] = None


@dataclass(frozen=True)
class JobProgress:
    """Progress snapshot of one job, as shown to operators."""

    job_id: str
    status: CacheJobStatus
    can_resume: bool
    total_images: int
    processed: int
    skipped: int
    remaining: int
    progress_percent: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "can_resume": self.can_resume,
            "total_images": self.total_images,
            "processed": self.processed,
            "skipped": self.skipped,
            "remaining": self.remaining,
            "progress_percent": self.progress_percent,
        }


@dataclass(frozen=True)
class CollectionJobsResult:
    collection_id: str
    jobs: Tuple[JobProgress, ...] = field(default_factory=tuple)
    error: Optional[RecoveryError] = None
