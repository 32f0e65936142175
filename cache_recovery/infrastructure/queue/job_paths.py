"""
===============================================================================
SUBSYSTEM: Infrastructure / Queue
===============================================================================

CRC CARD (Module)
-------------------------------------------------------------------------------
Name:
    Queue names and worker job paths

Responsibilities:
    - Default queue names.
    - Dotted paths of the jobs this project's worker runs, and a fail-fast
      check that they resolve to callables before anything is enqueued.

Notes:
    - The cache generation job path belongs to the external rendering
      worker and comes from Settings; it is never imported here.
===============================================================================
"""

from __future__ import annotations

from importlib import import_module

from .errors import QueueConfigurationError

RECOVERY_QUEUE_NAME: str = "cache-recovery"
CACHE_GENERATION_QUEUE_NAME: str = "cache-generation"

_WORKER_JOBS_MODULE = "cache_recovery.worker.jobs"

RECOVER_INCOMPLETE_JOBS_JOB_PATH: str = f"{_WORKER_JOBS_MODULE}.recover_incomplete_jobs_job"
RESUME_CACHE_JOB_JOB_PATH: str = f"{_WORKER_JOBS_MODULE}.resume_cache_job_job"
CLEANUP_COMPLETED_JOBS_JOB_PATH: str = f"{_WORKER_JOBS_MODULE}.cleanup_completed_jobs_job"

RECOVERY_JOB_PATHS: tuple[str, ...] = (
    RECOVER_INCOMPLETE_JOBS_JOB_PATH,
    RESUME_CACHE_JOB_JOB_PATH,
    CLEANUP_COMPLETED_JOBS_JOB_PATH,
)


def split_job_path(job_path: str) -> tuple[str, str]:
    """'pkg.module.func' -> ('pkg.module', 'func')."""
    module_name, _, attr = (job_path or "").strip().rpartition(".")
    if not module_name or not attr:
        raise QueueConfigurationError(f"Invalid job path: {job_path!r}")
    return module_name, attr


def ensure_worker_job(job_path: str) -> None:
    """Raise QueueConfigurationError unless `job_path` imports to a callable."""
    module_name, attr = split_job_path(job_path)
    try:
        target = getattr(import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise QueueConfigurationError(
            f"Worker job {job_path} cannot be imported", original_error=exc
        ) from exc
    if not callable(target):
        raise QueueConfigurationError(f"Worker job {job_path} is not callable")
