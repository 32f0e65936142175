"""
===============================================================================
CRC CARD — worker/jobs.py (RQ jobs: recovery entrypoints)
===============================================================================

Responsibilities:
  - Define the entrypoints RQ runs on the recovery queue.
  - Build use cases from the container (no Redis/Postgres details here).
  - Emit logs/metrics/spans with a consistent job context.
  - Clear the context when the job ends (success or failure).

Collaborators:
  - container.get_*_use_case
  - crosscutting.metrics.record_worker_job
  - crosscutting.tracing.span
  - context (set_operation_context, clear_context)

Contract:
  - Use cases return results; a returned error is logged and reported in
    the job result (RQ marks the job finished, the next pass retries).
  - Unexpected exceptions are re-raised so RQ records the failure.
===============================================================================
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict

from rq import get_current_job

from ..application.usecases import (
    CleanupOldCompletedJobsInput,
    ResumeCacheJobInput,
)
from ..container import (
    get_cleanup_completed_jobs_use_case,
    get_recover_incomplete_jobs_use_case,
    get_resume_cache_job_use_case,
)
from ..context import clear_context, set_operation_context
from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger
from ..crosscutting.metrics import record_worker_job
from ..crosscutting.tracing import span


def _run_job(name: str, body: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
    """
    Shared envelope: context, span, metrics, final log, context cleanup.

    `body` returns the JSON-safe job result; its "error" key (if any)
    decides the recorded status.
    """
    job = get_current_job()
    rq_job_id = getattr(job, "id", None)
    set_operation_context(request_id=rq_job_id or "", operation=f"rq.{name}")

    start = time.perf_counter()
    status = "UNKNOWN"
    try:
        logger.info("Worker job started", extra={"rq_job_id": rq_job_id, "job": name})
        with span(f"worker.{name}", {"rq_job_id": rq_job_id or ""}):
            result = body()
        status = "ERROR" if result.get("error") else "OK"
        return result
    except Exception as exc:
        status = "FAILED"
        logger.exception(
            "Worker job failed with exception",
            extra={"rq_job_id": rq_job_id, "job": name, "error": str(exc)},
        )
        raise
    finally:
        duration = time.perf_counter() - start
        record_worker_job(name, status)
        logger.info(
            "Worker job finished",
            extra={
                "rq_job_id": rq_job_id,
                "job": name,
                "status": status,
                "duration_seconds": round(duration, 3),
            },
        )
        clear_context()


def recover_incomplete_jobs_job() -> Dict[str, Any]:
    """RQ job: run one bulk recovery pass."""

    def body() -> Dict[str, Any]:
        report = get_recover_incomplete_jobs_use_case().execute()
        return report.to_dict()

    return _run_job("recover_incomplete_jobs", body)


def resume_cache_job_job(job_id: str) -> Dict[str, Any]:
    """RQ job: resume a single cache job (job_id arrives as a string)."""

    def body() -> Dict[str, Any]:
        if not (job_id or "").strip():
            logger.error("Invalid resume job: empty job_id")
            return {"job_id": job_id, "error": {"code": "VALIDATION_ERROR"}}
        result = get_resume_cache_job_use_case().execute(
            ResumeCacheJobInput(job_id=job_id)
        )
        return result.to_dict()

    return _run_job("resume_cache_job", body)


def cleanup_completed_jobs_job(older_than_days: int | None = None) -> Dict[str, Any]:
    """RQ job: retention cleanup of old completed jobs."""

    def body() -> Dict[str, Any]:
        days = (
            get_settings().completed_job_retention_days
            if older_than_days is None
            else int(older_than_days)
        )
        result = get_cleanup_completed_jobs_use_case().execute(
            CleanupOldCompletedJobsInput(older_than_days=days)
        )
        return {
            "deleted": result.deleted,
            "cutoff": result.cutoff.isoformat() if result.cutoff else None,
            "error": result.error.to_dict() if result.error else None,
        }

    return _run_job("cleanup_completed_jobs", body)


__all__ = [
    "recover_incomplete_jobs_job",
    "resume_cache_job_job",
    "cleanup_completed_jobs_job",
]
