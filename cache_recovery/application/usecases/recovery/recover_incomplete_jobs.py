"""
===============================================================================
USE CASE: Recover Incomplete Jobs (bulk recovery pass)
===============================================================================

Business Goal:
    On startup (or on demand) find every job that did not reach COMPLETED
    and try to resume it, so that a crash never leaves work silently
    abandoned.

Rules:
    - Listing ignores can_resume: the resume step reports
      non-resumable jobs as failures, which makes them visible in the report.
    - Jobs are resumed one at a time. Each resume runs on its own daemon
      thread so a hung collaborator call is bounded by `job_timeout_seconds`
      and an abandoned thread never delays the jobs after it.
    - A single job's failure (error result, exception or timeout) is counted
      and logged; it never stops the pass and never escapes `execute()`.

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Class:
    RecoverIncompleteJobsUseCase

Responsibilities:
    - List incomplete jobs.
    - Resume each with a per-job timeout.
    - Aggregate a RecoveryReport.

Collaborators:
    - CacheJobStateRepository.get_incomplete_jobs
    - ResumeCacheJobUseCase
    - crosscutting.metrics.observe_recovery_pass_duration
===============================================================================
"""

from __future__ import annotations

import contextvars
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Final, List

from ....crosscutting.exceptions import error_log_fields
from ....crosscutting.logger import logger as default_logger
from ....crosscutting.metrics import observe_recovery_pass_duration
from ....crosscutting.tracing import span
from ....domain.repositories import CacheJobStateRepository
from .recovery_results import RecoveryError, RecoveryErrorCode, RecoveryReport
from .resume_cache_job import ResumeCacheJobInput, ResumeCacheJobUseCase

_RESOURCE_STORE: Final[str] = "CacheJobStore"
_MSG_STORE_UNAVAILABLE: Final[str] = "Could not list incomplete cache jobs."

_DEFAULT_JOB_TIMEOUT_SECONDS: Final[float] = 120.0


class RecoverIncompleteJobsUseCase:
    """Bulk recovery pass over every non-completed job."""

    def __init__(
        self,
        job_repository: CacheJobStateRepository,
        resume_job: ResumeCacheJobUseCase,
        *,
        job_timeout_seconds: float | None = _DEFAULT_JOB_TIMEOUT_SECONDS,
        logger: logging.Logger | None = None,
    ) -> None:
        if job_timeout_seconds is not None and job_timeout_seconds <= 0:
            raise ValueError("job_timeout_seconds must be > 0")
        self._jobs = job_repository
        self._resume = resume_job
        self._timeout = job_timeout_seconds
        self._log = logger or default_logger

    def execute(self) -> RecoveryReport:
        start = time.perf_counter()
        try:
            with span("recovery.recover_incomplete_jobs"):
                report = self._run(start)
        finally:
            observe_recovery_pass_duration(time.perf_counter() - start)
        return report

    def _run(self, start: float) -> RecoveryReport:
        self._log.info("Starting recovery of incomplete cache jobs")

        try:
            jobs = self._jobs.get_incomplete_jobs()
        except Exception as exc:
            self._log.exception(
                "Error listing incomplete cache jobs", extra=error_log_fields(exc)
            )
            return RecoveryReport(
                duration_seconds=time.perf_counter() - start,
                error=RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_STORE_UNAVAILABLE,
                    resource=_RESOURCE_STORE,
                ),
            )

        self._log.info("Found incomplete cache jobs", extra={"count": len(jobs)})

        recovered = 0
        failed: List[str] = []
        timed_out: List[str] = []

        for job in jobs:
            job_id = job.job_id
            future = self._start_resume(job_id)
            try:
                result = future.result(timeout=self._timeout)
            except FutureTimeoutError:
                # R: the resume thread may still be running; it is abandoned.
                self._log.error(
                    "Timed out resuming cache job",
                    extra={"job_id": job_id, "timeout_seconds": self._timeout},
                )
                timed_out.append(job_id)
                failed.append(job_id)
                continue
            except Exception as exc:
                self._log.exception(
                    "Error resuming cache job",
                    extra={"job_id": job_id, **error_log_fields(exc)},
                )
                failed.append(job_id)
                continue

            if result.success:
                recovered += 1
            else:
                failed.append(job_id)
                self._log.info(
                    "Cache job not recovered",
                    extra={
                        "job_id": job_id,
                        "outcome": result.outcome,
                        "error": result.error.message if result.error else None,
                    },
                )

        report = RecoveryReport(
            total=len(jobs),
            recovered=recovered,
            failed=len(failed),
            failed_job_ids=tuple(failed),
            timed_out_job_ids=tuple(timed_out),
            duration_seconds=time.perf_counter() - start,
        )
        self._log.info(
            "Recovery pass completed",
            extra={
                "total": report.total,
                "recovered": report.recovered,
                "failed": report.failed,
                "timed_out": len(timed_out),
                "duration_seconds": round(report.duration_seconds, 3),
            },
        )
        return report

    def _start_resume(self, job_id: str) -> Future:
        """Run one resume on a fresh daemon thread, in a copy of the caller's context."""
        future: Future = Future()
        ctx = contextvars.copy_context()

        def _target() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                result = ctx.run(self._resume.execute, ResumeCacheJobInput(job_id=job_id))
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)

        threading.Thread(
            target=_target, name=f"cache-recovery-{job_id}", daemon=True
        ).start()
        return future
