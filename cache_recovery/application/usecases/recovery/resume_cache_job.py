"""
===============================================================================
USE CASE: Resume Cache Job (re-derive and re-enqueue remaining work)
===============================================================================

Name:
    Resume Cache Job Use Case

Business Goal:
    Given a persisted, partially completed cache-generation job, work out
    which items are still unprocessed, re-enqueue them and move the job
    state forward, so that any number of restarts converge on a finished job.

Why:
    - `remaining` is recomputed from the CURRENT collection on every call;
      no stored pending list is trusted. A second (even concurrent) resume
      sees a set that only shrinks as processing completes.
    - Items that vanished from the collection are recorded as skipped
      through the store's exactly-once primitive and never published.
    - The job's creation-time membership snapshot (item_ids) is what lets
      vanished items be recognized at all; without one, only current
      members are considered.
    - Resume never forces regeneration by default: output written by an
      earlier uncrashed attempt must survive. Forcing is an explicit
      operator choice.

Decision sequence (each step short-circuits):
    1) job absent                 -> NOT_FOUND
    2) can_resume is False        -> NON_RESUMABLE, no side effects
    3) status COMPLETED           -> success, no writes
    4) collection absent          -> disable resumption, NOT_FOUND
       collection lookup failed   -> COLLABORATOR_UNAVAILABLE (gate untouched)
    5) remaining = candidates - processed
    6) remaining empty            -> COMPLETED, success
    7) RUNNING; publish present items, skip missing ones;
       nothing published          -> COMPLETED
    8) success once every remaining item is dispositioned

-------------------------------------------------------------------------------
CRC CARD
-------------------------------------------------------------------------------
Class:
    ResumeCacheJobUseCase

Collaborators:
    - CacheJobStateRepository: get_by_job_id, update_status,
      atomic_increment_skipped
    - CollectionSource: get_by_id
    - CacheGenerationPublisher: publish
    - domain.cache_paths.resolve_cache_path
    - DisableJobResumptionUseCase (collection gone)
    - crosscutting.metrics / tracing, context.cache_job_id_var
===============================================================================
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Final, List, Optional

from ....context import cache_job_id_var
from ....crosscutting.exceptions import error_log_fields
from ....crosscutting.logger import logger as default_logger
from ....crosscutting.metrics import (
    observe_resume_duration,
    record_items_skipped,
    record_messages_published,
    record_resume_outcome,
)
from ....crosscutting.tracing import span
from ....domain.cache_paths import resolve_cache_path
from ....domain.entities import (
    CacheGenerationMessage,
    CacheJobState,
    CacheJobStatus,
    Collection,
)
from ....domain.repositories import CacheJobStateRepository, CollectionSource
from ....domain.services import CacheGenerationPublisher
from .disable_job_resumption import (
    DisableJobResumptionInput,
    DisableJobResumptionUseCase,
)
from .recovery_results import RecoveryError, RecoveryErrorCode, ResumeJobResult

_RESOURCE_JOB: Final[str] = "CacheJob"
_RESOURCE_COLLECTION: Final[str] = "Collection"
_RESOURCE_STORE: Final[str] = "CacheJobStore"
_RESOURCE_COLLECTION_SOURCE: Final[str] = "CollectionSource"
_RESOURCE_QUEUE: Final[str] = "CacheGenerationQueue"

COLLECTION_NOT_FOUND_REASON: Final[str] = "Collection not found"

_MSG_JOB_NOT_FOUND: Final[str] = "Cache job not found."
_MSG_NON_RESUMABLE: Final[str] = "Cache job is marked as non-resumable."
_MSG_COLLECTION_NOT_FOUND: Final[str] = "Collection of the cache job no longer exists."
_MSG_STORE_UNAVAILABLE: Final[str] = "Cache job store unavailable."
_MSG_COLLECTION_SOURCE_UNAVAILABLE: Final[str] = "Collection source unavailable."
_MSG_QUEUE_UNAVAILABLE: Final[str] = "Cache generation queue unavailable."

# Outcome labels (metrics + results). Fixed vocabulary.
OUTCOME_RESUMED: Final[str] = "resumed"
OUTCOME_COMPLETED: Final[str] = "completed"
OUTCOME_ALREADY_COMPLETED: Final[str] = "already_completed"
OUTCOME_NOT_FOUND: Final[str] = "not_found"
OUTCOME_NON_RESUMABLE: Final[str] = "non_resumable"
OUTCOME_COLLECTION_MISSING: Final[str] = "collection_missing"
OUTCOME_UNAVAILABLE: Final[str] = "collaborator_unavailable"


@dataclass(frozen=True)
class ResumeCacheJobInput:
    """
    Input DTO.

    force_regenerate:
        Only set by an explicit operator action; bulk recovery never does.
    """

    job_id: str
    force_regenerate: bool = False


class _CollaboratorFailure(Exception):
    """Internal: carries the error to report once a collaborator call failed."""

    def __init__(self, error: RecoveryError) -> None:
        super().__init__(error.message)
        self.error = error


class ResumeCacheJobUseCase:
    """
    Use Case (Application Service / Command):
        Resume one interrupted cache-generation job.
    """

    def __init__(
        self,
        job_repository: CacheJobStateRepository,
        collection_source: CollectionSource,
        publisher: CacheGenerationPublisher,
        *,
        disable_resumption: DisableJobResumptionUseCase | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._jobs = job_repository
        self._collections = collection_source
        self._publisher = publisher
        self._log = logger or default_logger
        self._disable = disable_resumption or DisableJobResumptionUseCase(
            job_repository, logger=self._log
        )

    def execute(self, input_data: ResumeCacheJobInput) -> ResumeJobResult:
        job_id = (input_data.job_id or "").strip()
        if not job_id:
            raise ValueError("job_id is required")

        token = cache_job_id_var.set(job_id)
        start = time.perf_counter()
        try:
            with span("recovery.resume_job", {"job_id": job_id}):
                result = self._resume(job_id, input_data.force_regenerate)
        finally:
            observe_resume_duration(time.perf_counter() - start)
            cache_job_id_var.reset(token)

        record_resume_outcome(result.outcome)
        return result

    # =========================================================================
    # Decision sequence
    # =========================================================================

    def _resume(self, job_id: str, force_regenerate: bool) -> ResumeJobResult:
        self._log.info("Resume requested", extra={"job_id": job_id})

        # ---------------------------------------------------------------------
        # 1) Load job state.
        # ---------------------------------------------------------------------
        try:
            job = self._call_store(self._jobs.get_by_job_id, job_id, job_id=job_id)
        except _CollaboratorFailure as failure:
            return self._failed(job_id, OUTCOME_UNAVAILABLE, failure.error)

        if job is None:
            self._log.warning("Cache job not found", extra={"job_id": job_id})
            return self._failed(
                job_id,
                OUTCOME_NOT_FOUND,
                RecoveryError(
                    code=RecoveryErrorCode.NOT_FOUND,
                    message=_MSG_JOB_NOT_FOUND,
                    resource=_RESOURCE_JOB,
                ),
            )

        # ---------------------------------------------------------------------
        # 2) One-way gate: no side effects at all.
        # ---------------------------------------------------------------------
        if not job.can_resume:
            self._log.info(
                "Cache job is non-resumable", extra={"job_id": job_id}
            )
            return self._failed(
                job_id,
                OUTCOME_NON_RESUMABLE,
                RecoveryError(
                    code=RecoveryErrorCode.NON_RESUMABLE,
                    message=_MSG_NON_RESUMABLE,
                    resource=_RESOURCE_JOB,
                ),
                status=job.status,
            )

        # ---------------------------------------------------------------------
        # 3) Already finished: idempotent no-op.
        # ---------------------------------------------------------------------
        if job.is_completed:
            self._log.info("Cache job already completed", extra={"job_id": job_id})
            return ResumeJobResult(
                job_id=job_id,
                success=True,
                outcome=OUTCOME_ALREADY_COMPLETED,
                status=CacheJobStatus.COMPLETED,
            )

        # ---------------------------------------------------------------------
        # 4) Load the collection; only true absence revokes resumability.
        # ---------------------------------------------------------------------
        try:
            collection = self._collections.get_by_id(job.collection_id)
        except Exception as exc:
            self._log.warning(
                "Collection lookup failed; job stays resumable",
                extra={
                    "job_id": job_id,
                    "collection_id": job.collection_id,
                    **error_log_fields(exc),
                },
            )
            return self._failed(
                job_id,
                OUTCOME_UNAVAILABLE,
                RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_COLLECTION_SOURCE_UNAVAILABLE,
                    resource=_RESOURCE_COLLECTION_SOURCE,
                ),
                status=job.status,
            )

        if collection is None:
            self._log.warning(
                "Collection not found for cache job, disabling resumption",
                extra={"job_id": job_id, "collection_id": job.collection_id},
            )
            disabled = self._disable.execute(
                DisableJobResumptionInput(job_id=job_id, reason=COLLECTION_NOT_FOUND_REASON)
            )
            return self._failed(
                job_id,
                OUTCOME_COLLECTION_MISSING,
                RecoveryError(
                    code=RecoveryErrorCode.NOT_FOUND,
                    message=_MSG_COLLECTION_NOT_FOUND,
                    resource=_RESOURCE_COLLECTION,
                ),
                status=CacheJobStatus.FAILED if disabled.disabled else job.status,
            )

        # ---------------------------------------------------------------------
        # 5) Remaining work, recomputed from live membership.
        # ---------------------------------------------------------------------
        remaining = self._remaining_item_ids(job, collection)

        try:
            # -----------------------------------------------------------------
            # 6) Nothing left: the final status write was lost.
            # -----------------------------------------------------------------
            if not remaining:
                self._log.info(
                    "All items processed, marking cache job completed",
                    extra={"job_id": job_id},
                )
                self._call_store(
                    self._jobs.update_status, job_id, CacheJobStatus.COMPLETED, job_id=job_id
                )
                return ResumeJobResult(
                    job_id=job_id,
                    success=True,
                    outcome=OUTCOME_COMPLETED,
                    status=CacheJobStatus.COMPLETED,
                )

            # -----------------------------------------------------------------
            # 7) Re-enqueue.
            # -----------------------------------------------------------------
            self._log.info(
                "Resuming cache job",
                extra={
                    "job_id": job_id,
                    "remaining": len(remaining),
                    "progress_percent": job.progress_percent(),
                    "total_images": job.total_images,
                },
            )
            self._call_store(
                self._jobs.update_status, job_id, CacheJobStatus.RUNNING, job_id=job_id
            )
            published, skipped = self._dispatch(
                job, collection, remaining, force_regenerate=force_regenerate
            )

            status = CacheJobStatus.RUNNING
            if published == 0:
                # R: every remaining item was skipped -> nothing left in flight.
                self._call_store(
                    self._jobs.update_status,
                    job_id,
                    CacheJobStatus.COMPLETED,
                    job_id=job_id,
                )
                status = CacheJobStatus.COMPLETED

        except _CollaboratorFailure as failure:
            return self._failed(job_id, OUTCOME_UNAVAILABLE, failure.error)

        # ---------------------------------------------------------------------
        # 8) Every remaining item dispositioned.
        # ---------------------------------------------------------------------
        self._log.info(
            "Cache job resumed",
            extra={
                "job_id": job_id,
                "published": published,
                "skipped": skipped,
                "status": status.value,
            },
        )
        return ResumeJobResult(
            job_id=job_id,
            success=True,
            outcome=OUTCOME_RESUMED if status is CacheJobStatus.RUNNING else OUTCOME_COMPLETED,
            status=status,
            published=published,
            skipped=skipped,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _remaining_item_ids(job: CacheJobState, collection: Collection) -> List[str]:
        """
        Candidates: current members in collection order, then snapshot members
        that have since disappeared. Minus everything already processed.
        """
        seen: set[str] = set()
        remaining: List[str] = []
        for item_id in (*collection.item_ids(), *job.item_ids):
            if item_id in seen:
                continue
            seen.add(item_id)
            if not job.is_item_processed(item_id):
                remaining.append(item_id)
        return remaining

    def _dispatch(
        self,
        job: CacheJobState,
        collection: Collection,
        remaining: List[str],
        *,
        force_regenerate: bool,
    ) -> tuple[int, int]:
        published = 0
        skipped = 0
        items = collection.items_by_id()
        for item_id in remaining:
            item = items.get(item_id)
            if item is None:
                self._log.warning(
                    "Item not found in collection, skipping",
                    extra={
                        "job_id": job.job_id,
                        "item_id": item_id,
                        "collection_id": job.collection_id,
                    },
                )
                newly = self._call_store(
                    self._jobs.atomic_increment_skipped,
                    job.job_id,
                    item_id,
                    job_id=job.job_id,
                )
                if newly:
                    record_items_skipped()
                skipped += 1
                continue

            destination = resolve_cache_path(
                job.cache_folder_path,
                job.collection_id,
                item_id,
                job.cache_width,
                job.cache_height,
                job.format,
            )
            message = CacheGenerationMessage.for_recovery(
                job=job,
                item_id=item_id,
                source_path=item.full_path(collection.path),
                destination_path=destination,
                force_regenerate=force_regenerate,
            )
            try:
                self._publisher.publish(message)
            except Exception as exc:
                self._log.warning(
                    "Publishing cache generation message failed",
                    extra={"job_id": job.job_id, "item_id": item_id, **error_log_fields(exc)},
                )
                record_messages_published(published)
                raise _CollaboratorFailure(
                    RecoveryError(
                        code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                        message=_MSG_QUEUE_UNAVAILABLE,
                        resource=_RESOURCE_QUEUE,
                    )
                ) from exc
            published += 1

        record_messages_published(published)
        return published, skipped

    def _call_store(self, fn, *args, job_id: str):
        """Run a store call; map any failure to COLLABORATOR_UNAVAILABLE."""
        try:
            return fn(*args)
        except Exception as exc:
            self._log.warning(
                "Cache job store call failed",
                extra={
                    "job_id": job_id,
                    "store_call": getattr(fn, "__name__", "unknown"),
                    **error_log_fields(exc),
                },
            )
            raise _CollaboratorFailure(
                RecoveryError(
                    code=RecoveryErrorCode.COLLABORATOR_UNAVAILABLE,
                    message=_MSG_STORE_UNAVAILABLE,
                    resource=_RESOURCE_STORE,
                )
            ) from exc

    @staticmethod
    def _failed(
        job_id: str,
        outcome: str,
        error: RecoveryError,
        *,
        status: Optional[CacheJobStatus] = None,
    ) -> ResumeJobResult:
        return ResumeJobResult(
            job_id=job_id, success=False, outcome=outcome, status=status, error=error
        )
