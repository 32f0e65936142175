"""
============================================================
CRC CARD — infrastructure/repositories/in_memory/cache_job_state.py
============================================================
Class: InMemoryCacheJobStateRepository

Responsibilities:
  - Store job states in memory (tests / local dev).
  - Honor the same atomicity contract as Postgres: every per-item write
    happens under one lock acquisition.
  - Keep ordering deterministic: created_at DESC, job_id ASC.

Collaborators:
  - domain.entities.CacheJobState, CacheJobStatus
  - domain.repositories.CacheJobStateRepository

Constraints / Notes:
  - Thread-safe: guarded by Lock.
  - Copies in and out: callers never share mutable sets.
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Iterable, List, Optional

from ....domain.entities import CacheJobState, CacheJobStatus
from ....domain.repositories import CacheJobStateRepository


class InMemoryCacheJobStateRepository(CacheJobStateRepository):
    """
    In-memory, thread-safe job state store.

    Mental model:
    - _jobs is the in-memory "table" (job_id -> CacheJobState).
    - Each operation reads/writes under the lock.
    """

    def __init__(self, jobs: Iterable[CacheJobState] | None = None) -> None:
        self._lock = Lock()
        self._jobs: Dict[str, CacheJobState] = {}
        for job in jobs or ():
            self.create(job)

    # =========================================================
    # Internal helpers
    # =========================================================
    @staticmethod
    def _now() -> datetime:
        """R: Single UTC time source."""
        return datetime.now(timezone.utc)

    @staticmethod
    def _copy(job: CacheJobState) -> CacheJobState:
        """R: Copy of the mutable collections."""
        return replace(
            job,
            processed_image_ids=set(job.processed_image_ids),
            skipped_image_ids=set(job.skipped_image_ids),
            item_ids=list(job.item_ids),
        )

    @classmethod
    def _sorted(cls, items: Iterable[CacheJobState]) -> List[CacheJobState]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            (cls._copy(j) for j in items),
            key=lambda j: (-(j.created_at or epoch).timestamp(), j.job_id),
        )

    # =========================================================
    # Writes
    # =========================================================
    def create(self, job: CacheJobState) -> CacheJobState:
        now = self._now()
        stored = self._copy(job)
        # R: a job must never start with overlapping sets.
        stored.skipped_image_ids -= stored.processed_image_ids
        stored.created_at = stored.created_at or now
        stored.updated_at = stored.updated_at or now
        with self._lock:
            if stored.job_id in self._jobs:
                raise ValueError(f"Job {stored.job_id} already exists")
            self._jobs[stored.job_id] = stored
        return self._copy(stored)

    def update_status(
        self,
        job_id: str,
        status: CacheJobStatus,
        reason: Optional[str] = None,
    ) -> bool:
        now = self._now()
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False
            completed = job.status is CacheJobStatus.COMPLETED
            if completed and status is not CacheJobStatus.COMPLETED:
                return False
            job.status = status
            job.updated_at = now
            job.last_progress_at = now
            if status is CacheJobStatus.RUNNING and job.started_at is None:
                job.started_at = now
            if status is CacheJobStatus.COMPLETED and job.completed_at is None:
                job.completed_at = now
            if reason:
                job.error_message = reason
            return True

    def atomic_increment_skipped(self, job_id: str, item_id: str) -> bool:
        now = self._now()
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False
            if item_id in job.skipped_image_ids or item_id in job.processed_image_ids:
                return False
            job.skipped_image_ids.add(item_id)
            job.updated_at = now
            job.last_progress_at = now
            return True

    def atomic_mark_processed(self, job_id: str, item_id: str) -> bool:
        now = self._now()
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or item_id in job.processed_image_ids:
                return False
            job.processed_image_ids.add(item_id)
            job.skipped_image_ids.discard(item_id)
            job.updated_at = now
            job.last_progress_at = now
            return True

    def update(self, job: CacheJobState) -> bool:
        """
        R: Record update of the gate and descriptive fields.

        Status, its timestamps and the item sets belong to update_status and
        the atomic operations, so a stale copy cannot roll them back. A closed
        resumability gate is never reopened.
        """
        with self._lock:
            current = self._jobs.get(job.job_id)
            if current is None:
                return False
            current.can_resume = current.can_resume and job.can_resume
            current.collection_name = job.collection_name
            current.total_images = job.total_images
            current.updated_at = self._now()
            return True

    def delete_old_completed_jobs(self, cutoff: datetime) -> int:
        with self._lock:
            doomed = [
                job_id
                for job_id, job in self._jobs.items()
                if job.status is CacheJobStatus.COMPLETED
                and job.completed_at is not None
                and job.completed_at < cutoff
            ]
            for job_id in doomed:
                del self._jobs[job_id]
            return len(doomed)

    # =========================================================
    # Reads
    # =========================================================
    def get_by_job_id(self, job_id: str) -> Optional[CacheJobState]:
        with self._lock:
            job = self._jobs.get(job_id)
            return self._copy(job) if job is not None else None

    def get_incomplete_jobs(self) -> List[CacheJobState]:
        with self._lock:
            values = [
                j for j in self._jobs.values() if j.status is not CacheJobStatus.COMPLETED
            ]
            return self._sorted(values)

    def get_by_collection_id(self, collection_id: str) -> List[CacheJobState]:
        with self._lock:
            values = [j for j in self._jobs.values() if j.collection_id == collection_id]
            return self._sorted(values)
