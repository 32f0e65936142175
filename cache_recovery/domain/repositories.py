"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define the persistence contracts the recovery engine consumes (ports).
- Keep application code independent from PostgreSQL / in-memory details.

Collaborators
- domain.entities: CacheJobState, CacheJobStatus, Collection
- infrastructure.repositories: postgres/*, in_memory/* implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Per-item writes MUST be atomic inside the store (single statement / lock);
  callers never read-modify-write counters.

Notes
- typing.Protocol for structural subtyping.
- Implementations raise their own infrastructure errors (DatabaseError,
  CollectionSourceError); "absent" is always signalled with None, never with
  an exception.
"""

from datetime import datetime
from typing import List, Optional, Protocol

from .entities import CacheJobState, CacheJobStatus, Collection


class CacheJobStateRepository(Protocol):
    """
    R: Interface for job state persistence.

    Implementations must provide:
      - Lookup of incomplete jobs (status != COMPLETED, any can_resume)
      - Status transitions with optional reason
      - Exactly-once per item skip / processed inserts
      - Retention cleanup of completed jobs
    """

    def create(self, job: CacheJobState) -> CacheJobState:
        """R: Persist a new job record (fails if job_id exists)."""
        ...

    def get_by_job_id(self, job_id: str) -> Optional[CacheJobState]:
        """R: Return the job or None when absent."""
        ...

    def get_incomplete_jobs(self) -> List[CacheJobState]:
        """R: All jobs whose status is not COMPLETED."""
        ...

    def get_by_collection_id(self, collection_id: str) -> List[CacheJobState]:
        """R: Jobs targeting a collection, newest first."""
        ...

    def update_status(
        self,
        job_id: str,
        status: CacheJobStatus,
        reason: Optional[str] = None,
    ) -> bool:
        """
        R: Set status; stamp timestamps; record reason when given.

        COMPLETED also stamps completed_at (once) and leaves can_resume as
        it is. COMPLETED is terminal: moving a completed job to any other
        status is refused in the same write. Returns False when the job does
        not exist or the transition was refused.
        """
        ...

    def atomic_increment_skipped(self, job_id: str, item_id: str) -> bool:
        """R: Add item to skipped set once. True only if it was added now."""
        ...

    def atomic_mark_processed(self, job_id: str, item_id: str) -> bool:
        """R: Add item to processed set once (removing it from skipped)."""
        ...

    def update(self, job: CacheJobState) -> bool:
        """
        R: Record update of the gate and descriptive fields.

        Used for the can_resume gate flip. Status, timestamps and item sets
        are not written. Implementations must never reopen a closed gate.
        """
        ...

    def delete_old_completed_jobs(self, cutoff: datetime) -> int:
        """R: Delete COMPLETED jobs whose completed_at < cutoff. Returns count."""
        ...


class CollectionSource(Protocol):
    """
    R: Interface for the authoritative collection membership.

    get_by_id returns None only for true absence; I/O failures raise.
    """

    def get_by_id(self, collection_id: str) -> Optional[Collection]:
        ...
