"""
===============================================================================
CRC CARD — domain/entities.py
===============================================================================

Module:
    Domain entities (CacheJobState, Collection, CacheGenerationMessage)

Responsibilities:
    - Define the core records of batch cache generation (no infrastructure).
    - Keep small helpers that protect simple invariants (progress, lookup).
    - Give use cases and repositories one strongly typed vocabulary.

Collaborators:
    - domain.repositories: persist/load these entities.
    - application/usecases/recovery: build and consume them.
    - infrastructure/queue: serializes CacheGenerationMessage.

Principles:
    - No DB/Redis dependencies here.
    - Data + minimal behaviour.
===============================================================================
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Final, List, Optional, Set

_MIN_QUALITY: Final[int] = 0
_MAX_QUALITY: Final[int] = 100

# Origin tag for messages emitted by the recovery engine.
RECOVERY_ORIGIN_PREFIX: Final[str] = "JobRecovery_"


def _utcnow() -> datetime:
    """UTC now (internal helper)."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Job status
# ---------------------------------------------------------------------------


class CacheJobStatus(str, Enum):
    """
    Closed set of job states.

    Notes:
      - Running <-> Failed may alternate across resume attempts.
      - Completed is terminal.
    """

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is CacheJobStatus.COMPLETED


# ---------------------------------------------------------------------------
# Job state
# ---------------------------------------------------------------------------


@dataclass
class CacheJobState:
    """
    Persisted progress record of one batch cache-generation job.

    Important:
      - processed_image_ids is written by the rendering worker through the
        store's atomic insert; this engine never adds to it.
      - skipped_image_ids and processed_image_ids are disjoint.
      - can_resume is a one-way gate.
      - cache parameters are fixed at creation and reused on every resume so
        that output paths stay stable.
      - item_ids is the collection membership snapshot taken at creation
        (empty for records created without one).
    """

    job_id: str
    collection_id: str
    total_images: int
    cache_width: int
    cache_height: int
    quality: int
    format: str = "jpeg"
    cache_folder_path: Optional[str] = None
    status: CacheJobStatus = CacheJobStatus.PENDING
    can_resume: bool = True
    processed_image_ids: Set[str] = field(default_factory=set)
    skipped_image_ids: Set[str] = field(default_factory=set)
    item_ids: List[str] = field(default_factory=list)

    collection_name: Optional[str] = None
    error_message: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    last_progress_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status is CacheJobStatus.COMPLETED

    @property
    def is_resumable(self) -> bool:
        return self.can_resume and not self.is_completed

    def is_item_processed(self, item_id: str) -> bool:
        return item_id in self.processed_image_ids

    def progress_percent(self) -> int:
        """Integer percentage of dispositioned items (processed + skipped)."""
        if self.total_images <= 0:
            return 0
        done = len(self.processed_image_ids) + len(self.skipped_image_ids)
        return min(100, int(done * 100 / self.total_images))

    def remaining_count(self) -> int:
        done = len(self.processed_image_ids) + len(self.skipped_image_ids)
        return max(0, self.total_images - done)

    def disable_resume(self) -> None:
        """Close the resumability gate (never reopened)."""
        self.can_resume = False
        self.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollectionItem:
    """One element of a collection (e.g. one image)."""

    id: str
    relative_path: str
    filename: str = ""

    def full_path(self, collection_path: str) -> str:
        if not collection_path:
            return self.relative_path
        return posixpath.join(collection_path, self.relative_path)


@dataclass
class Collection:
    """Authoritative membership of a collection at read time."""

    id: str
    path: str
    name: str = ""
    items: List[CollectionItem] = field(default_factory=list)

    def item_ids(self) -> List[str]:
        return [item.id for item in self.items]

    def items_by_id(self) -> Dict[str, CollectionItem]:
        """ID -> item; the first occurrence wins for duplicated IDs."""
        index: Dict[str, CollectionItem] = {}
        for item in self.items:
            index.setdefault(item.id, item)
        return index


# ---------------------------------------------------------------------------
# Work message
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CacheGenerationMessage:
    """
    One unit of work for the rendering worker.

    Attributes:
        job_id: owning job
        item_id: item to render
        collection_id: owning collection
        source_path: full path of the original item
        destination_path: resolved cache output path
        width/height: target dimensions (> 0)
        quality: encoder quality, 0..100
        format: output format name
        force_regenerate: overwrite existing output when True
        origin: provenance tag (diagnostics)
    """

    job_id: str
    item_id: str
    collection_id: str
    source_path: str
    destination_path: str
    width: int
    height: int
    quality: int
    format: str
    force_regenerate: bool = False
    origin: str = ""

    def __post_init__(self) -> None:
        if not self.job_id or not self.item_id:
            raise ValueError("job_id and item_id are required")
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be > 0")
        if not (_MIN_QUALITY <= self.quality <= _MAX_QUALITY):
            raise ValueError(
                f"quality must be between {_MIN_QUALITY} and {_MAX_QUALITY}"
            )

    @classmethod
    def for_recovery(
        cls,
        *,
        job: CacheJobState,
        item_id: str,
        source_path: str,
        destination_path: str,
        force_regenerate: bool = False,
    ) -> "CacheGenerationMessage":
        """Build a recovery-originated message reusing the job's parameters."""
        return cls(
            job_id=job.job_id,
            item_id=item_id,
            collection_id=job.collection_id,
            source_path=source_path,
            destination_path=destination_path,
            width=job.cache_width,
            height=job.cache_height,
            quality=job.quality,
            format=job.format,
            force_regenerate=force_regenerate,
            origin=f"{RECOVERY_ORIGIN_PREFIX}{job.job_id}",
        )

    def to_payload(self) -> Dict[str, Any]:
        """JSON-safe wire representation."""
        return {
            "job_id": self.job_id,
            "item_id": self.item_id,
            "collection_id": self.collection_id,
            "source_path": self.source_path,
            "destination_path": self.destination_path,
            "width": int(self.width),
            "height": int(self.height),
            "quality": int(self.quality),
            "format": self.format,
            "force_regenerate": bool(self.force_regenerate),
            "origin": self.origin,
        }
