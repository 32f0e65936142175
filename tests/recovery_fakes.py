"""
Name: Shared test doubles and factories

Responsibilities:
  - RecordingPublisher: in-order capture of published work messages
  - make_job / make_collection: small entity factories with stable defaults
"""

from typing import List

from cache_recovery.domain.entities import (
    CacheGenerationMessage,
    CacheJobState,
    CacheJobStatus,
    Collection,
    CollectionItem,
)


class RecordingPublisher:
    """Publisher double: keeps every published message in order."""

    def __init__(self, fail_on: set[str] | None = None) -> None:
        self.messages: List[CacheGenerationMessage] = []
        self._fail_on = set(fail_on or ())

    def publish(self, message: CacheGenerationMessage) -> None:
        if message.item_id in self._fail_on:
            raise ConnectionError(f"queue down for {message.item_id}")
        self.messages.append(message)

    @property
    def item_ids(self) -> List[str]:
        return [m.item_id for m in self.messages]


def make_collection(collection_id: str = "col-1", item_ids=("a", "b", "c")) -> Collection:
    return Collection(
        id=collection_id,
        path="/photos/trip",
        name="Trip",
        items=[
            CollectionItem(id=item_id, relative_path=f"{item_id}.jpg", filename=f"{item_id}.jpg")
            for item_id in item_ids
        ],
    )


def make_job(
    job_id: str = "J1",
    *,
    collection_id: str = "col-1",
    item_ids=("a", "b", "c"),
    processed=(),
    skipped=(),
    status: CacheJobStatus = CacheJobStatus.RUNNING,
    can_resume: bool = True,
) -> CacheJobState:
    return CacheJobState(
        job_id=job_id,
        collection_id=collection_id,
        total_images=len(item_ids),
        cache_width=1920,
        cache_height=1080,
        quality=85,
        format="jpeg",
        cache_folder_path="/var/cache/images",
        status=status,
        can_resume=can_resume,
        processed_image_ids=set(processed),
        skipped_image_ids=set(skipped),
        item_ids=list(item_ids),
    )
