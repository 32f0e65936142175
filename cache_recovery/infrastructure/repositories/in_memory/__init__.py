"""In-memory adapters (tests / local dev). No persistence across restarts."""

from .cache_job_state import InMemoryCacheJobStateRepository
from .collection import InMemoryCollectionSource

__all__ = ["InMemoryCacheJobStateRepository", "InMemoryCollectionSource"]
