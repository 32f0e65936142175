"""
===============================================================================
CRC CARD — domain/__init__.py
===============================================================================

Module:
    Domain layer exports

Responsibilities:
    - Centralize exports for clean imports from application/infrastructure.
    - Keep the domain surface stable.

Rules:
    - Only re-exports domain contracts/entities.
    - No infrastructure imports here.
===============================================================================
"""

from .cache_paths import extension_for_format, resolve_cache_path
from .entities import (
    CacheGenerationMessage,
    CacheJobState,
    CacheJobStatus,
    Collection,
    CollectionItem,
)
from .repositories import CacheJobStateRepository, CollectionSource
from .services import CacheGenerationPublisher, RecoveryTaskQueue

__all__ = [
    "CacheGenerationMessage",
    "CacheGenerationPublisher",
    "CacheJobState",
    "CacheJobStateRepository",
    "CacheJobStatus",
    "Collection",
    "CollectionItem",
    "CollectionSource",
    "RecoveryTaskQueue",
    "extension_for_format",
    "resolve_cache_path",
]
