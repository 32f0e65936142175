"""
============================================================
CRC CARD — infrastructure/repositories/__init__.py
============================================================
Module: infrastructure.repositories (public export surface)

Responsibilities:
- Expose concrete store/source implementations (Postgres and InMemory)
  from one import point.

Policy:
- Re-exports only; no side effects.
============================================================
"""

from .in_memory import InMemoryCacheJobStateRepository, InMemoryCollectionSource
from .postgres import PostgresCacheJobStateRepository, PostgresCollectionSource

__all__ = [
    "InMemoryCacheJobStateRepository",
    "InMemoryCollectionSource",
    "PostgresCacheJobStateRepository",
    "PostgresCollectionSource",
]
