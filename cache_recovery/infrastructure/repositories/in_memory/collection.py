"""
============================================================
CRC CARD — infrastructure/repositories/in_memory/collection.py
============================================================
Class: InMemoryCollectionSource

Responsibilities:
  - Serve collection membership from memory (tests / local dev).
  - Allow membership drift between calls (add/remove items, delete
    collections) to exercise resume against a changing collection.

Collaborators:
  - domain.entities.Collection, CollectionItem
  - domain.repositories.CollectionSource
============================================================
"""

from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Dict, Iterable, Optional

from ....domain.entities import Collection, CollectionItem
from ....domain.repositories import CollectionSource


class InMemoryCollectionSource(CollectionSource):
    def __init__(self, collections: Iterable[Collection] | None = None) -> None:
        self._lock = Lock()
        self._collections: Dict[str, Collection] = {}
        for collection in collections or ():
            self.save(collection)

    @staticmethod
    def _copy(collection: Collection) -> Collection:
        return replace(collection, items=list(collection.items))

    def save(self, collection: Collection) -> None:
        with self._lock:
            self._collections[collection.id] = self._copy(collection)

    def delete(self, collection_id: str) -> None:
        with self._lock:
            self._collections.pop(collection_id, None)

    def remove_item(self, collection_id: str, item_id: str) -> None:
        with self._lock:
            collection = self._collections.get(collection_id)
            if collection is not None:
                collection.items = [i for i in collection.items if i.id != item_id]

    def add_item(self, collection_id: str, item: CollectionItem) -> None:
        with self._lock:
            collection = self._collections.get(collection_id)
            if collection is not None:
                collection.items = [*collection.items, item]

    def get_by_id(self, collection_id: str) -> Optional[Collection]:
        with self._lock:
            collection = self._collections.get(collection_id)
            return self._copy(collection) if collection is not None else None
