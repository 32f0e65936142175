"""
============================================================
CRC CARD — infrastructure/repositories/postgres/collection.py
============================================================
Class: PostgresCollectionSource

Responsibilities:
- Read collection membership (ordered items) from PostgreSQL.
- Distinguish absence (None) from I/O failure (CollectionSourceError);
  only absence may revoke a job's resumability.

Collaborators:
- domain.entities.Collection, CollectionItem
- crosscutting.exceptions.CollectionSourceError
- Tables: collections, collection_items
============================================================
"""

from __future__ import annotations

from typing import Optional

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import CollectionSourceError
from ....crosscutting.logger import logger
from ....domain.entities import Collection, CollectionItem


class PostgresCollectionSource:
    """R: PostgreSQL implementation of the collection source."""

    def __init__(self, pool: Optional[ConnectionPool] = None):
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    def get_by_id(self, collection_id: str) -> Optional[Collection]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                header = conn.execute(
                    "SELECT id, name, path FROM collections WHERE id = %s",
                    (collection_id,),
                ).fetchone()
                if header is None:
                    return None
                rows = conn.execute(
                    """
                    SELECT item_id, relative_path, filename
                    FROM collection_items
                    WHERE collection_id = %s
                    ORDER BY position ASC, item_id ASC
                    """,
                    (collection_id,),
                ).fetchall()
        except Exception as exc:
            logger.exception(
                "PostgresCollectionSource: Failed to load collection",
                extra={"collection_id": collection_id, "error": str(exc)},
            )
            raise CollectionSourceError(
                f"Failed to load collection {collection_id}", original_error=exc
            ) from exc

        cid, name, path = header
        return Collection(
            id=cid,
            name=name or "",
            path=path or "",
            items=[
                CollectionItem(id=item_id, relative_path=rel, filename=fname or "")
                for item_id, rel, fname in rows
            ],
        )
