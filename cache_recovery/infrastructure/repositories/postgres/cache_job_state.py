"""
============================================================
CRC CARD — infrastructure/repositories/postgres/cache_job_state.py
============================================================
Class: PostgresCacheJobStateRepository

Responsibilities:
- Persist job states in PostgreSQL (raw SQL).
- Implement every per-item write as ONE guarded UPDATE so concurrent
  resumers and rendering workers never lose or duplicate an item:
  - skip:      array_append guarded by NOT (item = ANY(...))
  - processed: array_append + array_remove(skipped) guarded likewise
- Map the closed status enum to/from its stored strings explicitly.

Collaborators:
- domain.entities.CacheJobState, CacheJobStatus
- crosscutting.exceptions.DatabaseError
- crosscutting.logger.logger
- psycopg_pool.ConnectionPool
- Table: cache_job_states

Constraints / Notes:
- No business logic here.
- Queries always parameterized.
- Unknown stored status strings are an error (no silent fallback).
============================================================
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import DatabaseError
from ....crosscutting.logger import logger
from ....domain.entities import CacheJobState, CacheJobStatus

# R: Explicit, exhaustive mapping at the serialization boundary.
STATUS_TO_DB: Mapping[CacheJobStatus, str] = {
    CacheJobStatus.PENDING: "Pending",
    CacheJobStatus.RUNNING: "Running",
    CacheJobStatus.COMPLETED: "Completed",
    CacheJobStatus.FAILED: "Failed",
}
STATUS_FROM_DB: Mapping[str, CacheJobStatus] = {v: k for k, v in STATUS_TO_DB.items()}


def status_to_db(status: CacheJobStatus) -> str:
    return STATUS_TO_DB[status]


def status_from_db(value: str) -> CacheJobStatus:
    try:
        return STATUS_FROM_DB[value]
    except KeyError:
        raise ValueError(f"Unknown cache job status in storage: {value!r}") from None


class PostgresCacheJobStateRepository:
    """R: PostgreSQL implementation of the job state store."""

    _TABLE = "cache_job_states"

    # R: Same column order everywhere for consistent mapping.
    _SELECT_COLUMNS = """
        job_id, collection_id, collection_name, status, total_images,
        processed_image_ids, skipped_image_ids, item_ids, can_resume,
        cache_width, cache_height, quality, format, cache_folder_path,
        error_message, created_at, updated_at, started_at, completed_at,
        last_progress_at
    """

    _ORDER_BY = "ORDER BY created_at DESC NULLS LAST, job_id ASC"

    def __init__(self, pool: Optional[ConnectionPool] = None):
        # R: Injectable pool for tests; production uses the global pool.
        self._pool = pool

    def _get_pool(self) -> ConnectionPool:
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    # =========================================================
    # Mapping
    # =========================================================
    def _row_to_job(self, row: tuple) -> CacheJobState:
        (
            job_id,
            collection_id,
            collection_name,
            status,
            total_images,
            processed_image_ids,
            skipped_image_ids,
            item_ids,
            can_resume,
            cache_width,
            cache_height,
            quality,
            fmt,
            cache_folder_path,
            error_message,
            created_at,
            updated_at,
            started_at,
            completed_at,
            last_progress_at,
        ) = row

        return CacheJobState(
            job_id=job_id,
            collection_id=collection_id,
            collection_name=collection_name,
            status=status_from_db(status),
            total_images=total_images,
            processed_image_ids=set(processed_image_ids or ()),
            skipped_image_ids=set(skipped_image_ids or ()),
            item_ids=list(item_ids or ()),
            can_resume=bool(can_resume),
            cache_width=cache_width,
            cache_height=cache_height,
            quality=quality,
            format=fmt,
            cache_folder_path=cache_folder_path,
            error_message=error_message,
            created_at=created_at,
            updated_at=updated_at,
            started_at=started_at,
            completed_at=completed_at,
            last_progress_at=last_progress_at,
        )

    # =========================================================
    # Execution helpers (consistent errors)
    # =========================================================
    def _fetchall(
        self, *, query: str, params: Any, context_msg: str, extra: dict
    ) -> list[tuple]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, params).fetchall()
        except Exception as exc:
            logger.exception(context_msg, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{context_msg}: {exc}", original_error=exc) from exc

    def _fetchone(
        self, *, query: str, params: Any, context_msg: str, extra: dict
    ) -> tuple | None:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, params).fetchone()
        except Exception as exc:
            logger.exception(context_msg, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{context_msg}: {exc}", original_error=exc) from exc

    def _rowcount(
        self, *, query: str, params: Any, context_msg: str, extra: dict
    ) -> int:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return int(conn.execute(query, params).rowcount or 0)
        except Exception as exc:
            logger.exception(context_msg, extra={**extra, "error": str(exc)})
            raise DatabaseError(f"{context_msg}: {exc}", original_error=exc) from exc

    def _select(self, *, where_sql: str, params: Iterable[object]) -> List[CacheJobState]:
        """R: where_sql is built only inside this class, never from input."""
        query = f"""
            SELECT {self._SELECT_COLUMNS}
            FROM {self._TABLE}
            {where_sql}
            {self._ORDER_BY}
        """
        rows = self._fetchall(
            query=query,
            params=tuple(params),
            context_msg="PostgresCacheJobStateRepository: Failed to select jobs",
            extra={"where_sql": where_sql},
        )
        return [self._row_to_job(r) for r in rows]

    # =========================================================
    # Public API: writes
    # =========================================================
    def create(self, job: CacheJobState) -> CacheJobState:
        query = f"""
            INSERT INTO {self._TABLE} (
                job_id, collection_id, collection_name, status, total_images,
                processed_image_ids, skipped_image_ids, item_ids, can_resume,
                cache_width, cache_height, quality, format, cache_folder_path,
                error_message, created_at, updated_at, started_at, completed_at,
                last_progress_at
            )
            VALUES (
                %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                %s, %s, %s, %s, %s, COALESCE(%s, now()), now(), %s, %s, %s
            )
            RETURNING {self._SELECT_COLUMNS}
        """
        processed = sorted(job.processed_image_ids)
        skipped = sorted(job.skipped_image_ids - job.processed_image_ids)
        row = self._fetchone(
            query=query,
            params=(
                job.job_id,
                job.collection_id,
                job.collection_name,
                status_to_db(job.status),
                job.total_images,
                processed,
                skipped,
                list(job.item_ids),
                job.can_resume,
                job.cache_width,
                job.cache_height,
                job.quality,
                job.format,
                job.cache_folder_path,
                job.error_message,
                job.created_at,
                job.started_at,
                job.completed_at,
                job.last_progress_at,
            ),
            context_msg="PostgresCacheJobStateRepository: Failed to create job",
            extra={"job_id": job.job_id},
        )
        if row is None:
            raise DatabaseError("PostgresCacheJobStateRepository: insert returned no row")
        return self._row_to_job(row)

    def update_status(
        self,
        job_id: str,
        status: CacheJobStatus,
        reason: Optional[str] = None,
    ) -> bool:
        query = f"""
            UPDATE {self._TABLE}
            SET status = %(status)s,
                updated_at = now(),
                last_progress_at = now(),
                started_at = CASE WHEN %(is_running)s
                                  THEN COALESCE(started_at, now())
                                  ELSE started_at END,
                completed_at = CASE WHEN %(is_completed)s
                                    THEN COALESCE(completed_at, now())
                                    ELSE completed_at END,
                error_message = COALESCE(%(reason)s, error_message)
            WHERE job_id = %(job_id)s
              AND (status <> %(completed)s OR %(is_completed)s)
        """
        params: Dict[str, object] = {
            "status": status_to_db(status),
            "completed": status_to_db(CacheJobStatus.COMPLETED),
            "is_running": status is CacheJobStatus.RUNNING,
            "is_completed": status is CacheJobStatus.COMPLETED,
            "reason": reason or None,
            "job_id": job_id,
        }
        updated = self._rowcount(
            query=query,
            params=params,
            context_msg="PostgresCacheJobStateRepository: Failed to update status",
            extra={"job_id": job_id, "status": status.value},
        )
        return updated > 0

    def atomic_increment_skipped(self, job_id: str, item_id: str) -> bool:
        query = f"""
            UPDATE {self._TABLE}
            SET skipped_image_ids = array_append(skipped_image_ids, %(item_id)s::text),
                updated_at = now(),
                last_progress_at = now()
            WHERE job_id = %(job_id)s
              AND NOT (%(item_id)s::text = ANY(skipped_image_ids))
              AND NOT (%(item_id)s::text = ANY(processed_image_ids))
        """
        updated = self._rowcount(
            query=query,
            params={"job_id": job_id, "item_id": item_id},
            context_msg="PostgresCacheJobStateRepository: Failed to record skipped item",
            extra={"job_id": job_id, "item_id": item_id},
        )
        return updated > 0

    def atomic_mark_processed(self, job_id: str, item_id: str) -> bool:
        query = f"""
            UPDATE {self._TABLE}
            SET processed_image_ids = array_append(processed_image_ids, %(item_id)s::text),
                skipped_image_ids = array_remove(skipped_image_ids, %(item_id)s::text),
                updated_at = now(),
                last_progress_at = now()
            WHERE job_id = %(job_id)s
              AND NOT (%(item_id)s::text = ANY(processed_image_ids))
        """
        updated = self._rowcount(
            query=query,
            params={"job_id": job_id, "item_id": item_id},
            context_msg="PostgresCacheJobStateRepository: Failed to record processed item",
            extra={"job_id": job_id, "item_id": item_id},
        )
        return updated > 0

    def update(self, job: CacheJobState) -> bool:
        """
        R: Record update of the gate and descriptive fields.

        Status, its timestamps and the item arrays are never written here;
        can_resume is AND-ed so a closed gate stays closed.
        """
        query = f"""
            UPDATE {self._TABLE}
            SET can_resume = can_resume AND %s,
                collection_name = %s,
                total_images = %s,
                updated_at = now()
            WHERE job_id = %s
        """
        updated = self._rowcount(
            query=query,
            params=(
                job.can_resume,
                job.collection_name,
                job.total_images,
                job.job_id,
            ),
            context_msg="PostgresCacheJobStateRepository: Failed to update job",
            extra={"job_id": job.job_id},
        )
        return updated > 0

    def delete_old_completed_jobs(self, cutoff: datetime) -> int:
        query = f"""
            DELETE FROM {self._TABLE}
            WHERE status = %s
              AND completed_at IS NOT NULL
              AND completed_at < %s
        """
        return self._rowcount(
            query=query,
            params=(status_to_db(CacheJobStatus.COMPLETED), cutoff),
            context_msg="PostgresCacheJobStateRepository: Failed to delete completed jobs",
            extra={"cutoff": cutoff.isoformat()},
        )

    # =========================================================
    # Public API: reads
    # =========================================================
    def get_by_job_id(self, job_id: str) -> Optional[CacheJobState]:
        row = self._fetchone(
            query=f"SELECT {self._SELECT_COLUMNS} FROM {self._TABLE} WHERE job_id = %s",
            params=(job_id,),
            context_msg="PostgresCacheJobStateRepository: Failed to get job",
            extra={"job_id": job_id},
        )
        return self._row_to_job(row) if row else None

    def get_incomplete_jobs(self) -> List[CacheJobState]:
        return self._select(
            where_sql="WHERE status <> %s",
            params=[status_to_db(CacheJobStatus.COMPLETED)],
        )

    def get_by_collection_id(self, collection_id: str) -> List[CacheJobState]:
        return self._select(where_sql="WHERE collection_id = %s", params=[collection_id])
