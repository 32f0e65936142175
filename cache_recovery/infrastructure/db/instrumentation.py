"""
===============================================================================
CRC CARD — infrastructure/db/instrumentation.py
===============================================================================

Classes:
  - InstrumentedPool: hands out connections whose statements are timed

Responsibilities:
  - Observe each statement's duration under a low-cardinality label
    ("update_cache_job_states", "select_collection_items", ...).
  - Warn on statements slower than the configured threshold; on the job
    table that usually means waiting on another writer's row lock.
  - Turn "cannot get a connection" into DatabaseConnectionError.

Collaborators:
  - crosscutting.metrics.observe_db_query_duration
  - psycopg_pool.ConnectionPool (wrapped)
===============================================================================
"""

from __future__ import annotations

import re
import time
from contextlib import contextmanager
from typing import Any, Iterator

from ...crosscutting.logger import logger
from ...crosscutting.metrics import observe_db_query_duration
from .errors import DatabaseConnectionError

_KNOWN_TABLES = ("cache_job_states", "collection_items", "collections")
_VERB_RE = re.compile(r"^\s*(\w+)")


def statement_label(sql: Any) -> str:
    """`<verb>_<table>` for the tables this service owns, `<verb>` otherwise."""
    text = str(sql)
    match = _VERB_RE.match(text)
    verb = match.group(1).lower() if match else "unknown"
    lowered = text.lower()
    for table in _KNOWN_TABLES:
        if table in lowered:
            return f"{verb}_{table}"
    return verb


class _TimedConnection:
    """Proxy over a psycopg connection; only execute() is intercepted."""

    def __init__(self, conn, slow_seconds: float) -> None:
        self._conn = conn
        self._slow_seconds = slow_seconds

    def execute(self, sql, params=None, **kwargs):
        started = time.perf_counter()
        try:
            return self._conn.execute(sql, params, **kwargs)
        finally:
            elapsed = time.perf_counter() - started
            label = statement_label(sql)
            observe_db_query_duration(label, elapsed)
            if elapsed >= self._slow_seconds:
                logger.warning(
                    "Slow statement",
                    extra={"statement": label, "elapsed_seconds": round(elapsed, 4)},
                )

    def __getattr__(self, name: str):
        return getattr(self._conn, name)


class InstrumentedPool:
    """
    Wraps the real pool. Repositories keep the psycopg idiom
    `with pool.connection() as conn: conn.execute(...)`.
    """

    def __init__(self, pool, *, slow_seconds: float = 0.25, ping_on_acquire: bool = True) -> None:
        self._pool = pool
        self._slow_seconds = slow_seconds
        self._ping = ping_on_acquire

    @contextmanager
    def connection(self, timeout: float | None = None) -> Iterator[_TimedConnection]:
        try:
            ctx = self._pool.connection(timeout=timeout)
            conn = ctx.__enter__()
        except Exception as exc:
            raise DatabaseConnectionError("No database connection available.") from exc

        try:
            if self._ping:
                try:
                    conn.execute("SELECT 1")
                except Exception as exc:
                    raise DatabaseConnectionError("Database connection is not usable.") from exc
            yield _TimedConnection(conn, self._slow_seconds)
        except BaseException as exc:
            if not ctx.__exit__(type(exc), exc, exc.__traceback__):
                raise
        else:
            ctx.__exit__(None, None, None)

    def close(self) -> None:
        self._pool.close()

    def __getattr__(self, name: str):
        return getattr(self._pool, name)
