"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Component:
  Process-wide PostgreSQL pool for the job store and the collection source

Responsibilities:
  - Open the pool once per process (worker, CLI) and close it on exit.
  - Apply session settings to each new connection: statement_timeout and
    lock_timeout (the job store's guarded UPDATEs wait on row locks).
  - Hand out the InstrumentedPool wrapper.

Collaborators:
  - psycopg_pool.ConnectionPool
  - infrastructure/db/instrumentation.InstrumentedPool
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Optional

from psycopg_pool import ConnectionPool

from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger
from .errors import PoolAlreadyInitializedError, PoolNotInitializedError
from .instrumentation import InstrumentedPool

APPLICATION_NAME = "cache-recovery"

_pool: Optional[InstrumentedPool] = None
_lock = threading.Lock()


def _configure_session(conn) -> None:
    settings = get_settings()
    for name, value in (
        ("statement_timeout", int(settings.db_statement_timeout_ms)),
        ("lock_timeout", int(settings.db_lock_timeout_ms)),
    ):
        if value > 0:
            conn.execute(f"SET {name} = {value}")
    conn.commit()


def init_pool(database_url: str, min_size: int, max_size: int) -> InstrumentedPool:
    """Open the process pool. A second call is a programming error."""
    global _pool

    with _lock:
        if _pool is not None:
            raise PoolAlreadyInitializedError("Pool already initialized.")

        logger.info(
            "Opening database pool",
            extra={"pool_min_size": min_size, "pool_max_size": max_size},
        )
        raw = ConnectionPool(
            conninfo=database_url,
            min_size=min_size,
            max_size=max_size,
            kwargs={"application_name": APPLICATION_NAME},
            configure=_configure_session,
            name=APPLICATION_NAME,
            open=True,
        )
        _pool = InstrumentedPool(raw, slow_seconds=get_settings().db_slow_query_seconds)
        return _pool


def get_pool() -> InstrumentedPool:
    if _pool is None:
        raise PoolNotInitializedError("Pool not initialized. Call init_pool() first.")
    return _pool


def close_pool() -> None:
    """Close and forget the pool; safe to call when none is open."""
    global _pool

    with _lock:
        pool, _pool = _pool, None
    if pool is not None:
        logger.info("Closing database pool")
        pool.close()


def reset_pool() -> None:
    """Forget the pool without closing it (tests)."""
    global _pool

    with _lock:
        _pool = None
