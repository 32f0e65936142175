"""Infra DB: pool + typed errors + instrumentation."""

from .errors import (
    DatabaseConnectionError,
    DatabasePoolError,
    PoolAlreadyInitializedError,
    PoolNotInitializedError,
)
from .pool import close_pool, get_pool, init_pool, reset_pool

__all__ = [
    "init_pool",
    "get_pool",
    "close_pool",
    "reset_pool",
    "DatabasePoolError",
    "PoolAlreadyInitializedError",
    "PoolNotInitializedError",
    "DatabaseConnectionError",
]
