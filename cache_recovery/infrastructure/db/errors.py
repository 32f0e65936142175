"""
===============================================================================
CRC CARD — infrastructure/db/errors.py
===============================================================================

Component:
  Typed pool/connectivity errors

Responsibilities:
  - Avoid generic RuntimeError.
  - Clear semantics: "not initialized", "already initialized", etc.
===============================================================================
"""


class DatabasePoolError(RuntimeError):
    """Base for database pool errors."""


class PoolAlreadyInitializedError(DatabasePoolError):
    """init_pool() was called more than once."""


class PoolNotInitializedError(DatabasePoolError):
    """The pool was used before init_pool()."""


class DatabaseConnectionError(DatabasePoolError):
    """A pooled connection could not be acquired or validated."""
