"""
===============================================================================
MODULE: Infrastructure error hierarchy
===============================================================================

Adapters (job store, collection source, queues) raise subclasses of
CacheRecoveryError. Use cases never branch on these types: any collaborator
exception becomes COLLABORATOR_UNAVAILABLE. What the hierarchy adds is a
stable error_code and an error_id that ties the use-case log line to the
adapter log line of the same failure.

Collaborators:
  - infrastructure/repositories/postgres (DatabaseError, CollectionSourceError)
  - infrastructure/queue/errors (QueueError family)
  - application/usecases/recovery (error_log_fields)
===============================================================================
"""

from __future__ import annotations

from typing import Any
from uuid import uuid4


class CacheRecoveryError(Exception):
    error_code: str = "CACHE_RECOVERY_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_id = error_id or uuid4().hex
        self.original_error = original_error


class DatabaseError(CacheRecoveryError):
    """Job store query or connection failure."""

    error_code: str = "DATABASE_ERROR"


class CollectionSourceError(CacheRecoveryError):
    """The collection could not be read, which is not the same as absent."""

    error_code: str = "COLLECTION_SOURCE_ERROR"


def error_log_fields(exc: BaseException) -> dict[str, Any]:
    """`extra=` fields describing a collaborator failure."""
    fields: dict[str, Any] = {"error": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, CacheRecoveryError):
        fields["error_code"] = exc.error_code
        fields["error_id"] = exc.error_id
    return fields
