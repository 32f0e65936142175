"""
===============================================================================
SUBSYSTEM: Infrastructure / Queue
===============================================================================

CRC CARD (Module)
-------------------------------------------------------------------------------
Name:
    Typed queue errors

Responsibilities:
    - Errors raised by the RQ adapters, on the same CacheRecoveryError base
      as the store errors (error_code, error_id, original_error).

Collaborators:
    - rq_queue.RQCacheGenerationPublisher / RQRecoveryTaskQueue
    - crosscutting.exceptions.CacheRecoveryError
===============================================================================
"""

from __future__ import annotations

from ...crosscutting.exceptions import CacheRecoveryError


class QueueError(CacheRecoveryError):
    error_code: str = "QUEUE_ERROR"


class QueueConfigurationError(QueueError):
    """Bad queue name, bad timeout, or a worker job that cannot be imported."""

    error_code: str = "QUEUE_CONFIGURATION_ERROR"


class QueueEnqueueError(QueueError):
    """Redis refused the enqueue (after client-side retries)."""

    error_code: str = "QUEUE_ENQUEUE_ERROR"
