"""
===============================================================================
SUBSYSTEM: Infrastructure / Queue
===============================================================================

Responsibilities:
    - Expose the RQ adapters used by the container and their config contract.
===============================================================================
"""

from .errors import QueueConfigurationError, QueueEnqueueError, QueueError
from .rq_queue import RQCacheGenerationPublisher, RQQueueConfig, RQRecoveryTaskQueue

__all__ = [
    "QueueConfigurationError",
    "QueueEnqueueError",
    "QueueError",
    "RQCacheGenerationPublisher",
    "RQQueueConfig",
    "RQRecoveryTaskQueue",
]
