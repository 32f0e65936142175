"""
CRC — domain/services.py

Name
- Domain Service Interfaces (Protocols)

Responsibilities
- Contracts for outbound messaging: the cache-generation work queue and the
  recovery task queue served by this project's worker.

Collaborators
- domain.entities.CacheGenerationMessage
- infrastructure.queue.rq_queue (RQ adapters)

Constraints
- No infrastructure imports.
- publish() surfaces no acknowledgment: delivery is at-least-once and
  unordered.
"""

from typing import Protocol

from .entities import CacheGenerationMessage


class CacheGenerationPublisher(Protocol):
    """Contract for publishing one work message per item."""

    def publish(self, message: CacheGenerationMessage) -> None: ...


class RecoveryTaskQueue(Protocol):
    """Contract for scheduling recovery work on the background worker."""

    def enqueue_recovery_pass(self) -> str: ...

    def enqueue_job_resume(self, job_id: str) -> str: ...
