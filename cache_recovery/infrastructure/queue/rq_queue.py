"""
===============================================================================
FILE: infrastructure/queue/rq_queue.py
===============================================================================

CRC CARD (Classes)
-------------------------------------------------------------------------------
Classes:
    RQCacheGenerationPublisher (Adapter)
    RQRecoveryTaskQueue (Adapter)

Responsibilities:
    - Implement `CacheGenerationPublisher` on RQ: one RQ job per work message,
      addressed to the external rendering worker's job path.
    - Implement `RecoveryTaskQueue` on RQ: schedule recovery passes / single
      resumes on this project's worker.
    - Validate configuration fail-fast (queue names, importable job paths).
    - Retry transient Redis failures with a bounded tenacity policy.
    - Keep rq/redis out of the domain.

Collaborators:
    - domain.services.CacheGenerationPublisher / RecoveryTaskQueue
    - job_paths.*
    - job_paths.ensure_worker_job
    - infrastructure.services.retry.create_retry_decorator
    - errors.QueueConfigurationError / QueueEnqueueError
    - crosscutting.logger

Patterns:
    - Adapter, Fail-Fast, Lazy Import.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ...crosscutting.logger import logger
from ...domain.entities import CacheGenerationMessage
from ...domain.services import CacheGenerationPublisher, RecoveryTaskQueue
from ..services.retry import create_retry_decorator
from .errors import QueueConfigurationError, QueueEnqueueError
from .job_paths import (
    CACHE_GENERATION_QUEUE_NAME,
    RECOVER_INCOMPLETE_JOBS_JOB_PATH,
    RECOVERY_JOB_PATHS,
    RECOVERY_QUEUE_NAME,
    RESUME_CACHE_JOB_JOB_PATH,
    ensure_worker_job,
    split_job_path,
)


@dataclass(frozen=True)
class RQQueueConfig:
    """RQ adapter configuration.

    queue_name:
        Redis queue name.
    retry_max_attempts:
        RQ-side retries if the consuming job fails (0 disables).
    job_timeout_seconds:
        Max execution time of the job in the worker.
    result_ttl_seconds:
        Lifetime of the job result in Redis.
    enqueue_attempts:
        Client-side attempts for transient Redis errors while enqueueing.
    """

    queue_name: str = CACHE_GENERATION_QUEUE_NAME
    retry_max_attempts: int = 3
    job_timeout_seconds: int = 600
    result_ttl_seconds: int = 0
    enqueue_attempts: int = 3


class _RQQueueBase:
    """Shared construction: validated config, rq.Queue, retry policies."""

    def __init__(self, *, redis: Any, config: RQQueueConfig, default_queue: str) -> None:
        self._config = _validate_config(config, default_queue=default_queue)
        self._rq = _lazy_import_rq()
        self._queue = self._rq.Queue(name=self._config.queue_name, connection=redis)

        self._rq_retry = None
        if self._config.retry_max_attempts > 0:
            self._rq_retry = self._rq.Retry(max=self._config.retry_max_attempts)

        # R: Client-side retry of the enqueue itself (transient Redis errors only).
        self._enqueue_with_retry: Callable[..., Any] = create_retry_decorator(
            max_attempts=self._config.enqueue_attempts
        )(self._raw_enqueue)

    def _raw_enqueue(self, job_path: str, **kwargs: Any) -> Any:
        return self._queue.enqueue(job_path, **kwargs)

    @property
    def queue_name(self) -> str:
        return self._config.queue_name

    def _enqueue(self, job_path: str, *, args: tuple, description: str) -> str:
        job = self._enqueue_with_retry(
            job_path,
            args=args,
            retry=self._rq_retry,
            job_timeout=self._config.job_timeout_seconds,
            result_ttl=self._config.result_ttl_seconds,
            description=description,
        )
        job_id = getattr(job, "id", None)
        return str(job_id) if job_id else ""


class RQCacheGenerationPublisher(_RQQueueBase, CacheGenerationPublisher):
    """RQ adapter publishing cache generation work messages."""

    def __init__(self, *, redis: Any, config: RQQueueConfig, job_path: str) -> None:
        """
        Design:
          - `redis` is injected by the container (shared connection).
          - `job_path` belongs to the rendering worker, so it is only checked
            for shape here, not imported.
        """
        split_job_path(job_path)
        super().__init__(
            redis=redis, config=config, default_queue=CACHE_GENERATION_QUEUE_NAME
        )
        self._job_path = job_path

        logger.info(
            "Cache generation publisher ready",
            extra={
                "queue": self.queue_name,
                "job_path": job_path,
                "retry_max_attempts": self._config.retry_max_attempts,
            },
        )

    def publish(self, message: CacheGenerationMessage) -> None:
        """Enqueue one message.

        Serialization contract:
          - the RQ job receives a single JSON-safe dict (to_payload()).
        """
        try:
            rq_job_id = self._enqueue(
                self._job_path,
                args=(message.to_payload(),),
                description=f"generate_cache:{message.job_id}:{message.item_id}",
            )
        except Exception as exc:
            logger.exception(
                "Failed to publish cache generation message",
                extra={
                    "job_id": message.job_id,
                    "item_id": message.item_id,
                    "queue": self.queue_name,
                },
            )
            raise QueueEnqueueError(
                "Could not publish cache generation message", original_error=exc
            ) from exc

        logger.debug(
            "Cache generation message published",
            extra={
                "job_id": message.job_id,
                "item_id": message.item_id,
                "rq_job_id": rq_job_id,
                "origin": message.origin,
            },
        )


class RQRecoveryTaskQueue(_RQQueueBase, RecoveryTaskQueue):
    """RQ adapter scheduling recovery work on this project's worker."""

    def __init__(self, *, redis: Any, config: RQQueueConfig) -> None:
        # R: fail fast; the worker must be able to import every job we enqueue.
        for path in RECOVERY_JOB_PATHS:
            ensure_worker_job(path)
        super().__init__(redis=redis, config=config, default_queue=RECOVERY_QUEUE_NAME)

    def enqueue_recovery_pass(self) -> str:
        return self._enqueue_or_raise(
            RECOVER_INCOMPLETE_JOBS_JOB_PATH, args=(), description="recover_incomplete_jobs"
        )

    def enqueue_job_resume(self, job_id: str) -> str:
        return self._enqueue_or_raise(
            RESUME_CACHE_JOB_JOB_PATH,
            args=(job_id,),
            description=f"resume_cache_job:{job_id}",
        )

    def _enqueue_or_raise(self, job_path: str, *, args: tuple, description: str) -> str:
        try:
            rq_job_id = self._enqueue(job_path, args=args, description=description)
        except Exception as exc:
            logger.exception(
                "Failed to enqueue recovery task",
                extra={"job_path": job_path, "queue": self.queue_name},
            )
            raise QueueEnqueueError(
                "Could not enqueue recovery task", original_error=exc
            ) from exc

        logger.info(
            "Recovery task enqueued",
            extra={"job_path": job_path, "rq_job_id": rq_job_id, "queue": self.queue_name},
        )
        return rq_job_id


# -----------------------------------------------------------------------------
# Private helpers (module)
# -----------------------------------------------------------------------------


def _validate_config(config: RQQueueConfig, *, default_queue: str) -> RQQueueConfig:
    """Validate and normalize configuration (fail fast)."""
    queue_name = (config.queue_name or "").strip() or default_queue
    retry_max_attempts = int(config.retry_max_attempts)
    job_timeout_seconds = int(config.job_timeout_seconds)
    result_ttl_seconds = int(config.result_ttl_seconds)
    enqueue_attempts = int(config.enqueue_attempts)

    if retry_max_attempts < 0:
        raise QueueConfigurationError("retry_max_attempts must not be negative")
    if job_timeout_seconds <= 0:
        raise QueueConfigurationError("job_timeout_seconds must be > 0")
    if result_ttl_seconds < 0:
        raise QueueConfigurationError("result_ttl_seconds must not be negative")
    if enqueue_attempts <= 0:
        raise QueueConfigurationError("enqueue_attempts must be > 0")

    return RQQueueConfig(
        queue_name=queue_name,
        retry_max_attempts=retry_max_attempts,
        job_timeout_seconds=job_timeout_seconds,
        result_ttl_seconds=result_ttl_seconds,
        enqueue_attempts=enqueue_attempts,
    )


def _lazy_import_rq():
    """Import RQ lazily so a missing install surfaces as a queue config error."""
    try:
        import rq
    except ImportError as exc:
        raise QueueConfigurationError(
            "RQ is not available. Install the 'rq' dependency to use queues."
        ) from exc
    return rq
