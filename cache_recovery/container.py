"""
===============================================================================
CRC CARD — cache_recovery/container.py (Composition Root / manual DI)
===============================================================================

Responsibilities:
  - Compose dependencies (stores, collection source, queues) behind ports.
  - Expose factories for the worker jobs and the operator CLI.
  - Keep heavy resources as cached singletons (lru_cache).
  - Centralize runtime decisions driven by Settings.

Collaborators:
  - crosscutting.config.get_settings
  - domain.repositories.* / domain.services.* (ports)
  - infrastructure.* (implementations)
  - application.usecases.recovery.* (use cases)

Notes:
  - No business logic here.
  - app_env in {"test", "testing", "ci"} selects in-memory adapters.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from redis import Redis

from .application.usecases import (
    CleanupOldCompletedJobsUseCase,
    DisableJobResumptionUseCase,
    GetCollectionJobsUseCase,
    GetResumableJobsUseCase,
    RecoverIncompleteJobsUseCase,
    ResumeCacheJobUseCase,
)
from .crosscutting.config import get_settings
from .domain.repositories import CacheJobStateRepository, CollectionSource
from .domain.services import CacheGenerationPublisher, RecoveryTaskQueue
from .infrastructure.queue import (
    RQCacheGenerationPublisher,
    RQQueueConfig,
    RQRecoveryTaskQueue,
)
from .infrastructure.repositories import (
    InMemoryCacheJobStateRepository,
    InMemoryCollectionSource,
    PostgresCacheJobStateRepository,
    PostgresCollectionSource,
)

# =============================================================================
# Internal helpers
# =============================================================================


def _is_test_env() -> bool:
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


# =============================================================================
# Stores (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_cache_job_repository() -> CacheJobStateRepository:
    """Job state store (in-memory in test; Postgres at runtime)."""
    if _is_test_env():
        return InMemoryCacheJobStateRepository()
    return PostgresCacheJobStateRepository()


@lru_cache(maxsize=1)
def get_collection_source() -> CollectionSource:
    """Collection membership source (in-memory in test; Postgres at runtime)."""
    if _is_test_env():
        return InMemoryCollectionSource()
    return PostgresCollectionSource()


# =============================================================================
# Queues (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_redis_client() -> Redis:
    """
    Shared Redis client.

    Raises:
      RuntimeError: REDIS_URL is not configured.
    """
    settings = get_settings()
    if not settings.redis_url:
        raise RuntimeError("REDIS_URL is required for queue operations")
    return Redis.from_url(settings.redis_url)


@lru_cache(maxsize=1)
def get_cache_generation_publisher() -> CacheGenerationPublisher:
    settings = get_settings()
    config = RQQueueConfig(
        queue_name=settings.cache_generation_queue_name,
        retry_max_attempts=settings.retry_max_attempts,
        job_timeout_seconds=settings.cache_generation_job_timeout_seconds,
        enqueue_attempts=settings.retry_max_attempts,
    )
    return RQCacheGenerationPublisher(
        redis=get_redis_client(),
        config=config,
        job_path=settings.cache_generation_job_path,
    )


@lru_cache(maxsize=1)
def get_recovery_task_queue() -> RecoveryTaskQueue:
    settings = get_settings()
    config = RQQueueConfig(
        queue_name=settings.recovery_queue_name,
        # R: the pass is idempotent; a failed one is simply re-run later.
        retry_max_attempts=0,
        job_timeout_seconds=_recovery_pass_timeout_seconds(),
        enqueue_attempts=settings.retry_max_attempts,
    )
    return RQRecoveryTaskQueue(redis=get_redis_client(), config=config)


def _recovery_pass_timeout_seconds() -> int:
    """RQ timeout for a recovery job; generous, each resume is bounded anyway."""
    per_job = get_settings().recovery_job_timeout_seconds
    return max(600, int(per_job * 10))


# =============================================================================
# Use cases (fresh per call; collaborators are singletons)
# =============================================================================


def get_disable_job_resumption_use_case() -> DisableJobResumptionUseCase:
    return DisableJobResumptionUseCase(get_cache_job_repository())


def get_resume_cache_job_use_case() -> ResumeCacheJobUseCase:
    return ResumeCacheJobUseCase(
        get_cache_job_repository(),
        get_collection_source(),
        get_cache_generation_publisher(),
        disable_resumption=get_disable_job_resumption_use_case(),
    )


def get_recover_incomplete_jobs_use_case() -> RecoverIncompleteJobsUseCase:
    settings = get_settings()
    return RecoverIncompleteJobsUseCase(
        get_cache_job_repository(),
        get_resume_cache_job_use_case(),
        job_timeout_seconds=settings.recovery_job_timeout_seconds,
    )


def get_resumable_jobs_use_case() -> GetResumableJobsUseCase:
    return GetResumableJobsUseCase(get_cache_job_repository())


def get_collection_jobs_use_case() -> GetCollectionJobsUseCase:
    return GetCollectionJobsUseCase(get_cache_job_repository())


def get_cleanup_completed_jobs_use_case() -> CleanupOldCompletedJobsUseCase:
    return CleanupOldCompletedJobsUseCase(get_cache_job_repository())


def reset_container() -> None:
    """Drop cached singletons (tests, settings reload)."""
    for factory in (
        get_cache_job_repository,
        get_collection_source,
        get_redis_client,
        get_cache_generation_publisher,
        get_recovery_task_queue,
    ):
        factory.cache_clear()


def requires_database() -> bool:
    """True when the selected stores need the Postgres pool."""
    return not _is_test_env()
