"""cache_recovery.infrastructure.services.retry

Client-side retry of backend calls (in practice: RQ enqueues to Redis).

A recovery pass publishes one message per remaining item, so a Redis blip
in the middle of a job would otherwise abort the resume halfway. Short
bounded retries absorb the blip; anything longer is left to the next
recovery pass, which recomputes what remains.

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Classify errors: transient (retry) vs permanent (raise at once)
  - Build the tenacity decorator from Settings (bounded attempts, jittered
    exponential backoff)
  - Log every retry with the cache job being handled
Collaborators:
  - tenacity
  - crosscutting.config / crosscutting.logger
  - context.cache_job_id_var
"""

from __future__ import annotations

from typing import Callable, TypeVar

import psycopg
import redis.exceptions
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...context import cache_job_id_var
from ...crosscutting.config import get_settings
from ...crosscutting.logger import logger

T = TypeVar("T")

# Checked in order; the first matching rule wins. redis-py's
# AuthenticationError subclasses its ConnectionError, so it must come first.
_CLASSIFICATION: tuple[tuple[tuple[type[BaseException], ...], bool], ...] = (
    (
        (
            redis.exceptions.AuthenticationError,
            redis.exceptions.ResponseError,
            psycopg.ProgrammingError,
            psycopg.IntegrityError,
            ValueError,
            TypeError,
        ),
        False,
    ),
    (
        (
            redis.exceptions.ConnectionError,
            redis.exceptions.TimeoutError,
            redis.exceptions.BusyLoadingError,
            psycopg.OperationalError,
            ConnectionError,
            TimeoutError,
        ),
        True,
    ),
)

_TRANSIENT_NAME_HINTS = ("timeout", "timedout", "connection", "unavailable")


def is_transient_error(exception: BaseException) -> bool:
    for types, transient in _CLASSIFICATION:
        if isinstance(exception, types):
            return transient
    # Wrapped driver errors we do not import explicitly.
    name = type(exception).__name__.lower()
    return any(hint in name for hint in _TRANSIENT_NAME_HINTS)


def _before_sleep(state: RetryCallState) -> None:
    error = state.outcome.exception() if state.outcome is not None else None
    logger.warning(
        "Backend call failed, retrying",
        extra={
            "call": getattr(state.fn, "__name__", "unknown"),
            "attempt": state.attempt_number,
            "sleep_seconds": round(state.next_action.sleep, 2) if state.next_action else 0,
            "cache_job_id": cache_job_id_var.get() or None,
            "error_type": type(error).__name__ if error else None,
            "error": str(error) if error else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Tenacity decorator; unset arguments come from Settings
    (retry_max_attempts, retry_base_delay_seconds, retry_max_delay_seconds).
    The last error is re-raised unchanged.
    """
    settings = get_settings()
    attempts = settings.retry_max_attempts if max_attempts is None else int(max_attempts)
    initial = settings.retry_base_delay_seconds if base_delay is None else float(base_delay)
    ceiling = settings.retry_max_delay_seconds if max_delay is None else float(max_delay)

    if attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    if initial < 0 or ceiling <= 0:
        raise ValueError("retry delays must be non-negative with max_delay > 0")

    return retry(
        retry=retry_if_exception(is_transient_error),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=initial, max=ceiling, jitter=initial),
        before_sleep=_before_sleep,
        reraise=True,
    )
