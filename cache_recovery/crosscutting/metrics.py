"""
===============================================================================
FILE: crosscutting/metrics.py
===============================================================================

CRC CARD (Module)
-------------------------------------------------------------------------------
Name:
    Metrics (Prometheus) of the recovery engine

Responsibilities:
    - Define the Prometheus metrics of the recovery engine.
    - Provide small, stable functions to record events/durations.
    - Keep cardinality low (NO job ids, NO collection ids, NO SQL text).
    - Expose helpers to build the /metrics response.

Collaborators:
    - application/usecases/recovery: resume outcomes, published/skipped items.
    - infrastructure/db/instrumentation: query durations.
    - worker/jobs: background job outcomes.
    - worker/worker_server: /metrics endpoint.

Design:
    - One private registry per process (Prometheus needs singletons).
    - Outcome labels are a fixed vocabulary (see use cases).
===============================================================================
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_registry = CollectorRegistry()

# -----------------------------------------------------------------------------
# Metrics (module globals)
# -----------------------------------------------------------------------------

_jobs_total: Optional[Counter] = None
_messages_published_total: Optional[Counter] = None
_items_skipped_total: Optional[Counter] = None
_jobs_disabled_total: Optional[Counter] = None
_jobs_cleaned_total: Optional[Counter] = None
_worker_jobs_total: Optional[Counter] = None

_pass_duration: Optional[Histogram] = None
_resume_duration: Optional[Histogram] = None
_db_query_duration: Optional[Histogram] = None


def _init_metrics() -> None:
    """Create the metrics once."""
    global _jobs_total, _messages_published_total, _items_skipped_total
    global _jobs_disabled_total, _jobs_cleaned_total, _worker_jobs_total
    global _pass_duration, _resume_duration, _db_query_duration

    if _jobs_total is not None:
        return

    # ------------------------
    # Resume outcomes
    # ------------------------
    _jobs_total = Counter(
        "cache_recovery_jobs_total",
        "Resume attempts by outcome",
        ["outcome"],
        registry=_registry,
    )

    _messages_published_total = Counter(
        "cache_recovery_messages_published_total",
        "Cache generation messages re-enqueued by recovery",
        registry=_registry,
    )

    _items_skipped_total = Counter(
        "cache_recovery_items_skipped_total",
        "Items recorded as skipped (missing from their collection)",
        registry=_registry,
    )

    _jobs_disabled_total = Counter(
        "cache_recovery_jobs_disabled_total",
        "Jobs whose resumability was revoked",
        registry=_registry,
    )

    _jobs_cleaned_total = Counter(
        "cache_recovery_jobs_cleaned_total",
        "Completed jobs deleted by retention cleanup",
        registry=_registry,
    )

    # ------------------------
    # Worker
    # ------------------------
    _worker_jobs_total = Counter(
        "cache_recovery_worker_jobs_total",
        "Background recovery jobs executed by the worker",
        ["job", "status"],
        registry=_registry,
    )

    # ------------------------
    # Durations
    # ------------------------
    _pass_duration = Histogram(
        "cache_recovery_pass_duration_seconds",
        "Duration of a full recovery pass (seconds)",
        buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0),
        registry=_registry,
    )

    _resume_duration = Histogram(
        "cache_recovery_resume_duration_seconds",
        "Duration of a single job resume (seconds)",
        buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
        registry=_registry,
    )

    _db_query_duration = Histogram(
        "cache_recovery_db_query_duration_seconds",
        "DB statement duration by kind (seconds)",
        ["kind"],
        buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
        registry=_registry,
    )


_init_metrics()


# -----------------------------------------------------------------------------
# Recording API
# -----------------------------------------------------------------------------


def record_resume_outcome(outcome: str) -> None:
    """Count one resume attempt (resumed, completed, not_found, ...)."""
    if _jobs_total:
        _jobs_total.labels(outcome=outcome).inc()


def record_messages_published(count: int = 1) -> None:
    if _messages_published_total and count > 0:
        _messages_published_total.inc(count)


def record_items_skipped(count: int = 1) -> None:
    if _items_skipped_total and count > 0:
        _items_skipped_total.inc(count)


def record_job_disabled(count: int = 1) -> None:
    if _jobs_disabled_total:
        _jobs_disabled_total.inc(count)


def record_jobs_cleaned(count: int) -> None:
    if _jobs_cleaned_total and count > 0:
        _jobs_cleaned_total.inc(count)


def record_worker_job(job: str, status: str) -> None:
    """Count a background job execution (job name is a fixed set)."""
    if _worker_jobs_total:
        _worker_jobs_total.labels(job=job, status=status).inc()


def observe_recovery_pass_duration(seconds: float) -> None:
    if _pass_duration:
        _pass_duration.observe(seconds)


def observe_resume_duration(seconds: float) -> None:
    if _resume_duration:
        _resume_duration.observe(seconds)


def observe_db_query_duration(kind: str, seconds: float) -> None:
    """Observe one statement duration (kind = SELECT/UPDATE/...)."""
    if _db_query_duration:
        _db_query_duration.labels(kind=kind).observe(seconds)


# -----------------------------------------------------------------------------
# /metrics exposure
# -----------------------------------------------------------------------------


def get_metrics_response() -> tuple[bytes, str]:
    """Body and content-type for /metrics."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST
