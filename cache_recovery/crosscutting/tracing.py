"""
===============================================================================
MODULE: Optional OpenTelemetry spans
===============================================================================

Spans wrap each worker job, each recovery pass and each single-job resume.
While a span is open its trace/span ids are copied into the log context,
and the previous ids come back when it closes (a resume span nests inside
the worker job span).

Design
------
- `otel_enabled=False` (default): span() is a no-op.
- `otel_enabled=True` requires the `otel` extra; a missing SDK raises at the
  first span instead of silently dropping traces.

Collaborators:
  - cache_recovery/context.py (trace_id_var, span_id_var)
  - crosscutting/config.py (otel_enabled)
===============================================================================
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from ..context import span_id_var, trace_id_var
from .config import get_settings

SERVICE_NAME = "cache-recovery"

_tracer: Optional[Any] = None
_configured = False
_lock = threading.Lock()


def _get_tracer() -> Optional[Any]:
    global _tracer, _configured

    if _configured:
        return _tracer
    with _lock:
        if not _configured:
            if get_settings().otel_enabled:
                from opentelemetry import trace
                from opentelemetry.sdk.resources import Resource
                from opentelemetry.sdk.trace import TracerProvider
                from opentelemetry.sdk.trace.export import (
                    BatchSpanProcessor,
                    ConsoleSpanExporter,
                )

                provider = TracerProvider(
                    resource=Resource.create({"service.name": SERVICE_NAME})
                )
                provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
                trace.set_tracer_provider(provider)
                _tracer = trace.get_tracer(SERVICE_NAME)
            _configured = True
    return _tracer


@contextmanager
def span(name: str, attributes: Optional[Mapping[str, Any]] = None) -> Iterator[Optional[Any]]:
    """
    with span("recovery.resume_job", {"job_id": job_id}):
        ...
    """
    tracer = _get_tracer()
    if tracer is None:
        yield None
        return

    clean = {k: v for k, v in (attributes or {}).items() if v is not None}
    with tracer.start_as_current_span(name, attributes=clean) as current:
        ids = current.get_span_context()
        trace_token = trace_id_var.set(format(ids.trace_id, "032x"))
        span_token = span_id_var.set(format(ids.span_id, "016x"))
        try:
            yield current
        finally:
            span_id_var.reset(span_token)
            trace_id_var.reset(trace_token)
