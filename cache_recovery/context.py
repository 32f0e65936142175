"""
===============================================================================
CRC CARD — cache_recovery/context.py (per-operation log context)
===============================================================================

Responsibilities:
  - Hold the identifiers every log line of an operation should carry:
    the entry point (operation), its correlation id (request_id), the cache
    job being handled and, with tracing on, trace/span ids.
  - Snapshot them for the logger; reset them between RQ jobs.

Collaborators:
  - crosscutting.logger (reads snapshot())
  - crosscutting.tracing (trace/span ids)
  - worker.jobs / worker.worker / interfaces.cli (operation, request_id)
  - application.usecases.recovery.resume_cache_job (cache_job_id)

Constraints:
  - String values only; "" means unset.
  - A ThreadPoolExecutor does not inherit ContextVars; the bulk recovery
    pass submits through contextvars.copy_context().run.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
operation_var: ContextVar[str] = ContextVar("operation", default="")
cache_job_id_var: ContextVar[str] = ContextVar("cache_job_id", default="")
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")
span_id_var: ContextVar[str] = ContextVar("span_id", default="")

_ALL_VARS: tuple[ContextVar[str], ...] = (
    request_id_var,
    operation_var,
    cache_job_id_var,
    trace_id_var,
    span_id_var,
)


def set_operation_context(*, request_id: str = "", operation: str = "") -> None:
    """Mark the start of an entry point (RQ job, CLI command, startup pass)."""
    request_id_var.set(request_id or "")
    operation_var.set(operation or "")


def get_context_dict() -> dict[str, str]:
    """Non-empty context values keyed by variable name."""
    return {var.name: value for var in _ALL_VARS if (value := var.get())}


def clear_context() -> None:
    """Reset everything; RQ runs many jobs in one process."""
    for var in _ALL_VARS:
        var.set("")
