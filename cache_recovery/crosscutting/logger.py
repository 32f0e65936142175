"""
===============================================================================
MODULE: Structured logging for the recovery engine
===============================================================================

Goal
----
One log line per event, correlated with the operation (worker job, CLI
command, startup pass) and the cache job being handled, so a recovery pass
can be followed end to end across threads.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Component:
  _OperationContextFilter + JSONFormatter + setup_logger()

Responsibilities:
  - Stamp every record with the ambient context (operation, request_id,
    cache_job_id, trace ids) as record attributes.
  - Render JSON (default) or a compact text line (LOG_JSON=false).
  - Keep connection strings out of the output and summarize large ID
    collections (processed/skipped sets can hold thousands of entries).

Collaborators:
  - cache_recovery/context.py (ContextVars)
  - crosscutting/config.py (log_level, log_json)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Final

from ..context import get_context_dict

_CONTEXT_KEYS: Final[tuple[str, ...]] = (
    "request_id",
    "operation",
    "cache_job_id",
    "trace_id",
    "span_id",
)

# Attributes every LogRecord carries; anything else came in through `extra=`.
_STANDARD_ATTRS: Final[frozenset[str]] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", *_CONTEXT_KEYS}

_REDACTED: Final[str] = "***"
_SECRET_MARKERS: Final[tuple[str, ...]] = ("password", "secret", "token", "_url", "dsn")

# Beyond this many IDs a collection is logged as a count plus a short sample.
_MAX_IDS: Final[int] = 20
_MAX_TEXT: Final[int] = 4_000


def _is_secret(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in _SECRET_MARKERS)


def _loggable(value: Any, key: str = "") -> Any:
    if key and _is_secret(key):
        return _REDACTED
    if isinstance(value, str):
        return value if len(value) <= _MAX_TEXT else value[:_MAX_TEXT] + "...(truncated)"
    if isinstance(value, (set, frozenset, list, tuple)):
        items = sorted(value, key=str) if isinstance(value, (set, frozenset)) else list(value)
        if len(items) > _MAX_IDS:
            return {"count": len(items), "sample": [str(v) for v in items[:5]]}
        return [_loggable(v) for v in items]
    if isinstance(value, dict):
        return {str(k): _loggable(v, str(k)) for k, v in value.items()}
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    return str(value)


class _OperationContextFilter(logging.Filter):
    """Copies the ContextVars onto the record (empty string when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = get_context_dict()
        for key in _CONTEXT_KEYS:
            setattr(record, key, ctx.get(key, ""))
        return True


class JSONFormatter(logging.Formatter):
    """LogRecord -> single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "thread": record.threadName,
        }

        for key in _CONTEXT_KEYS:
            if value := getattr(record, key, ""):
                payload[key] = value

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS:
                payload[key] = _loggable(value, key)

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["exc"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, ensure_ascii=False, default=str)


_TEXT_FORMAT: Final[str] = "%(asctime)s %(levelname)-7s [%(operation)s %(cache_job_id)s] %(message)s"


def setup_logger(name: str = "cache-recovery") -> logging.Logger:
    """
    Configure the process logger once (re-imports keep a single handler).
    """
    from .config import get_settings

    settings = get_settings()
    log = logging.getLogger(name)
    log.setLevel(getattr(logging, settings.log_level, logging.INFO))

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.addFilter(_OperationContextFilter())
        handler.setFormatter(
            JSONFormatter() if settings.log_json else logging.Formatter(_TEXT_FORMAT)
        )
        log.addHandler(handler)

    return log


logger = setup_logger()
