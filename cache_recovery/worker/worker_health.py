"""
===============================================================================
CRC CARD — worker/worker_health.py (worker liveness and readiness)
===============================================================================

Responsibilities:
  - Readiness: the job table is reachable (migrations applied) and Redis
    answers; report the depth of the recovery and cache generation queues.
  - Liveness: uptime plus a summary of the last recovery pass this process
    ran, so a stuck or failing startup pass is visible from outside.
  - Container healthcheck entrypoint (exit code 0/1).

Rules:
  - Checks never raise; failures are reported in the payload.
  - Short connect timeouts.
===============================================================================
"""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Optional

import psycopg
from redis import Redis
from rq import Queue

from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger

_STARTED_AT = time.monotonic()

_last_pass: Optional[dict[str, Any]] = None
_last_pass_lock = threading.Lock()


def remember_recovery_pass(report: dict[str, Any]) -> None:
    """Keep the summary of the latest recovery pass for /healthz."""
    global _last_pass
    summary = {
        "finished_at": time.time(),
        "total": report.get("total", 0),
        "recovered": report.get("recovered", 0),
        "failed": report.get("failed", 0),
        "error": (report.get("error") or {}).get("code"),
    }
    with _last_pass_lock:
        _last_pass = summary


def _job_table_reachable(database_url: str) -> bool:
    if not database_url:
        return False
    try:
        with psycopg.connect(database_url, connect_timeout=2) as conn:
            conn.execute("SELECT 1 FROM cache_job_states LIMIT 1")
        return True
    except Exception as exc:
        logger.warning("Readiness: job store unavailable", extra={"error": str(exc)})
        return False


def _queue_depths(redis_url: str) -> Optional[dict[str, int]]:
    """Queue lengths, or None when Redis does not answer."""
    if not redis_url:
        return None
    settings = get_settings()
    try:
        redis = Redis.from_url(redis_url, socket_connect_timeout=2, socket_timeout=2)
        redis.ping()
        return {
            name: Queue(name, connection=redis).count
            for name in (settings.recovery_queue_name, settings.cache_generation_queue_name)
        }
    except Exception as exc:
        logger.warning("Readiness: Redis unavailable", extra={"error": str(exc)})
        return None


def readiness_payload() -> dict[str, Any]:
    settings = get_settings()
    store_ok = _job_table_reachable(settings.database_url)
    depths = _queue_depths(settings.redis_url or "")

    payload: dict[str, Any] = {
        "ok": store_ok and depths is not None,
        "job_store": "ok" if store_ok else "unavailable",
        "redis": "ok" if depths is not None else "unavailable",
    }
    if depths is not None:
        payload["queue_depth"] = depths
    return payload


def health_payload() -> dict[str, Any]:
    with _last_pass_lock:
        last_pass = dict(_last_pass) if _last_pass else None
    return {
        "ok": True,
        "uptime_seconds": int(time.monotonic() - _STARTED_AT),
        "last_recovery_pass": last_pass,
    }


def main() -> None:
    payload = readiness_payload()
    print(json.dumps(payload))
    raise SystemExit(0 if payload["ok"] else 1)


if __name__ == "__main__":
    main()
