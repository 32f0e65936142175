"""
===============================================================================
CRC CARD — worker/worker_server.py (operational HTTP of the recovery worker)
===============================================================================

Routes:
  GET /healthz   liveness + last recovery pass
  GET /readyz    job store + Redis, queue depths (503 when not ready)
  GET /metrics   Prometheus exposition

Notes:
  - Served from a daemon thread next to the RQ worker loop.
  - Binding failures are logged; the worker keeps consuming without HTTP.
===============================================================================
"""

from __future__ import annotations

import json
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable

from ..crosscutting.logger import logger
from ..crosscutting.metrics import get_metrics_response
from .worker_health import health_payload, readiness_payload


def _json(payload: dict[str, Any], ready_flag: bool = True) -> tuple[int, bytes, str]:
    status = HTTPStatus.OK if ready_flag else HTTPStatus.SERVICE_UNAVAILABLE
    return status, json.dumps(payload, default=str).encode("utf-8"), "application/json"


def _healthz() -> tuple[int, bytes, str]:
    return _json(health_payload())


def _readyz() -> tuple[int, bytes, str]:
    payload = readiness_payload()
    return _json(payload, ready_flag=bool(payload["ok"]))


def _metrics() -> tuple[int, bytes, str]:
    body, content_type = get_metrics_response()
    return HTTPStatus.OK, body, content_type


_ROUTES: dict[str, Callable[[], tuple[int, bytes, str]]] = {
    "/healthz": _healthz,
    "/readyz": _readyz,
    "/metrics": _metrics,
}


class WorkerRequestHandler(BaseHTTPRequestHandler):
    server_version = "cache-recovery-worker"

    def do_GET(self) -> None:
        route = _ROUTES.get(self.path.split("?", 1)[0])
        if route is None:
            self.send_error(HTTPStatus.NOT_FOUND)
            return
        status, body, content_type = route()
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        logger.debug("Worker HTTP " + format % args)


def start_worker_http_server(port: int, host: str = "0.0.0.0") -> ThreadingHTTPServer | None:
    """Start serving in the background; None when the port cannot be bound."""
    try:
        server = ThreadingHTTPServer((host, port), WorkerRequestHandler)
    except OSError as exc:
        logger.warning(
            "Worker HTTP server not started", extra={"port": port, "error": str(exc)}
        )
        return None

    threading.Thread(
        target=server.serve_forever, name="worker-http", daemon=True
    ).start()
    logger.info("Worker HTTP server listening", extra={"port": server.server_address[1]})
    return server
