"""
===============================================================================
CRC CARD — worker/worker.py (recovery worker process)
===============================================================================

Responsibilities:
  - Start-up order: Redis (fail fast) -> DB pool -> HTTP endpoints ->
    startup recovery pass -> RQ worker loop on the recovery queue.
  - The startup pass re-enqueues whatever the previous crash interrupted,
    without waiting for an operator. Its failure is logged and the worker
    still starts consuming (the next pass retries).
  - Shutdown in reverse order.

Collaborators:
  - container.get_recover_incomplete_jobs_use_case
  - infrastructure.db.pool (init_pool / close_pool)
  - worker_server.start_worker_http_server
  - worker_health.remember_recovery_pass
  - rq.Worker / redis.Redis
===============================================================================
"""

from __future__ import annotations

from redis import Redis
from rq import Queue, Worker

from ..container import get_recover_incomplete_jobs_use_case
from ..context import clear_context, set_operation_context
from ..crosscutting.config import Settings, get_settings
from ..crosscutting.logger import logger
from ..infrastructure.db.pool import close_pool, init_pool
from .worker_health import remember_recovery_pass
from .worker_server import start_worker_http_server


def _connect_redis(settings: Settings) -> Redis:
    redis_url = (settings.redis_url or "").strip()
    if not redis_url:
        raise SystemExit("REDIS_URL is required to run the recovery worker.")

    conn = Redis.from_url(
        redis_url,
        socket_connect_timeout=2,
        socket_timeout=5,
        health_check_interval=30,
    )
    try:
        conn.ping()
    except Exception as exc:
        logger.error("Redis unavailable, worker not started", extra={"error": str(exc)})
        raise SystemExit("Redis unavailable.") from exc
    return conn


def run_startup_recovery() -> None:
    """One recovery pass in-process, before the worker takes queued jobs."""
    set_operation_context(operation="startup.recover_incomplete_jobs")
    try:
        report = get_recover_incomplete_jobs_use_case().execute().to_dict()
        remember_recovery_pass(report)
        if report["error"]:
            logger.error("Startup recovery could not list jobs", extra={"report": report})
        else:
            logger.info("Startup recovery finished", extra={"report": report})
    finally:
        clear_context()


def main() -> None:
    settings = get_settings()
    redis_conn = _connect_redis(settings)

    init_pool(
        database_url=settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )

    http_server = None
    try:
        http_server = start_worker_http_server(settings.worker_http_port)

        if settings.recover_on_startup:
            run_startup_recovery()

        logger.info(
            "Recovery worker consuming",
            extra={"queue": settings.recovery_queue_name, "http_port": settings.worker_http_port},
        )
        Worker(
            [Queue(name=settings.recovery_queue_name, connection=redis_conn)],
            connection=redis_conn,
        ).work(with_scheduler=False)
    except KeyboardInterrupt:
        logger.info("Recovery worker interrupted")
    finally:
        if http_server is not None:
            http_server.shutdown()
            http_server.server_close()
        close_pool()
        logger.info("Recovery worker stopped")


if __name__ == "__main__":
    main()
