"""
Name: Worker Health and HTTP Tests

Responsibilities:
  - Readiness payload from store/Redis probes
  - Liveness payload carrying the last recovery pass
  - HTTP routes served by the worker
"""

import json
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError
from urllib.request import urlopen

import pytest

from cache_recovery.worker import worker_health
from cache_recovery.worker.worker_server import start_worker_http_server

pytestmark = pytest.mark.unit


def test_ready_when_store_and_redis_answer():
    with patch.object(worker_health, "_job_table_reachable", return_value=True), patch.object(
        worker_health, "_queue_depths", return_value={"cache-recovery": 0, "cache-generation": 7}
    ):
        payload = worker_health.readiness_payload()

    assert payload["ok"] is True
    assert payload["queue_depth"]["cache-generation"] == 7


def test_not_ready_without_redis():
    with patch.object(worker_health, "_job_table_reachable", return_value=True), patch.object(
        worker_health, "_queue_depths", return_value=None
    ):
        payload = worker_health.readiness_payload()

    assert payload["ok"] is False
    assert payload["redis"] == "unavailable"
    assert "queue_depth" not in payload


def test_missing_database_url_is_not_ready():
    assert worker_health._job_table_reachable("") is False


def test_health_reports_last_recovery_pass():
    worker_health.remember_recovery_pass(
        {"total": 3, "recovered": 2, "failed": 1, "error": None}
    )

    last = worker_health.health_payload()["last_recovery_pass"]

    assert (last["total"], last["recovered"], last["failed"]) == (3, 2, 1)
    assert last["error"] is None


def test_health_reports_listing_error_code():
    worker_health.remember_recovery_pass(
        {"total": 0, "error": {"code": "COLLABORATOR_UNAVAILABLE"}}
    )

    assert worker_health.health_payload()["last_recovery_pass"]["error"] == "COLLABORATOR_UNAVAILABLE"


@pytest.fixture
def http_base_url():
    server = start_worker_http_server(0, host="127.0.0.1")
    assert server is not None
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


def test_http_healthz(http_base_url):
    with urlopen(f"{http_base_url}/healthz", timeout=5) as response:
        assert response.status == 200
        assert json.loads(response.read())["ok"] is True


def test_http_readyz_returns_503_when_not_ready(http_base_url):
    with patch(
        "cache_recovery.worker.worker_server.readiness_payload",
        return_value={"ok": False, "job_store": "unavailable", "redis": "ok"},
    ):
        with pytest.raises(HTTPError) as excinfo:
            urlopen(f"{http_base_url}/readyz", timeout=5)

    assert excinfo.value.code == 503


def test_http_metrics(http_base_url):
    with urlopen(f"{http_base_url}/metrics", timeout=5) as response:
        assert response.status == 200
        assert b"cache_recovery_jobs_total" in response.read()


def test_http_unknown_route(http_base_url):
    with pytest.raises(HTTPError) as excinfo:
        urlopen(f"{http_base_url}/nope", timeout=5)
    assert excinfo.value.code == 404


def test_startup_recovery_is_reported_on_healthz():
    from cache_recovery.application.usecases.recovery import RecoveryReport
    from cache_recovery.context import get_context_dict
    from cache_recovery.worker import worker

    use_case = MagicMock()
    use_case.execute.return_value = RecoveryReport(total=2, recovered=2)
    with patch.object(worker, "get_recover_incomplete_jobs_use_case", return_value=use_case):
        worker.run_startup_recovery()

    last = worker_health.health_payload()["last_recovery_pass"]
    assert (last["total"], last["recovered"]) == (2, 2)
    assert get_context_dict() == {}
