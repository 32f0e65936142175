"""
Name: Crosscutting Tests

Responsibilities:
  - Log context lifecycle
  - JSON log rendering (context, redaction, large ID sets)
  - Error log fields and the no-op tracer
"""

import json
import logging

import pytest

from cache_recovery.context import (
    cache_job_id_var,
    clear_context,
    get_context_dict,
    set_operation_context,
)
from cache_recovery.crosscutting.exceptions import DatabaseError, error_log_fields
from cache_recovery.crosscutting.logger import JSONFormatter, _OperationContextFilter
from cache_recovery.crosscutting.tracing import span

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _clean_context():
    clear_context()
    yield
    clear_context()


def _render(msg: str, **extra) -> dict:
    record = logging.LogRecord("cache-recovery", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    _OperationContextFilter().filter(record)
    return json.loads(JSONFormatter().format(record))


def test_context_dict_omits_unset_values():
    set_operation_context(request_id="rq-1", operation="rq.recover_incomplete_jobs")

    assert get_context_dict() == {
        "request_id": "rq-1",
        "operation": "rq.recover_incomplete_jobs",
    }


def test_clear_context_resets_everything():
    set_operation_context(request_id="rq-1", operation="cli.resume")
    cache_job_id_var.set("J1")

    clear_context()

    assert get_context_dict() == {}


def test_json_log_carries_context_and_extra():
    set_operation_context(operation="cli.resume")
    cache_job_id_var.set("J1")

    line = _render("Cache job resumed", published=2)

    assert line["msg"] == "Cache job resumed"
    assert line["operation"] == "cli.resume"
    assert line["cache_job_id"] == "J1"
    assert line["published"] == 2
    assert "request_id" not in line


def test_json_log_redacts_connection_strings():
    line = _render("Starting", database_url="postgresql://u:p@db/x", redis_password="p")

    assert line["database_url"] == "***"
    assert line["redis_password"] == "***"


def test_json_log_summarizes_large_id_sets():
    ids = {f"item-{i:03d}" for i in range(100)}

    line = _render("Progress", processed_image_ids=ids)

    assert line["processed_image_ids"]["count"] == 100
    assert line["processed_image_ids"]["sample"][0] == "item-000"


def test_error_log_fields_include_error_id_for_adapter_errors():
    error = DatabaseError("store down")

    fields = error_log_fields(error)

    assert fields["error_code"] == "DATABASE_ERROR"
    assert fields["error_id"] == error.error_id
    assert fields["error_type"] == "DatabaseError"


def test_error_log_fields_for_plain_exceptions():
    fields = error_log_fields(ConnectionError("refused"))

    assert fields == {"error": "refused", "error_type": "ConnectionError"}


def test_span_is_noop_when_tracing_disabled():
    with span("recovery.resume_job", {"job_id": "J1"}) as current:
        assert current is None
    assert get_context_dict() == {}
