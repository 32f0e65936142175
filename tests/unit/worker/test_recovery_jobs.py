"""
Name: Background Recovery Job Tests

Responsibilities:
  - Validate job wiring calls the recovery use cases
  - Validate context cleanup and failure propagation
"""

from unittest.mock import MagicMock, patch

import pytest

from cache_recovery.application.usecases.recovery import (
    CleanupResult,
    RecoveryReport,
    ResumeJobResult,
)
from cache_recovery.context import operation_var, request_id_var
from cache_recovery.worker.jobs import (
    cleanup_completed_jobs_job,
    recover_incomplete_jobs_job,
    resume_cache_job_job,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _no_rq_job():
    with patch("cache_recovery.worker.jobs.get_current_job", return_value=MagicMock(id="rq-9")):
        yield


def test_recover_job_runs_a_pass_and_returns_report():
    use_case = MagicMock()
    use_case.execute.return_value = RecoveryReport(total=2, recovered=2)

    with patch(
        "cache_recovery.worker.jobs.get_recover_incomplete_jobs_use_case",
        return_value=use_case,
    ):
        result = recover_incomplete_jobs_job()

    assert use_case.execute.call_count == 1
    assert result["recovered"] == 2
    assert request_id_var.get() == ""
    assert operation_var.get() == ""


def test_resume_job_passes_job_id():
    use_case = MagicMock()
    use_case.execute.return_value = ResumeJobResult(
        job_id="J1", success=True, outcome="resumed", published=3
    )

    with patch(
        "cache_recovery.worker.jobs.get_resume_cache_job_use_case", return_value=use_case
    ):
        result = resume_cache_job_job("J1")

    input_arg = use_case.execute.call_args.args[0]
    assert input_arg.job_id == "J1"
    assert input_arg.force_regenerate is False
    assert result["published"] == 3


def test_resume_job_with_blank_id_reports_validation_error():
    with patch("cache_recovery.worker.jobs.get_resume_cache_job_use_case") as factory:
        result = resume_cache_job_job("  ")

    factory.assert_not_called()
    assert result["error"]["code"] == "VALIDATION_ERROR"


def test_cleanup_job_uses_configured_retention():
    use_case = MagicMock()
    use_case.execute.return_value = CleanupResult(deleted=1)

    with patch(
        "cache_recovery.worker.jobs.get_cleanup_completed_jobs_use_case",
        return_value=use_case,
    ):
        result = cleanup_completed_jobs_job()

    assert use_case.execute.call_args.args[0].older_than_days == 30
    assert result["deleted"] == 1


def test_unexpected_exception_is_reraised_and_context_cleared():
    use_case = MagicMock()
    use_case.execute.side_effect = RuntimeError("boom")

    with patch(
        "cache_recovery.worker.jobs.get_recover_incomplete_jobs_use_case",
        return_value=use_case,
    ):
        with pytest.raises(RuntimeError):
            recover_incomplete_jobs_job()

    assert request_id_var.get() == ""
