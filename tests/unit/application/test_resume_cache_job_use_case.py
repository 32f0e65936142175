"""
Name: Resume Cache Job Use Case Tests

Responsibilities:
  - Cover the resume decision sequence (not found, gate, completed,
    collection missing, collaborator failures)
  - Validate convergence, drift tolerance and idempotent completion
"""

from unittest.mock import MagicMock

import pytest

from cache_recovery.application.usecases.recovery import (
    COLLECTION_NOT_FOUND_REASON,
    RecoveryErrorCode,
    ResumeCacheJobInput,
    ResumeCacheJobUseCase,
)
from cache_recovery.domain.entities import CacheJobStatus
from recovery_fakes import RecordingPublisher, make_collection, make_job

pytestmark = pytest.mark.unit


def _use_case(job_repository, collection_source, publisher) -> ResumeCacheJobUseCase:
    return ResumeCacheJobUseCase(job_repository, collection_source, publisher)


# =============================================================================
# Scenarios
# =============================================================================


def test_resume_publishes_unprocessed_items_and_marks_running(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a", "b", "c")))
    job_repository.create(make_job("J1", processed={"a"}))

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is True
    assert result.outcome == "resumed"
    assert result.published == 2
    assert publisher.item_ids == ["b", "c"]
    assert all(m.force_regenerate is False for m in publisher.messages)
    assert all(m.origin == "JobRecovery_J1" for m in publisher.messages)
    stored = job_repository.get_by_job_id("J1")
    assert stored.status is CacheJobStatus.RUNNING
    assert stored.started_at is not None


def test_resume_resolves_source_and_destination_paths(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a",)))
    job_repository.create(make_job("J1", item_ids=("a",)))

    _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    (message,) = publisher.messages
    assert message.source_path == "/photos/trip/a.jpg"
    assert message.destination_path == "/var/cache/images/cache/col-1/a_cache_1920x1080.jpg"


def test_resume_skips_items_removed_from_collection_and_completes(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a",)))
    job_repository.create(make_job("J1", processed={"a"}))

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is True
    assert result.published == 0
    assert result.skipped == 2
    assert result.status is CacheJobStatus.COMPLETED
    assert publisher.messages == []
    stored = job_repository.get_by_job_id("J1")
    assert stored.skipped_image_ids == {"b", "c"}
    assert stored.status is CacheJobStatus.COMPLETED
    assert stored.completed_at is not None


def test_non_resumable_job_fails_without_side_effects():
    job_repository = MagicMock()
    job_repository.get_by_job_id.return_value = make_job("J2", can_resume=False)
    collection_source = MagicMock()
    publisher = MagicMock()

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J2")
    )

    assert result.success is False
    assert result.error.code is RecoveryErrorCode.NON_RESUMABLE
    job_repository.update_status.assert_not_called()
    job_repository.update.assert_not_called()
    job_repository.atomic_increment_skipped.assert_not_called()
    collection_source.get_by_id.assert_not_called()
    publisher.publish.assert_not_called()


def test_completed_job_is_a_successful_no_op():
    job_repository = MagicMock()
    job_repository.get_by_job_id.return_value = make_job(
        "J3", status=CacheJobStatus.COMPLETED
    )
    collection_source = MagicMock()
    publisher = MagicMock()

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J3")
    )

    assert result.success is True
    assert result.outcome == "already_completed"
    job_repository.update_status.assert_not_called()
    job_repository.update.assert_not_called()
    collection_source.get_by_id.assert_not_called()
    publisher.publish.assert_not_called()


def test_unknown_job_returns_not_found(job_repository, collection_source, publisher):
    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="nope")
    )

    assert result.success is False
    assert result.error.code is RecoveryErrorCode.NOT_FOUND
    assert result.error.resource == "CacheJob"


def test_missing_collection_disables_resumption(
    job_repository, collection_source, publisher
):
    job_repository.create(make_job("J1"))

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is False
    assert result.error.code is RecoveryErrorCode.NOT_FOUND
    assert result.error.resource == "Collection"
    stored = job_repository.get_by_job_id("J1")
    assert stored.can_resume is False
    assert stored.status is CacheJobStatus.FAILED
    assert stored.error_message == COLLECTION_NOT_FOUND_REASON
    assert publisher.messages == []


def test_collection_lookup_failure_keeps_job_resumable(job_repository, publisher):
    job_repository.create(make_job("J1"))
    collection_source = MagicMock()
    collection_source.get_by_id.side_effect = ConnectionError("db down")

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is False
    assert result.error.code is RecoveryErrorCode.COLLABORATOR_UNAVAILABLE
    stored = job_repository.get_by_job_id("J1")
    assert stored.can_resume is True
    assert stored.status is CacheJobStatus.RUNNING


def test_store_failure_on_load_is_reported(collection_source, publisher):
    job_repository = MagicMock()
    job_repository.get_by_job_id.side_effect = RuntimeError("pool exhausted")

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is False
    assert result.error.code is RecoveryErrorCode.COLLABORATOR_UNAVAILABLE
    assert result.error.resource == "CacheJobStore"


def test_publish_failure_is_reported_and_job_stays_resumable(
    job_repository, collection_source
):
    collection_source.save(make_collection(item_ids=("a", "b", "c")))
    job_repository.create(make_job("J1"))
    publisher = RecordingPublisher(fail_on={"b"})

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is False
    assert result.error.code is RecoveryErrorCode.COLLABORATOR_UNAVAILABLE
    assert result.error.resource == "CacheGenerationQueue"
    assert publisher.item_ids == ["a"]
    assert job_repository.get_by_job_id("J1").can_resume is True


def test_all_items_processed_marks_completed(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a", "b")))
    job_repository.create(make_job("J1", item_ids=("a", "b"), processed={"a", "b"}))

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert result.success is True
    assert result.outcome == "completed"
    assert publisher.messages == []
    assert job_repository.get_by_job_id("J1").status is CacheJobStatus.COMPLETED


def test_force_regenerate_is_carried_on_messages(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a",)))
    job_repository.create(make_job("J1", item_ids=("a",)))

    _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1", force_regenerate=True)
    )

    assert [m.force_regenerate for m in publisher.messages] == [True]


def test_items_added_after_creation_are_included(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a", "b", "new")))
    job_repository.create(make_job("J1", item_ids=("a", "b"), processed={"a"}))

    _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert publisher.item_ids == ["b", "new"]


def test_job_without_snapshot_uses_current_membership_only(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a", "b")))
    job = make_job("J1", item_ids=("a", "b"))
    job.item_ids = []
    job_repository.create(job)

    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput(job_id="J1")
    )

    assert publisher.item_ids == ["a", "b"]
    assert result.skipped == 0


@pytest.mark.parametrize("job_id", ["", "   "])
def test_blank_job_id_is_a_programming_error(
    job_id, job_repository, collection_source, publisher
):
    with pytest.raises(ValueError):
        _use_case(job_repository, collection_source, publisher).execute(
            ResumeCacheJobInput(job_id=job_id)
        )


# =============================================================================
# Properties
# =============================================================================


def test_resume_twice_republishes_the_same_remaining_set(
    job_repository, collection_source
):
    collection_source.save(make_collection(item_ids=("a", "b", "c", "d")))
    job_repository.create(make_job("J1", item_ids=("a", "b", "c", "d"), processed={"a"}))

    first = RecordingPublisher()
    second = RecordingPublisher()
    _use_case(job_repository, collection_source, first).execute(ResumeCacheJobInput("J1"))
    _use_case(job_repository, collection_source, second).execute(ResumeCacheJobInput("J1"))

    assert first.item_ids == ["b", "c", "d"]
    assert second.item_ids == ["b", "c", "d"]


def test_remaining_shrinks_as_processing_completes(job_repository, collection_source):
    collection_source.save(make_collection(item_ids=("a", "b", "c")))
    job_repository.create(make_job("J1"))

    _use_case(job_repository, collection_source, RecordingPublisher()).execute(
        ResumeCacheJobInput("J1")
    )
    job_repository.atomic_mark_processed("J1", "a")
    job_repository.atomic_mark_processed("J1", "c")

    again = RecordingPublisher()
    _use_case(job_repository, collection_source, again).execute(ResumeCacheJobInput("J1"))

    assert again.item_ids == ["b"]


def test_removed_item_is_skipped_exactly_once_and_never_published(
    job_repository, collection_source
):
    collection_source.save(make_collection(item_ids=("a", "b", "c")))
    job_repository.create(make_job("J1"))
    collection_source.remove_item("col-1", "b")

    publishers = [RecordingPublisher(), RecordingPublisher()]
    for p in publishers:
        _use_case(job_repository, collection_source, p).execute(ResumeCacheJobInput("J1"))

    stored = job_repository.get_by_job_id("J1")
    assert stored.skipped_image_ids == {"b"}
    assert all("b" not in p.item_ids for p in publishers)


def test_completed_job_stays_completed_on_repeated_resume(
    job_repository, collection_source, publisher
):
    collection_source.save(make_collection(item_ids=("a",)))
    job_repository.create(make_job("J1", item_ids=("a",), processed={"a"}))
    use_case = _use_case(job_repository, collection_source, publisher)

    first = use_case.execute(ResumeCacheJobInput("J1"))
    second = use_case.execute(ResumeCacheJobInput("J1"))

    assert first.outcome == "completed"
    assert second.success is True
    assert second.outcome == "already_completed"
    assert job_repository.get_by_job_id("J1").status is CacheJobStatus.COMPLETED


def test_disabled_job_is_never_touched_again(job_repository, collection_source):
    collection_source.save(make_collection())
    job_repository.create(make_job("J1"))
    collection_source.delete("col-1")

    _use_case(job_repository, collection_source, RecordingPublisher()).execute(
        ResumeCacheJobInput("J1")
    )
    collection_source.save(make_collection())

    publisher = RecordingPublisher()
    result = _use_case(job_repository, collection_source, publisher).execute(
        ResumeCacheJobInput("J1")
    )

    assert result.error.code is RecoveryErrorCode.NON_RESUMABLE
    assert publisher.messages == []
