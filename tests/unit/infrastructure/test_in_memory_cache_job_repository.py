"""
Name: In-Memory Cache Job Store Tests

Responsibilities:
  - Validate the atomic per-item primitives (exactly-once, disjoint sets)
  - Validate status stamping, the one-way gate and retention deletes
"""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cache_recovery.domain.entities import CacheJobStatus
from cache_recovery.infrastructure.repositories import InMemoryCacheJobStateRepository
from recovery_fakes import make_job

pytestmark = pytest.mark.unit


def test_create_rejects_duplicates(job_repository):
    job_repository.create(make_job("J1"))
    with pytest.raises(ValueError):
        job_repository.create(make_job("J1"))


def test_reads_return_copies(job_repository):
    job_repository.create(make_job("J1"))
    copy = job_repository.get_by_job_id("J1")
    copy.processed_image_ids.add("zzz")
    assert "zzz" not in job_repository.get_by_job_id("J1").processed_image_ids


def test_skip_is_recorded_exactly_once(job_repository):
    job_repository.create(make_job("J1"))
    assert job_repository.atomic_increment_skipped("J1", "b") is True
    assert job_repository.atomic_increment_skipped("J1", "b") is False
    assert job_repository.get_by_job_id("J1").skipped_image_ids == {"b"}


def test_skip_is_refused_for_processed_items(job_repository):
    job_repository.create(make_job("J1", processed={"a"}))
    assert job_repository.atomic_increment_skipped("J1", "a") is False


def test_mark_processed_removes_item_from_skipped(job_repository):
    job_repository.create(make_job("J1", skipped={"b"}))
    assert job_repository.atomic_mark_processed("J1", "b") is True
    stored = job_repository.get_by_job_id("J1")
    assert stored.processed_image_ids == {"b"}
    assert stored.skipped_image_ids == set()


def test_concurrent_skips_record_each_item_once():
    repo = InMemoryCacheJobStateRepository([make_job("J1")])
    results = []

    def worker():
        results.append(repo.atomic_increment_skipped("J1", "x"))

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert repo.get_by_job_id("J1").skipped_image_ids == {"x"}


def test_update_status_stamps_timestamps_and_reason(job_repository):
    job_repository.create(make_job("J1", status=CacheJobStatus.PENDING))

    job_repository.update_status("J1", CacheJobStatus.RUNNING)
    running = job_repository.get_by_job_id("J1")
    assert running.started_at is not None

    job_repository.update_status("J1", CacheJobStatus.FAILED, "boom")
    failed = job_repository.get_by_job_id("J1")
    assert failed.error_message == "boom"
    assert failed.started_at == running.started_at

    job_repository.update_status("J1", CacheJobStatus.COMPLETED)
    assert job_repository.get_by_job_id("J1").completed_at is not None


def test_update_status_unknown_job_returns_false(job_repository):
    assert job_repository.update_status("missing", CacheJobStatus.RUNNING) is False


def test_completed_job_never_leaves_completed(job_repository):
    job_repository.create(make_job("J1"))
    job_repository.update_status("J1", CacheJobStatus.COMPLETED)
    completed_at = job_repository.get_by_job_id("J1").completed_at

    assert job_repository.update_status("J1", CacheJobStatus.FAILED, "late") is False
    assert job_repository.update_status("J1", CacheJobStatus.RUNNING) is False
    assert job_repository.update_status("J1", CacheJobStatus.COMPLETED) is True

    stored = job_repository.get_by_job_id("J1")
    assert stored.status is CacheJobStatus.COMPLETED
    assert stored.completed_at == completed_at
    assert stored.error_message is None


def test_update_does_not_roll_back_status(job_repository):
    job_repository.create(make_job("J1"))
    stale = job_repository.get_by_job_id("J1")
    job_repository.update_status("J1", CacheJobStatus.COMPLETED)
    stale.can_resume = False

    job_repository.update(stale)

    stored = job_repository.get_by_job_id("J1")
    assert stored.status is CacheJobStatus.COMPLETED
    assert stored.completed_at is not None
    assert stored.can_resume is False


def test_update_never_reopens_the_gate(job_repository):
    job_repository.create(make_job("J1", can_resume=False))
    job = job_repository.get_by_job_id("J1")
    job.can_resume = True

    assert job_repository.update(job) is True
    assert job_repository.get_by_job_id("J1").can_resume is False


def test_update_leaves_item_sets_untouched(job_repository):
    job_repository.create(make_job("J1"))
    stale = job_repository.get_by_job_id("J1")
    job_repository.atomic_mark_processed("J1", "a")

    job_repository.update(stale)

    assert job_repository.get_by_job_id("J1").processed_image_ids == {"a"}


def test_incomplete_jobs_exclude_completed_regardless_of_gate(job_repository):
    job_repository.create(make_job("open"))
    job_repository.create(make_job("closed", can_resume=False))
    job_repository.create(make_job("done", status=CacheJobStatus.COMPLETED))

    ids = {j.job_id for j in job_repository.get_incomplete_jobs()}

    assert ids == {"open", "closed"}


def test_delete_old_completed_jobs(job_repository):
    now = datetime.now(timezone.utc)
    old = make_job("old", status=CacheJobStatus.COMPLETED)
    old.completed_at = now - timedelta(days=40)
    failed = make_job("failed", status=CacheJobStatus.FAILED)
    failed.completed_at = now - timedelta(days=40)
    job_repository.create(old)
    job_repository.create(failed)

    deleted = job_repository.delete_old_completed_jobs(now - timedelta(days=30))

    assert deleted == 1
    assert job_repository.get_by_job_id("failed") is not None


def test_get_by_collection_id(job_repository):
    job_repository.create(make_job("J1", collection_id="c1"))
    job_repository.create(make_job("J2", collection_id="c2"))
    assert [j.job_id for j in job_repository.get_by_collection_id("c1")] == ["J1"]
