"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure the test environment (no .env, APP_ENV=test)
  - Provide in-memory stores and a recording publisher

Notes:
  - Fixtures are function-scoped: every test starts from empty stores
  - Factories/doubles live in recovery_fakes.py (importable from tests)
"""

import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for path in (ROOT_DIR, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from cache_recovery.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

os.environ.setdefault("APP_ENV", "test")

from cache_recovery.infrastructure.repositories import (  # noqa: E402
    InMemoryCacheJobStateRepository,
    InMemoryCollectionSource,
)
from recovery_fakes import RecordingPublisher  # noqa: E402


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (require PostgreSQL)"
    )


@pytest.fixture
def job_repository() -> InMemoryCacheJobStateRepository:
    return InMemoryCacheJobStateRepository()


@pytest.fixture
def collection_source() -> InMemoryCollectionSource:
    return InMemoryCollectionSource()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()
