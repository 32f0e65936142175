"""
Name: Integration Fixtures (PostgreSQL)

Responsibilities:
  - Migrate the database to head once per session
  - Open the process pool for the Postgres stores

Notes:
  - Everything here is inert unless RUN_INTEGRATION=1
  - DATABASE_URL selects the database (Settings default otherwise)
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

INTEGRATION = os.getenv("RUN_INTEGRATION") == "1"
ROOT_DIR = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session", autouse=True)
def postgres_schema():
    if not INTEGRATION:
        yield None
        return

    from alembic import command
    from alembic.config import Config

    from cache_recovery.crosscutting.config import get_settings
    from cache_recovery.infrastructure.db.pool import close_pool, init_pool

    alembic_cfg = Config(str(ROOT_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT_DIR / "alembic"))
    command.upgrade(alembic_cfg, "head")

    settings = get_settings()
    pool = init_pool(
        database_url=settings.database_url,
        min_size=1,
        max_size=settings.db_pool_max_size,
    )
    yield pool
    close_pool()

