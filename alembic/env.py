"""
============================================================
CRC CARD — alembic/env.py (migrations of the recovery schema)
============================================================
Responsibilities:
  - Apply the hand-written migrations (raw DDL, no ORM metadata).
  - Take the database URL from the project Settings (DATABASE_URL / .env),
    rewritten for SQLAlchemy's psycopg 3 dialect.
  - Track revisions in a dedicated version table so the recovery tables can
    live in a database whose other tables are migrated elsewhere.
============================================================
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from cache_recovery.crosscutting.config import get_settings

VERSION_TABLE = "cache_recovery_alembic_version"

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name, disable_existing_loggers=False)


def database_url() -> str:
    url = context.config.get_main_option("sqlalchemy.url") or get_settings().database_url
    for prefix in ("postgresql://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix):]
    return url


def run_offline() -> None:
    context.configure(
        url=database_url(),
        target_metadata=None,
        version_table=VERSION_TABLE,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=None,
            version_table=VERSION_TABLE,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
