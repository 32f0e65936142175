"""PostgreSQL adapters (raw SQL over the shared psycopg pool)."""

from .cache_job_state import PostgresCacheJobStateRepository
from .collection import PostgresCollectionSource

__all__ = ["PostgresCacheJobStateRepository", "PostgresCollectionSource"]
