"""
============================================================
CRC CARD — 001_cache_job_schema (Alembic migration)
============================================================
Responsibilities:
  - Create the job state table used by the recovery engine.
  - Create the collection membership tables read by the collection source.

Policy:
  - Baseline migration. Later changes go in additive migrations (002+).
  - Naming convention:
      pk_<table>, uq_<table>_<col>, ix_<table>_<col>, ck_<table>_<rule>
  - Per-item progress is stored as TEXT[] so the store can append/remove
    an item in a single guarded UPDATE.
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_cache_job_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # =========================================================
    # 1) COLLECTIONS
    # =========================================================
    op.create_table(
        "collections",
        sa.Column("id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False, server_default=sa.text("''")),
        sa.Column("path", sa.Text, nullable=False, server_default=sa.text("''")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_collections"),
    )

    op.create_table(
        "collection_items",
        sa.Column("collection_id", sa.Text, nullable=False),
        sa.Column("item_id", sa.Text, nullable=False),
        sa.Column("relative_path", sa.Text, nullable=False),
        sa.Column("filename", sa.Text, nullable=False, server_default=sa.text("''")),
        sa.Column("position", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("collection_id", "item_id", name="pk_collection_items"),
        sa.ForeignKeyConstraint(
            ["collection_id"],
            ["collections.id"],
            name="fk_collection_items_collection_id__collections",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_collection_items_collection_id_position",
        "collection_items",
        ["collection_id", "position"],
    )

    # =========================================================
    # 2) CACHE JOB STATES
    # =========================================================
    # collection_id carries no FK: a job must outlive its collection so that
    # recovery can observe the deletion and disable resumption.
    op.create_table(
        "cache_job_states",
        sa.Column("job_id", sa.Text, nullable=False),
        sa.Column("collection_id", sa.Text, nullable=False),
        sa.Column("collection_name", sa.Text, nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="Pending"),
        sa.Column("total_images", sa.Integer, nullable=False, server_default=sa.text("0")),
        sa.Column(
            "processed_image_ids",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column(
            "skipped_image_ids",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column(
            "item_ids",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column("can_resume", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("cache_width", sa.Integer, nullable=False),
        sa.Column("cache_height", sa.Integer, nullable=False),
        sa.Column("quality", sa.Integer, nullable=False),
        sa.Column("format", sa.String(16), nullable=False, server_default="jpeg"),
        sa.Column("cache_folder_path", sa.Text, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_progress_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("job_id", name="pk_cache_job_states"),
        sa.CheckConstraint(
            "status IN ('Pending', 'Running', 'Completed', 'Failed')",
            name="ck_cache_job_states_status",
        ),
        sa.CheckConstraint(
            "quality BETWEEN 0 AND 100",
            name="ck_cache_job_states_quality",
        ),
        sa.CheckConstraint(
            "cache_width > 0 AND cache_height > 0",
            name="ck_cache_job_states_dimensions",
        ),
    )

    op.create_index("ix_cache_job_states_collection_id", "cache_job_states", ["collection_id"])

    # R: recovery scans (status <> 'Completed') and retention cleanup.
    op.execute(
        """
        CREATE INDEX ix_cache_job_states_incomplete
        ON cache_job_states (created_at DESC)
        WHERE status <> 'Completed'
        """
    )
    op.execute(
        """
        CREATE INDEX ix_cache_job_states_completed_at
        ON cache_job_states (completed_at)
        WHERE status = 'Completed'
        """
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS cache_job_states")
    op.execute("DROP TABLE IF EXISTS collection_items")
    op.execute("DROP TABLE IF EXISTS collections")
