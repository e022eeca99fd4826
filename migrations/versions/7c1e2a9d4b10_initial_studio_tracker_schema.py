"""initial_studio_tracker_schema

Create projects, workers, daily tasks, launch-status, delivery and
scheduling tables.

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def _created_updated():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False, server_default="general"),
            sa.Column("adult_sub_type", sa.String(length=20), nullable=True),
            sa.Column("team", sa.String(length=20), nullable=False, server_default="0팀"),
            sa.Column("story_writer", sa.String(length=100), nullable=False, server_default=""),
            sa.Column("art_writer", sa.String(length=100), nullable=False, server_default=""),
            sa.Column("identifier_type", sa.String(length=10), nullable=False, server_default="isbn"),
            sa.Column("identifier_value", sa.String(length=50), nullable=False, server_default=""),
            sa.Column("synopsis", sa.Text(), nullable=False, server_default=""),
            sa.Column("memo", sa.Text(), nullable=True),
            sa.Column("processes", sa.JSON(), nullable=False),
            sa.Column("episode_count", sa.Integer(), nullable=False, server_default="10"),
            sa.Column("start_episode", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("statuses", sa.JSON(), nullable=False),
            sa.Column("hidden_episodes", sa.JSON(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="production"),
            sa.Column("last_modified", sa.BigInteger(), nullable=False),
            *_created_updated(),
            sa.PrimaryKeyConstraint("id"),
        )

    if "workers" not in existing_tables:
        op.create_table(
            "workers",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("team", sa.String(length=20), nullable=False, server_default="공통"),
            sa.PrimaryKeyConstraint("id"),
        )

    if "daily_tasks" not in existing_tables:
        op.create_table(
            "daily_tasks",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("worker_id", sa.String(length=64), nullable=False),
            sa.Column("worker_name", sa.String(length=100), nullable=False, server_default=""),
            sa.Column("date", sa.String(length=10), nullable=False),
            sa.Column("task", sa.String(length=500), nullable=False),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.Column("project_title", sa.String(length=200), nullable=True),
            sa.Column("process_id", sa.Integer(), nullable=True),
            sa.Column("process_name", sa.String(length=100), nullable=True),
            sa.Column("episode", sa.Integer(), nullable=True),
            sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.BigInteger(), nullable=False),
            sa.Column("updated_at", sa.BigInteger(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_daily_tasks_worker_id", "daily_tasks", ["worker_id"])
        op.create_index("ix_daily_tasks_date", "daily_tasks", ["date"])
        op.create_index("ix_daily_tasks_cell_date", "daily_tasks",
                        ["project_id", "process_id", "episode", "date"])

    if "title_entries" not in existing_tables:
        op.create_table(
            "title_entries",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("category", sa.String(length=40), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="live"),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.Column("title_group_id", sa.String(length=64), nullable=True),
            sa.Column("delivery_day", sa.String(length=20), nullable=True),
            sa.Column("total_episodes", sa.Integer(), nullable=True),
            sa.Column("platforms", sa.JSON(), nullable=False),
            *_created_updated(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_title_entries_category", "title_entries", ["category"])
        op.create_index("ix_title_entries_project_id", "title_entries", ["project_id"])
        op.create_index("ix_title_entries_title_group_id", "title_entries", ["title_group_id"])
        op.create_index("ix_title_entries_category_title", "title_entries", ["category", "title"])

    if "distribution_statuses" not in existing_tables:
        op.create_table(
            "distribution_statuses",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("key", sa.String(length=400), nullable=False),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=True),
            sa.Column("platform_id", sa.String(length=80), nullable=False),
            sa.Column("category", sa.String(length=40), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="none"),
            sa.Column("note", sa.Text(), nullable=False, server_default=""),
            sa.Column("timestamp", sa.BigInteger(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_distribution_statuses_key", "distribution_statuses", ["key"])
        op.create_index("ix_distribution_statuses_project_id", "distribution_statuses", ["project_id"])
        op.create_index("ix_distribution_statuses_title", "distribution_statuses", ["title"])

    if "delivery_records" not in existing_tables:
        op.create_table(
            "delivery_records",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("platform_id", sa.String(length=80), nullable=False),
            sa.Column("episodes", sa.JSON(), nullable=False),
            sa.Column("schedule", sa.JSON(), nullable=False),
            sa.Column("updated_at", sa.BigInteger(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("title", "platform_id", name="uq_delivery_title_platform"),
        )
        op.create_index("ix_delivery_records_title", "delivery_records", ["title"])

    if "common_schedules" not in existing_tables:
        op.create_table(
            "common_schedules",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("open", sa.JSON(), nullable=False),
            sa.Column("due", sa.JSON(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("title"),
        )

    if "scheduled_jobs" not in existing_tables:
        op.create_table(
            "scheduled_jobs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("job_name", sa.String(length=100), nullable=False),
            sa.Column("description", sa.String(length=500), nullable=True),
            sa.Column("schedule_type", sa.String(length=30), nullable=True),
            sa.Column("schedule_config", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("is_enabled", sa.Boolean(), nullable=True),
            sa.Column("last_run_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("last_run_status", sa.String(length=20), nullable=True),
            sa.Column("last_run_duration_ms", sa.Integer(), nullable=True),
            sa.Column("last_run_result", sa.JSON(), nullable=True),
            sa.Column("run_count", sa.Integer(), nullable=True),
            sa.Column("error_count", sa.Integer(), nullable=True),
            sa.Column("last_error", sa.Text(), nullable=True),
            *_created_updated(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("job_name"),
        )

    if "legacy_sync_tasks" not in existing_tables:
        op.create_table(
            "legacy_sync_tasks",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("key", sa.String(length=400), nullable=False),
            sa.Column("operation", sa.String(length=10), nullable=False, server_default="upsert"),
            sa.Column("project_id", sa.String(length=64), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=True),
            sa.Column("category", sa.String(length=40), nullable=True),
            sa.Column("platform_id", sa.String(length=80), nullable=False),
            sa.Column("target_status", sa.String(length=20), nullable=False, server_default="none"),
            sa.Column("state", sa.String(length=10), nullable=False, server_default="pending"),
            sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_error", sa.Text(), nullable=True),
            *_created_updated(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_legacy_sync_tasks_key", "legacy_sync_tasks", ["key"])
        op.create_index("ix_legacy_sync_tasks_state", "legacy_sync_tasks", ["state"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "legacy_sync_tasks",
        "scheduled_jobs",
        "common_schedules",
        "delivery_records",
        "distribution_statuses",
        "title_entries",
        "daily_tasks",
        "workers",
        "projects",
    ):
        if table in existing_tables:
            op.drop_table(table)
