"""
Webtoon Studio Tracker
Background work models.

Models:
    - ScheduledJob: persisted job registry (run history + config)
    - LegacySyncTask: queued write-through of a launch status to a legacy key
"""

from datetime import datetime, timezone

from tracker.models import db

# ── Constants ────────────────────────────────────────────────────────────────

JOB_STATUSES = {"active", "paused", "completed", "failed"}
SYNC_TASK_STATES = {"pending", "done", "failed"}
SYNC_OPERATIONS = {"upsert", "delete"}


class ScheduledJob(db.Model):
    """
    Registry of background jobs.

    Tracks job configuration, last run time, and run history.
    """

    __tablename__ = "scheduled_jobs"

    id = db.Column(db.Integer, primary_key=True)
    job_name = db.Column(db.String(100), unique=True, nullable=False,
                         comment="Unique job identifier: legacy_status_sync, ...")
    description = db.Column(db.String(500), default="")
    schedule_type = db.Column(db.String(30), default="interval",
                              comment="cron, interval, once")
    schedule_config = db.Column(db.JSON, default=dict)
    status = db.Column(db.String(20), default="active",
                       comment="active, paused, completed, failed")
    is_enabled = db.Column(db.Boolean, default=True)

    last_run_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_run_status = db.Column(db.String(20), nullable=True,
                                comment="success, failed, skipped")
    last_run_duration_ms = db.Column(db.Integer, nullable=True)
    last_run_result = db.Column(db.JSON, nullable=True)
    run_count = db.Column(db.Integer, default=0)
    error_count = db.Column(db.Integer, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def record_run(self, *, status="success", duration_ms=0, result=None, error=None):
        """Record a job execution."""
        self.last_run_at = datetime.now(timezone.utc)
        self.last_run_status = status
        self.last_run_duration_ms = duration_ms
        self.last_run_result = result
        self.run_count = (self.run_count or 0) + 1
        if status == "failed":
            self.error_count = (self.error_count or 0) + 1
            self.last_error = str(error) if error else None

    def to_dict(self):
        return {
            "id": self.id,
            "job_name": self.job_name,
            "description": self.description,
            "schedule_type": self.schedule_type,
            "schedule_config": self.schedule_config,
            "status": self.status,
            "is_enabled": self.is_enabled,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_run_status": self.last_run_status,
            "last_run_duration_ms": self.last_run_duration_ms,
            "last_run_result": self.last_run_result,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_error": self.last_error,
        }

    def __repr__(self):
        return f"<ScheduledJob {self.job_name} [{self.status}]>"


class LegacySyncTask(db.Model):
    """
    One pending write to a legacy storage key.

    Applying a task is an idempotent upsert (or delete) keyed by ``key``, so a
    task can be retried any number of times until it succeeds or runs out of
    attempts.
    """

    __tablename__ = "legacy_sync_tasks"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(400), nullable=False, index=True)
    operation = db.Column(db.String(10), nullable=False, default="upsert",
                          comment="upsert | delete")
    project_id = db.Column(db.String(64), nullable=True)
    title = db.Column(db.String(200), nullable=True)
    category = db.Column(db.String(40), nullable=True)
    platform_id = db.Column(db.String(80), nullable=False)
    target_status = db.Column(db.String(20), nullable=False, default="none")

    state = db.Column(db.String(10), nullable=False, default="pending", index=True,
                      comment="pending | done | failed")
    attempts = db.Column(db.Integer, nullable=False, default=0)
    last_error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "operation": self.operation,
            "project_id": self.project_id,
            "title": self.title,
            "category": self.category,
            "platform_id": self.platform_id,
            "target_status": self.target_status,
            "state": self.state,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<LegacySyncTask {self.operation} {self.key} [{self.state}]>"
