"""
Webtoon Studio Tracker
Daily task model.

A daily task is one worker's to-do for a given date. Assigned tasks point at a
(project, process, episode) cell of the status grid; custom tasks do not.
"""

import uuid

from tracker.models import db
from tracker.models.project import now_ms


class DailyTask(db.Model):
    """One to-do item on a worker's day list."""

    __tablename__ = "daily_tasks"
    __table_args__ = (
        db.Index("ix_daily_tasks_cell_date", "project_id", "process_id", "episode", "date"),
    )

    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    worker_id = db.Column(db.String(64), nullable=False, index=True)
    worker_name = db.Column(db.String(100), nullable=False, default="")
    date = db.Column(db.String(10), nullable=False, index=True,
                     comment="YYYY-MM-DD in the studio timezone")
    task = db.Column(db.String(500), nullable=False)

    project_id = db.Column(db.String(64), nullable=True)
    project_title = db.Column(db.String(200), nullable=True)
    process_id = db.Column(db.Integer, nullable=True)
    process_name = db.Column(db.String(100), nullable=True)
    episode = db.Column(db.Integer, nullable=True)

    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.BigInteger, nullable=False, default=now_ms)
    updated_at = db.Column(db.BigInteger, nullable=False, default=now_ms, onupdate=now_ms)

    @property
    def is_assigned(self) -> bool:
        """True when the task is linked to a status-grid cell."""
        return bool(self.project_id and self.process_id and self.episode)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "worker_name": self.worker_name,
            "date": self.date,
            "task": self.task,
            "project_id": self.project_id,
            "project_title": self.project_title,
            "process_id": self.process_id,
            "process_name": self.process_name,
            "episode": self.episode,
            "completed": self.completed,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<DailyTask {self.id} {self.date} done={self.completed}>"
