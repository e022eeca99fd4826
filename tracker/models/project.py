"""
Webtoon Studio Tracker
Production domain models.

Models:
    - Project: one webtoon title in production, carrying its process list and
      the (process x episode) status grid as a JSON document.
    - Worker: registry entry used to label process assignees.
"""

import time
import uuid
from datetime import datetime, timezone

from tracker.models import db

# ── Constants ────────────────────────────────────────────────────────────────

PROJECT_TYPES = {"general", "adult"}
ADULT_SUB_TYPES = {"internal-ai", "cope-inter"}
PROJECT_STATUSES = {"production", "scheduled", "live", "completed"}
TEAMS = {"0팀", "1팀", "공통"}
IDENTIFIER_TYPES = {"isbn", "uci"}

PROJECT_STATUS_LABELS = {
    "production": "제작중",
    "scheduled": "연재예정",
    "live": "라이브중",
    "completed": "완결",
}


def _new_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    """Epoch milliseconds, the unit used by ``last_modified`` and record timestamps."""
    return int(time.time() * 1000)


class Project(db.Model):
    """
    A title in production.

    ``statuses`` maps ``"<processId>-<episode>"`` to ``{"status", "text"}``.
    Keys are created lazily on first edit; a missing key means an untouched cell.
    JSON columns are always reassigned, never mutated in place, so that
    SQLAlchemy sees the change.
    """

    __tablename__ = "projects"

    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    title = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, default="general",
                     comment="general | adult")
    adult_sub_type = db.Column(db.String(20), nullable=True,
                               comment="internal-ai | cope-inter (adult only)")
    team = db.Column(db.String(20), nullable=False, default="0팀")
    story_writer = db.Column(db.String(100), nullable=False, default="")
    art_writer = db.Column(db.String(100), nullable=False, default="")
    identifier_type = db.Column(db.String(10), nullable=False, default="isbn")
    identifier_value = db.Column(db.String(50), nullable=False, default="")
    synopsis = db.Column(db.Text, nullable=False, default="")
    memo = db.Column(db.Text, nullable=True)

    processes = db.Column(db.JSON, nullable=False, default=list,
                          comment="[{id, name, assignee}] in display order")
    episode_count = db.Column(db.Integer, nullable=False, default=10)
    start_episode = db.Column(db.Integer, nullable=False, default=1)
    statuses = db.Column(db.JSON, nullable=False, default=dict)
    hidden_episodes = db.Column(db.JSON, nullable=False, default=list)

    status = db.Column(db.String(20), nullable=False, default="production",
                       comment="production | scheduled | live | completed")
    last_modified = db.Column(db.BigInteger, nullable=False, default=now_ms)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def touch(self) -> None:
        self.last_modified = now_ms()

    def to_dict(self) -> dict:
        """Serialize the project document for API responses."""
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "adult_sub_type": self.adult_sub_type,
            "team": self.team,
            "story_writer": self.story_writer,
            "art_writer": self.art_writer,
            "identifier_type": self.identifier_type,
            "identifier_value": self.identifier_value,
            "synopsis": self.synopsis,
            "memo": self.memo,
            "processes": list(self.processes or []),
            "episode_count": self.episode_count,
            "start_episode": self.start_episode,
            "statuses": dict(self.statuses or {}),
            "hidden_episodes": list(self.hidden_episodes or []),
            "status": self.status,
            "status_label": PROJECT_STATUS_LABELS.get(self.status, self.status),
            "last_modified": self.last_modified,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.title}>"


class Worker(db.Model):
    """Studio worker. Only used to label assignees and group daily tasks."""

    __tablename__ = "workers"

    id = db.Column(db.String(64), primary_key=True, default=_new_id)
    name = db.Column(db.String(100), nullable=False)
    team = db.Column(db.String(20), nullable=False, default="공통")

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "team": self.team}

    def __repr__(self) -> str:
        return f"<Worker {self.id}: {self.name}>"
