"""
Webtoon Studio Tracker
Distribution domain models: launch status per platform and delivery tracking.

Models:
    - TitleEntry: one row of the launch table, i.e. a title inside one category
      (domestic-live, overseas-completed, ...). Mirrors of the same title across
      a sync group share ``title_group_id``.
    - DistributionStatus: a stored launch status under one physical key. Several
      keys (current and legacy schemes) may describe the same logical fact.
    - DeliveryRecord: which episodes were delivered to one platform for a title.
    - CommonSchedule: per-title open/due dates shared by every platform.
"""

import uuid
from datetime import datetime, timezone

from tracker.models import db
from tracker.models.project import now_ms

# ── Constants ────────────────────────────────────────────────────────────────

LAUNCH_STATUSES = {"none", "pending", "launched", "rejected"}
ENTRY_STATUSES = {"live", "completed"}
DELIVERY_DAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)
EVERY_DAY = "every day"


class TitleEntry(db.Model):
    """
    A title as it appears in one distribution category.

    ``platforms`` is the row's own platform map (platform_id -> launch status)
    as last edited on the launch table. It is the screen snapshot the
    reconciler trusts when it shows a launched platform.
    """

    __tablename__ = "title_entries"
    __table_args__ = (
        db.Index("ix_title_entries_category_title", "category", "title"),
    )

    id = db.Column(db.String(64), primary_key=True, default=lambda: uuid.uuid4().hex)
    title = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(40), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="live",
                       comment="live | completed")
    project_id = db.Column(db.String(64), nullable=True, index=True,
                           comment="Linked production project, if any")
    title_group_id = db.Column(db.String(64), nullable=True, index=True,
                               comment="Shared by all mirrors of the title")
    delivery_day = db.Column(db.String(20), nullable=True,
                             comment="monday..sunday | 'every day' | NULL")
    total_episodes = db.Column(db.Integer, nullable=True)
    platforms = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc),
                           onupdate=lambda: datetime.now(timezone.utc))

    @property
    def owner_id(self) -> str:
        """Id used in canonical status keys: the linked project, else the entry itself."""
        return self.project_id or self.id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "status": self.status,
            "project_id": self.project_id,
            "title_group_id": self.title_group_id,
            "delivery_day": self.delivery_day,
            "total_episodes": self.total_episodes,
            "platforms": dict(self.platforms or {}),
        }

    def __repr__(self) -> str:
        return f"<TitleEntry {self.title} [{self.category}]>"


class DistributionStatus(db.Model):
    """
    One stored launch status.

    ``key`` follows one of the storage schemes understood by the reconciler.
    The key is indexed but not unique: historical duplicates exist and are
    resolved by rank when read.
    """

    __tablename__ = "distribution_statuses"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(400), nullable=False, index=True)
    project_id = db.Column(db.String(64), nullable=True, index=True)
    title = db.Column(db.String(200), nullable=True, index=True)
    platform_id = db.Column(db.String(80), nullable=False)
    category = db.Column(db.String(40), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="none")
    note = db.Column(db.Text, nullable=False, default="")
    timestamp = db.Column(db.BigInteger, nullable=False, default=now_ms)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "key": self.key,
            "project_id": self.project_id,
            "title": self.title,
            "platform_id": self.platform_id,
            "category": self.category,
            "status": self.status,
            "note": self.note,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"<DistributionStatus {self.key}={self.status}>"


class DeliveryRecord(db.Model):
    """
    Delivered episodes of one title on one platform.

    ``episodes`` maps str(episode) to True or to a delivery date string.
    The delivered count is derived from it and never stored.
    """

    __tablename__ = "delivery_records"
    __table_args__ = (
        db.UniqueConstraint("title", "platform_id", name="uq_delivery_title_platform"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, index=True)
    platform_id = db.Column(db.String(80), nullable=False)
    episodes = db.Column(db.JSON, nullable=False, default=dict)
    schedule = db.Column(db.JSON, nullable=False, default=dict,
                         comment="str(episode) -> scheduled date for this platform")
    updated_at = db.Column(db.BigInteger, nullable=False, default=now_ms, onupdate=now_ms)

    @property
    def delivered_episodes(self) -> list[int]:
        return sorted(int(ep) for ep, value in (self.episodes or {}).items() if value)

    @property
    def count(self) -> int:
        return len(self.delivered_episodes)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "platform_id": self.platform_id,
            "count": self.count,
            "episodes": dict(self.episodes or {}),
            "schedule": dict(self.schedule or {}),
        }

    def __repr__(self) -> str:
        return f"<DeliveryRecord {self.title}/{self.platform_id} count={self.count}>"


class CommonSchedule(db.Model):
    """Open and due dates per episode, shared by all platforms of a title."""

    __tablename__ = "common_schedules"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, unique=True)
    open = db.Column(db.JSON, nullable=False, default=dict)
    due = db.Column(db.JSON, nullable=False, default=dict)

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "open": dict(self.open or {}),
            "due": dict(self.due or {}),
        }

    def __repr__(self) -> str:
        return f"<CommonSchedule {self.title}>"
