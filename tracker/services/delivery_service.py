"""
Webtoon Studio Tracker
Delivery view: which episodes went out to which launched platform.

The view is derived on every read: live titles for a weekday, their launched
platforms (reconciled across the live mirrors), each platform's delivery
record and the title's common schedule. Nothing here is cached between writes.

Delivered counts are always the size of the delivered-episode set.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from tracker.core.exceptions import ValidationError
from tracker.models import db
from tracker.models.distribution import (
    DELIVERY_DAYS,
    EVERY_DAY,
    CommonSchedule,
    DeliveryRecord,
    TitleEntry,
)
from tracker.models.project import Project
from tracker.services import reconciler as rc
from tracker.services import sync_groups as sg
from tracker.services.distribution_service import reconciled_statuses
from tracker.services.platform_catalog import get_catalog
from tracker.services.status_grid import StatusGrid
from tracker.utils.helpers import commit_or_raise, parse_date_input

logger = logging.getLogger(__name__)

SCHEDULE_KINDS = ("open", "due")


def _validate_weekday(weekday: str | None) -> str | None:
    if weekday in (None, ""):
        return None
    weekday = weekday.strip().lower()
    if weekday not in DELIVERY_DAYS and weekday != EVERY_DAY:
        raise ValidationError(f"Unknown weekday: {weekday!r}",
                              details={"weekday": f"must be one of {', '.join(DELIVERY_DAYS)}"})
    return weekday


def _validate_episode(episode) -> int:
    try:
        episode = int(episode)
    except (TypeError, ValueError) as exc:
        raise ValidationError("episode must be an integer", details={"episode": episode}) from exc
    if episode < 1:
        raise ValidationError("episode must be at least 1", details={"episode": episode})
    return episode


def _live_entries_by_title() -> dict[str, list[TitleEntry]]:
    entries = db.session.execute(
        select(TitleEntry)
        .where(TitleEntry.category.in_(sg.categories_for_lifecycle(sg.LIVE)))
        .order_by(TitleEntry.title, TitleEntry.category)
    ).scalars().all()
    grouped: dict[str, list[TitleEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.title, []).append(entry)
    return grouped


def _linked_project(title: str, entries: list[TitleEntry]) -> Project | None:
    for entry in entries:
        if entry.project_id:
            project = db.session.get(Project, entry.project_id)
            if project is not None:
                return project
    return Project.query.filter_by(title=title).first()


def _delivery_day(entries: list[TitleEntry]) -> str | None:
    return next((e.delivery_day for e in entries if e.delivery_day), None)


def launched_platforms_for(entries: list[TitleEntry]) -> list[str]:
    """Union of launched platforms across a title's live mirrors."""
    launched: set[str] = set()
    for entry in entries:
        launched.update(rc.launched_platforms(reconciled_statuses(entry)))
    return sorted(launched)


def episode_range(total_episodes: int | None, completed_count: int | None) -> list[int]:
    """1..max(total, completed); empty when neither is known."""
    upper = max(total_episodes or 0, completed_count or 0)
    return list(range(1, upper + 1))


def _title_row(title: str, entries: list[TitleEntry]) -> dict:
    catalog = get_catalog()
    project = _linked_project(title, entries)
    completed_count = StatusGrid.from_project(project).completed_episode_count() if project else 0
    total = next((e.total_episodes for e in entries if e.total_episodes), None)
    if total is None and project is not None:
        total = project.episode_count

    records = {
        r.platform_id: r for r in DeliveryRecord.query.filter_by(title=title).all()
    }
    schedule = CommonSchedule.query.filter_by(title=title).first()

    platforms = []
    for platform_id in launched_platforms_for(entries):
        record = records.get(platform_id)
        platforms.append({
            "platform_id": platform_id,
            "platform_name": catalog.display_name(platform_id),
            "delivered": record.delivered_episodes if record else [],
            "count": record.count if record else 0,
            "episodes": dict(record.episodes or {}) if record else {},
            "schedule": dict(record.schedule or {}) if record else {},
        })

    return {
        "title": title,
        "entry_ids": [e.id for e in entries],
        "project_id": project.id if project else None,
        "delivery_day": _delivery_day(entries),
        "total_episodes": total,
        "completed_episodes": completed_count,
        "episodes": episode_range(total, completed_count),
        "platforms": platforms,
        "empty": not platforms,
        "common_schedule": schedule.to_dict() if schedule else {"title": title, "open": {}, "due": {}},
    }


def build_delivery_view(weekday: str | None = None) -> list[dict]:
    """Live titles delivered on ``weekday`` (or every day); all live titles for None.

    Titles with no launched platform are still listed, flagged ``empty``.
    """
    weekday = _validate_weekday(weekday)
    rows = []
    for title, entries in _live_entries_by_title().items():
        day = _delivery_day(entries)
        if weekday is not None and day not in (weekday, EVERY_DAY):
            continue
        rows.append(_title_row(title, entries))
    return rows


# ── Delivery records ─────────────────────────────────────────────────────────


def _get_or_create_record(title: str, platform_id: str) -> DeliveryRecord:
    title = (title or "").strip()
    if not title or not platform_id:
        raise ValidationError("title and platform_id are required",
                              details={"title": title, "platform_id": platform_id})
    record = DeliveryRecord.query.filter_by(title=title, platform_id=platform_id).first()
    if record is None:
        record = DeliveryRecord(title=title, platform_id=platform_id, episodes={}, schedule={})
        db.session.add(record)
    return record


def set_delivered(title: str, platform_id: str, episode: int, delivered: bool,
                  date: str | None = None) -> DeliveryRecord:
    """Mark one episode delivered (optionally with a date) or not delivered."""
    episode = _validate_episode(episode)
    parsed = parse_date_input(date) if delivered else None
    record = _get_or_create_record(title, platform_id)
    episodes = dict(record.episodes or {})
    if delivered:
        episodes[str(episode)] = parsed.isoformat() if parsed else True
    else:
        episodes.pop(str(episode), None)
    record.episodes = episodes
    commit_or_raise("delivery record")
    logger.debug("Episode %d delivered=%s (count=%d)", episode, delivered, record.count,
                 extra={"title": record.title, "platform_id": platform_id})
    return record


def toggle_delivered(title: str, platform_id: str, episode: int) -> DeliveryRecord:
    episode = _validate_episode(episode)
    existing = DeliveryRecord.query.filter_by(title=title, platform_id=platform_id).first()
    delivered = bool(existing and (existing.episodes or {}).get(str(episode)))
    return set_delivered(title, platform_id, episode, not delivered)


def set_platform_date(title: str, platform_id: str, episode: int, date: str | None) -> DeliveryRecord:
    """Set (or clear, with an empty date) the platform's scheduled date for an episode."""
    episode = _validate_episode(episode)
    parsed = parse_date_input(date)
    record = _get_or_create_record(title, platform_id)
    schedule = dict(record.schedule or {})
    if parsed is None:
        schedule.pop(str(episode), None)
    else:
        schedule[str(episode)] = parsed.isoformat()
    record.schedule = schedule
    commit_or_raise("delivery schedule")
    return record


def set_common_schedule(title: str, episode: int, kind: str, date: str | None) -> CommonSchedule:
    """Set the open or due date of an episode for every platform of the title."""
    if kind not in SCHEDULE_KINDS:
        raise ValidationError(f"kind must be one of {', '.join(SCHEDULE_KINDS)}",
                              details={"kind": kind})
    episode = _validate_episode(episode)
    parsed = parse_date_input(date)
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})

    schedule = CommonSchedule.query.filter_by(title=title).first()
    if schedule is None:
        schedule = CommonSchedule(title=title, open={}, due={})
        db.session.add(schedule)
    dates = dict(getattr(schedule, kind) or {})
    if parsed is None:
        dates.pop(str(episode), None)
    else:
        dates[str(episode)] = parsed.isoformat()
    setattr(schedule, kind, dates)
    commit_or_raise("common schedule")
    return schedule


def prune_delivery(title: str, platform_id: str | None = None) -> int:
    """Admin cleanup: delete delivery records of a title (one platform or all).

    Pruning the whole title also drops its common schedule.
    """
    query = DeliveryRecord.query.filter_by(title=title)
    if platform_id:
        query = query.filter_by(platform_id=platform_id)
    records = query.all()
    for record in records:
        db.session.delete(record)
    if platform_id is None:
        schedule = CommonSchedule.query.filter_by(title=title).first()
        if schedule is not None:
            db.session.delete(schedule)
    commit_or_raise("delivery prune")
    logger.info("Pruned %d delivery record(s)", len(records),
                extra={"title": title, "platform_id": platform_id})
    return len(records)
