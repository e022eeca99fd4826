"""
Webtoon Studio Tracker
Title entries: one row per (title, category) on the launch sheet.

Mirrors of a title across a sync group share a ``title_group_id`` assigned when
the title is created. Entries written before group ids existed have none; they
are joined to their group by exact title string until
``backfill_title_groups`` gives them one.

Rules:
  - db.session.commit() happens only in the service layer.
  - The primary write of an action is the requested entry. Mirrors created or
    renamed alongside it are part of the same commit; the auto-completion done
    while reading (``ensure_mirrors``) is best-effort.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError

from tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from tracker.models import db
from tracker.models.distribution import (
    DELIVERY_DAYS,
    EVERY_DAY,
    CommonSchedule,
    DeliveryRecord,
    DistributionStatus,
    TitleEntry,
)
from tracker.services import sync_groups as sg
from tracker.services.reconciler import (
    SCHEME_COMPOUND,
    SCHEME_CURRENT,
    SCHEME_DASH,
    canonical_key,
    compound_key,
    dash_key,
    parse_key,
    rank,
    title_key,
)
from tracker.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)


def _new_group_id() -> str:
    return uuid.uuid4().hex


def _clean_title(title: str | None) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})
    return title


def _require_category(category: str) -> str:
    category = sg.normalize_category(category)
    if not sg.is_known(category):
        raise ValidationError(
            f"Unknown category: {category!r}",
            details={"category": f"must be one of {', '.join(sg.CATEGORIES)}"},
        )
    return category


# ── Queries ──────────────────────────────────────────────────────────────────


def get_entry(entry_id: str) -> TitleEntry:
    entry = db.session.get(TitleEntry, entry_id)
    if entry is None:
        raise NotFoundError("TitleEntry", entry_id)
    return entry


def list_entries(category: str | None = None, status: str | None = None) -> list[TitleEntry]:
    stmt = select(TitleEntry)
    if category:
        stmt = stmt.where(TitleEntry.category == sg.normalize_category(category))
    if status:
        stmt = stmt.where(TitleEntry.status == status)
    return list(db.session.execute(stmt.order_by(TitleEntry.title, TitleEntry.category)).scalars())


def find_entry(title: str, category: str) -> TitleEntry | None:
    return db.session.execute(
        select(TitleEntry).where(
            TitleEntry.title == title,
            TitleEntry.category == sg.normalize_category(category),
        )
    ).scalars().first()


def group_members(entry: TitleEntry) -> list[TitleEntry]:
    """Every mirror of ``entry``: same group id, or same title in a sync-group
    category while still ungrouped. Includes ``entry`` itself."""
    group = sorted(sg.resolve_sync_group(entry.category))
    same_title = and_(TitleEntry.title == entry.title, TitleEntry.category.in_(group))
    conditions = [TitleEntry.id == entry.id]
    if entry.title_group_id:
        conditions.append(TitleEntry.title_group_id == entry.title_group_id)
        conditions.append(and_(same_title, TitleEntry.title_group_id.is_(None)))
    else:
        conditions.append(same_title)
    return list(db.session.execute(select(TitleEntry).where(or_(*conditions))).scalars())


def entries_for_project(project_id: str) -> list[TitleEntry]:
    return list(db.session.execute(
        select(TitleEntry).where(TitleEntry.project_id == project_id)
    ).scalars())


# ── Create / rename / delete ─────────────────────────────────────────────────


def add_title(
    title: str,
    category: str,
    *,
    project_id: str | None = None,
    delivery_day: str | None = None,
    total_episodes: int | None = None,
    commit: bool = True,
) -> list[TitleEntry]:
    """Create ``title`` in ``category`` and in every sync-group sibling.

    Returns the entries of the group, the requested category first.
    An ungrouped sibling row that already carries the title is adopted into
    the new group rather than duplicated.

    Raises:
        ValidationError: empty title, unknown category or delivery day.
        ConflictError: the title already exists in ``category``.
    """
    title = _clean_title(title)
    category = _require_category(category)
    delivery_day = _validate_day(delivery_day)
    if find_entry(title, category) is not None:
        raise ConflictError("TitleEntry", "title", f"{title} [{category}]")

    group_id = _new_group_id()
    lifecycle = sg.lifecycle_of(category)
    created: list[TitleEntry] = []
    for member in [category] + sorted(sg.siblings(category)):
        existing = find_entry(title, member)
        if existing is not None:
            if existing.title_group_id is None:
                existing.title_group_id = group_id
            created.append(existing)
            continue
        entry = TitleEntry(
            title=title,
            category=member,
            status=lifecycle,
            project_id=project_id,
            title_group_id=group_id,
            delivery_day=delivery_day,
            total_episodes=total_episodes,
            platforms={},
        )
        db.session.add(entry)
        created.append(entry)

    if commit:
        commit_or_raise("title entry")
    logger.info("Title added to %d categories", len(created),
                extra={"title": title, "category": category})
    return created


def rename_title(entry_id: str, new_title: str) -> list[TitleEntry]:
    """Rename the entry and every mirror that still carries its old title.

    Delivery records and common schedules are keyed by title and follow the
    rename as well.
    """
    entry = get_entry(entry_id)
    new_title = _clean_title(new_title)
    old_title = entry.title
    if new_title == old_title:
        return [entry]

    renamed = [m for m in group_members(entry) if m.title == old_title]
    for member in renamed:
        clash = find_entry(new_title, member.category)
        if clash is not None and clash.id != member.id:
            raise ConflictError("TitleEntry", "title", f"{new_title} [{member.category}]")
    for member in renamed:
        member.title = new_title

    _rename_title_keyed_rows(old_title, new_title, {m.category for m in renamed})
    commit_or_raise("title rename")
    logger.info("Title renamed %r -> %r in %d categories", old_title, new_title, len(renamed),
                extra={"title": new_title})
    return renamed


def rename_project_entries(project_id: str, old_title: str, new_title: str) -> int:
    """Follow a project rename onto its linked entries. Caller commits."""
    categories = set()
    for entry in entries_for_project(project_id):
        if entry.title == old_title:
            entry.title = new_title
            categories.add(entry.category)
    if categories:
        _rename_title_keyed_rows(old_title, new_title, categories)
    return len(categories)


def _rename_title_keyed_rows(old_title: str, new_title: str, categories: set[str]) -> None:
    """Move everything stored under ``old_title`` in ``categories`` to ``new_title``.

    Title-scheme and compound status keys embed the title, so the key itself
    is rewritten along with the row's title column.
    """
    categories = {sg.normalize_category(c) for c in categories}
    rows = DistributionStatus.query.filter(or_(
        DistributionStatus.title == old_title,
        DistributionStatus.key.startswith(f"{old_title}::", autoescape=True),
        DistributionStatus.key.startswith(f"{old_title}|", autoescape=True),
    )).all()
    for row in rows:
        parsed = parse_key(row.key)
        if parsed is not None and parsed.owner == old_title:
            if parsed.scheme == SCHEME_CURRENT:
                if parsed.category not in categories:
                    continue
                row.key = title_key(new_title, parsed.category, parsed.platform_id)
            elif parsed.scheme == SCHEME_COMPOUND:
                if row.category and sg.normalize_category(row.category) not in categories:
                    continue
                row.key = compound_key(new_title, parsed.launch_doc_id, parsed.platform_id)
        elif row.category and sg.normalize_category(row.category) not in categories:
            continue
        row.title = new_title

    for record in DeliveryRecord.query.filter_by(title=old_title).all():
        record.title = new_title
    schedule = CommonSchedule.query.filter_by(title=old_title).first()
    if schedule is not None and CommonSchedule.query.filter_by(title=new_title).first() is None:
        schedule.title = new_title


def delete_title(entry_id: str) -> int:
    """Delete the entry, all of its mirrors and their stored launch statuses."""
    from tracker.services.distribution_service import status_rows_for_entry

    entry = get_entry(entry_id)
    members = group_members(entry)
    removed_rows = 0
    for member in members:
        for row, _scheme in status_rows_for_entry(member):
            db.session.delete(row)
            removed_rows += 1
        db.session.delete(member)
    commit_or_raise("title delete")
    logger.info("Title deleted from %d categories (%d status rows)", len(members), removed_rows,
                extra={"title": entry.title})
    return len(members)


def delete_project_entries(project_id: str) -> int:
    """Remove every entry linked to a project and its status rows. Caller commits."""
    from tracker.services.distribution_service import status_rows_for_entry

    entries = entries_for_project(project_id)
    for entry in entries:
        for row, _scheme in status_rows_for_entry(entry):
            db.session.delete(row)
        db.session.delete(entry)
    return len(entries)


# ── Mirrors ──────────────────────────────────────────────────────────────────


def ensure_mirrors(category: str) -> list[TitleEntry]:
    """Synthesize sibling rows missing from ``category``'s sync group.

    Returns the rows created. A failed write is logged and rolled back; the
    caller still gets to read whatever exists.
    """
    category = sg.normalize_category(category)
    group = sorted(sg.resolve_sync_group(category))
    if len(group) < 2:
        return []

    entries = list(db.session.execute(
        select(TitleEntry).where(TitleEntry.category.in_(group))
    ).scalars())
    by_category: dict[str, set[str]] = {c: set() for c in group}
    for entry in entries:
        by_category[entry.category].add(entry.title)

    created: list[TitleEntry] = []
    seen: set[str] = set()
    for entry in entries:
        if entry.title in seen:
            continue
        seen.add(entry.title)
        missing = [c for c in group if entry.title not in by_category[c]]
        if not missing:
            continue
        if entry.title_group_id is None:
            entry.title_group_id = _new_group_id()
        for member in missing:
            mirror = TitleEntry(
                title=entry.title,
                category=member,
                status=sg.lifecycle_of(member),
                project_id=entry.project_id,
                title_group_id=entry.title_group_id,
                delivery_day=entry.delivery_day,
                total_episodes=entry.total_episodes,
                platforms={},
            )
            db.session.add(mirror)
            by_category[member].add(entry.title)
            created.append(mirror)

    if not created:
        return []
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not create %d mirror rows", len(created), extra={"category": category})
        return []
    logger.info("Created %d mirror rows", len(created), extra={"category": category})
    return created


def backfill_title_groups() -> dict:
    """Give every ungrouped entry a group id, joining mirrors by title string."""
    assigned = 0
    groups_created = 0
    for group in sg.SYNC_GROUPS:
        entries = list(db.session.execute(
            select(TitleEntry).where(TitleEntry.category.in_(sorted(group)))
        ).scalars())
        by_title: dict[str, list[TitleEntry]] = {}
        for entry in entries:
            by_title.setdefault(entry.title, []).append(entry)
        for _title, same in by_title.items():
            ungrouped = [e for e in same if e.title_group_id is None]
            if not ungrouped:
                continue
            existing = next((e.title_group_id for e in same if e.title_group_id), None)
            if existing is None:
                existing = _new_group_id()
                groups_created += 1
            for entry in ungrouped:
                entry.title_group_id = existing
                assigned += 1
    commit_or_raise("title group backfill")
    result = {"entries_assigned": assigned, "groups_created": groups_created}
    logger.info("Title group backfill: %s", result)
    return result


# ── Lifecycle / delivery day ─────────────────────────────────────────────────


def move_lifecycle(project_id: str, new_status: str, *, commit: bool = True) -> list[TitleEntry]:
    """Move a project's entries between the live and completed categories.

    Only ``live`` and ``completed`` project statuses have a lifecycle; other
    statuses leave the entries where they are. Stored launch statuses are
    copied under the counterpart category so the history stays visible.
    """
    if new_status not in (sg.LIVE, sg.COMPLETED):
        return []
    moved = []
    for entry in entries_for_project(project_id):
        if sg.lifecycle_of(entry.category) == new_status:
            continue
        target = sg.counterpart_lifecycle(entry.category)
        if target is None:
            continue
        _copy_status_rows(entry, target)
        existing = find_entry(entry.title, target)
        if existing is not None and existing.id != entry.id:
            merged = dict(existing.platforms or {})
            for platform_id, status in (entry.platforms or {}).items():
                merged.setdefault(platform_id, status)
            existing.platforms = merged
            existing.project_id = existing.project_id or entry.project_id
            existing.status = new_status
            db.session.delete(entry)
            moved.append(existing)
            continue
        entry.category = target
        entry.status = new_status
        moved.append(entry)
    if commit:
        commit_or_raise("lifecycle move")
    if moved:
        logger.info("Moved %d entries to %s", len(moved), new_status, extra={"project_id": project_id})
    return moved


def _copy_status_rows(entry: TitleEntry, target_category: str) -> None:
    from tracker.services.distribution_service import status_rows_for_entry

    rows = sorted(status_rows_for_entry(entry), key=lambda rs: -rank(rs[0].status))
    for row, _scheme in rows:
        key = canonical_key(entry.owner_id, target_category, row.platform_id)
        if DistributionStatus.query.filter_by(key=key).first() is not None:
            continue
        db.session.add(DistributionStatus(
            key=key,
            project_id=entry.project_id,
            title=entry.title,
            platform_id=row.platform_id,
            category=target_category,
            status=row.status,
            note=row.note or "",
        ))


def _validate_day(day: str | None) -> str | None:
    if day in (None, ""):
        return None
    day = day.strip().lower()
    if day not in DELIVERY_DAYS and day != EVERY_DAY:
        raise ValidationError(
            f"Unknown delivery day: {day!r}",
            details={"delivery_day": f"must be one of {', '.join(DELIVERY_DAYS)} or '{EVERY_DAY}'"},
        )
    return day


def set_delivery_day(title: str, day: str | None) -> list[TitleEntry]:
    """Set the delivery weekday on every entry of ``title``."""
    day = _validate_day(day)
    entries = TitleEntry.query.filter_by(title=title).all()
    if not entries:
        raise NotFoundError("TitleEntry", title)
    for entry in entries:
        entry.delivery_day = day
    commit_or_raise("delivery day")
    return entries


def update_entry(entry_id: str, data: dict) -> TitleEntry:
    """Patch total_episodes / project link of an entry and its mirrors."""
    entry = get_entry(entry_id)
    members = group_members(entry)
    if "total_episodes" in data:
        total = data["total_episodes"]
        if total is not None:
            try:
                total = int(total)
            except (TypeError, ValueError) as exc:
                raise ValidationError("total_episodes must be an integer",
                                      details={"total_episodes": total}) from exc
            if total < 0:
                raise ValidationError("total_episodes must not be negative",
                                      details={"total_episodes": total})
        for member in members:
            member.total_episodes = total
    if "project_id" in data:
        link_project(members, data["project_id"] or None)
    commit_or_raise("title entry")
    return entry


def link_project(entries: list[TitleEntry], project_id: str | None) -> None:
    """Point ``entries`` at ``project_id`` (None unlinks). Caller commits.

    Canonical and dash keys start with the entry's owner id, which changes
    with the link, so those rows are rekeyed to the new owner. When the new
    key is already taken the higher-ranked status wins and the note is kept.
    """
    from tracker.services.distribution_service import status_rows_for_entry

    for entry in entries:
        old_owner = entry.owner_id
        owned = [
            (row, scheme) for row, scheme in status_rows_for_entry(entry)
            if scheme in (SCHEME_CURRENT, SCHEME_DASH)
        ]
        entry.project_id = project_id
        new_owner = entry.owner_id
        if new_owner == old_owner:
            continue
        for row, scheme in owned:
            parsed = parse_key(row.key)
            if scheme == SCHEME_CURRENT:
                key = canonical_key(new_owner, parsed.category, parsed.platform_id)
            else:
                key = dash_key(new_owner, parsed.platform_id)
            taken = DistributionStatus.query.filter(
                DistributionStatus.key == key, DistributionStatus.id != row.id
            ).first()
            if taken is None:
                row.key = key
                row.project_id = project_id
                continue
            if rank(row.status) > rank(taken.status):
                taken.status = row.status
            taken.note = taken.note or row.note or ""
            db.session.delete(row)
        if owned:
            logger.info("Rekeyed %d status rows to owner %s", len(owned), new_owner,
                        extra={"title": entry.title, "category": entry.category})
