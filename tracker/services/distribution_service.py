"""
Webtoon Studio Tracker
Distribution service: launch statuses of titles on platforms.

A status edit has one primary write and two kinds of secondary writes:

    primary     the entry's platform map and the canonical status row
                ("<owner>::<category>::<platform>"). A failure raises
                StorageError and nothing is kept.
    mirrors     the same platform value on the sheet rows of sync-group
                siblings. Logged and dropped on failure.
    legacy      every older-scheme row still describing the entry is brought
                in line: deleted at once when the status turns none, otherwise
                through the legacy sync queue (see legacy_sync).

Reads go through the reconciler: the entry's own platform map is the sheet
snapshot and all matching stored rows are the backend snapshot.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from tracker.core.exceptions import ValidationError
from tracker.models import db
from tracker.models.distribution import DistributionStatus, TitleEntry
from tracker.models.project import now_ms
from tracker.services import legacy_sync
from tracker.services import reconciler as rc
from tracker.services import title_service
from tracker.services.platform_catalog import get_catalog
from tracker.services.sync_groups import normalize_category
from tracker.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

SORT_FIELDS = ("title", "distribution")


def _log_extra(entry: TitleEntry, platform_id: str | None = None) -> dict:
    return {
        "title": entry.title,
        "category": entry.category,
        "project_id": entry.project_id,
        "platform_id": platform_id,
    }


def entry_ref(entry: TitleEntry) -> rc.EntryRef:
    return rc.EntryRef(
        entry_id=entry.id,
        owner_id=entry.owner_id,
        title=entry.title,
        category=entry.category,
    )


def _to_backend(row: DistributionStatus) -> rc.BackendRecord:
    return rc.BackendRecord(
        key=row.key,
        platform_id=row.platform_id,
        status=row.status,
        category=row.category,
        timestamp=row.timestamp or 0,
    )


# ── Reading ──────────────────────────────────────────────────────────────────


def status_rows_for_entry(entry: TitleEntry) -> list[tuple[DistributionStatus, str]]:
    """Stored rows describing ``entry`` under any key scheme, with the scheme."""
    owner = entry.owner_id
    candidates = db.session.execute(
        select(DistributionStatus).where(or_(
            DistributionStatus.project_id == owner,
            DistributionStatus.title == entry.title,
            DistributionStatus.key.startswith(f"{owner}-", autoescape=True),
            DistributionStatus.key.startswith(f"{owner}::", autoescape=True),
            DistributionStatus.key.startswith(f"{entry.title}::", autoescape=True),
            DistributionStatus.key.startswith(f"{entry.title}|", autoescape=True),
        ))
    ).scalars().all()

    ref = entry_ref(entry)
    rows = []
    for row in candidates:
        parsed = rc.parse_key(row.key)
        if parsed is None:
            continue
        scheme = rc.match_scheme(ref, parsed, row.category)
        if scheme is not None:
            rows.append((row, scheme))
    return rows


def backend_records(entry: TitleEntry) -> tuple[rc.BackendRecord, ...]:
    return tuple(_to_backend(row) for row, _scheme in status_rows_for_entry(entry))


def reconciled_statuses(entry: TitleEntry | str, screen: dict | None = None) -> dict[str, str]:
    """Authoritative ``{platform_id: status}`` for one entry.

    ``screen`` overrides the entry's stored platform map as the sheet snapshot.
    """
    if isinstance(entry, str):
        entry = title_service.get_entry(entry)
    snapshot = dict(entry.platforms or {}) if screen is None else dict(screen)
    data = rc.ReconciliationInput(
        screen=snapshot,
        backend=backend_records(entry),
        configured_platforms=get_catalog().ids_for_category(entry.category),
    )
    return rc.reconcile(data)


def notes_for_entry(entry: TitleEntry) -> dict[str, str]:
    notes = {}
    key_prefix = f"{entry.owner_id}::{normalize_category(entry.category)}::"
    for row, scheme in status_rows_for_entry(entry):
        if scheme == rc.SCHEME_CURRENT and row.key.startswith(key_prefix) and row.note:
            notes[row.platform_id] = row.note
    return notes


# ── Writing ──────────────────────────────────────────────────────────────────


def _validate(entry: TitleEntry, platform_id: str, status: str) -> None:
    if status not in rc.LAUNCH_STATUSES:
        raise ValidationError(
            f"Unknown launch status: {status!r}",
            details={"status": f"must be one of {', '.join(rc.LAUNCH_STATUSES)}"},
        )
    if not get_catalog().is_configured(platform_id, entry.category):
        raise ValidationError(
            f"Platform {platform_id!r} is not configured for {entry.category}",
            details={"platform_id": platform_id},
        )


def _canonical_rows(key: str) -> list[DistributionStatus]:
    return DistributionStatus.query.filter_by(key=key).order_by(DistributionStatus.id).all()


def set_status(entry_id: str, platform_id: str, status: str) -> dict:
    """Set one platform's launch status for an entry.

    ``none`` deletes the canonical row instead of storing an empty one.

    Raises:
        NotFoundError: unknown entry.
        ValidationError: unknown status or platform not configured for the category.
        StorageError: the primary write failed.
    """
    entry = title_service.get_entry(entry_id)
    _validate(entry, platform_id, status)

    # Primary: sheet value + canonical row
    platforms = dict(entry.platforms or {})
    if status == rc.NONE:
        platforms.pop(platform_id, None)
    else:
        platforms[platform_id] = status
    entry.platforms = platforms

    key = rc.canonical_key(entry.owner_id, entry.category, platform_id)
    rows = _canonical_rows(key)
    if status == rc.NONE:
        for row in rows:
            db.session.delete(row)
    elif rows:
        for row in rows:
            row.status = status
            row.timestamp = now_ms()
    else:
        db.session.add(DistributionStatus(
            key=key,
            project_id=entry.project_id,
            title=entry.title,
            platform_id=platform_id,
            category=entry.category,
            status=status,
            note="",
            timestamp=now_ms(),
        ))
    commit_or_raise("launch status")
    logger.info("Launch status set to %s", status, extra=_log_extra(entry, platform_id))

    mirrored = _mirror_to_siblings(entry, platform_id, status)
    queued = _write_through_legacy(entry, platform_id, status)

    return {
        "entry_id": entry.id,
        "platform_id": platform_id,
        "status": status,
        "mirrored": mirrored,
        "legacy_tasks": queued,
        "statuses": reconciled_statuses(entry),
    }


def _mirror_to_siblings(entry: TitleEntry, platform_id: str, status: str) -> int:
    """Copy the sheet value to every sibling row. Best-effort.

    Siblings whose region does not list the platform keep the value on the
    sheet, but the reconciler never shows it there.
    """
    touched = 0
    try:
        for sibling in title_service.group_members(entry):
            if sibling.id == entry.id or sibling.category == entry.category:
                continue
            platforms = dict(sibling.platforms or {})
            if status == rc.NONE:
                platforms.pop(platform_id, None)
            else:
                platforms[platform_id] = status
            sibling.platforms = platforms
            touched += 1
        if touched:
            db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Mirror write failed; sheet siblings not updated",
                       exc_info=True, extra=_log_extra(entry, platform_id))
        return 0
    return touched


def _write_through_legacy(entry: TitleEntry, platform_id: str, status: str) -> int:
    legacy_rows = [
        row for row, scheme in status_rows_for_entry(entry)
        if scheme != rc.SCHEME_CURRENT and row.platform_id == platform_id
    ]
    keys = [row.key for row in legacy_rows]
    if status == rc.NONE:
        keys = legacy_sync.delete_now(entry, platform_id, keys)
    queued = legacy_sync.enqueue(entry, platform_id, status, keys)
    if queued and current_app.config.get("LEGACY_SYNC_INLINE", False):
        legacy_sync.drain()
    return queued


def click_launch(entry_id: str, platform_id: str) -> dict:
    """Left click on a launch cell: launched ⇄ none."""
    entry = title_service.get_entry(entry_id)
    current = reconciled_statuses(entry).get(platform_id, rc.NONE)
    return set_status(entry_id, platform_id, rc.click_launch(current))


def cycle_submission(entry_id: str, platform_id: str) -> dict:
    """Right click on a launch cell: none → pending → rejected → none."""
    entry = title_service.get_entry(entry_id)
    current = reconciled_statuses(entry).get(platform_id, rc.NONE)
    return set_status(entry_id, platform_id, rc.cycle_submission(current))


def set_note(entry_id: str, platform_id: str, note: str | None) -> dict:
    """Attach a note to the canonical row, creating it (status none) if needed."""
    entry = title_service.get_entry(entry_id)
    if not get_catalog().is_configured(platform_id, entry.category):
        raise ValidationError(
            f"Platform {platform_id!r} is not configured for {entry.category}",
            details={"platform_id": platform_id},
        )
    note = (note or "").strip()
    key = rc.canonical_key(entry.owner_id, entry.category, platform_id)
    rows = _canonical_rows(key)
    if rows:
        for row in rows:
            row.note = note
            row.timestamp = now_ms()
    elif note:
        current = reconciled_statuses(entry).get(platform_id, rc.NONE)
        db.session.add(DistributionStatus(
            key=key,
            project_id=entry.project_id,
            title=entry.title,
            platform_id=platform_id,
            category=entry.category,
            status=current,
            note=note,
            timestamp=now_ms(),
        ))
    commit_or_raise("launch note")
    return {"entry_id": entry.id, "platform_id": platform_id, "note": note}


# ── Views ────────────────────────────────────────────────────────────────────


def entry_row(entry: TitleEntry, screen: dict | None = None) -> dict:
    statuses = reconciled_statuses(entry, screen)
    return {
        **entry.to_dict(),
        "statuses": statuses,
        "notes": notes_for_entry(entry),
        "launched_count": len(rc.launched_platforms(statuses)),
    }


def category_overview(
    category: str,
    *,
    sort_by: str = "title",
    order: str = "asc",
    search: str | None = None,
    platform_ids: list[str] | None = None,
) -> dict:
    """Every title of a category with reconciled statuses.

    Missing sync-group mirrors are synthesized first so each title has a row
    to edit here.
    """
    category = normalize_category(category)
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"sort_by must be one of {', '.join(SORT_FIELDS)}",
                              details={"sort_by": sort_by})
    title_service.ensure_mirrors(category)

    catalog = get_catalog()
    platforms = catalog.platforms_for_category(category)
    if platform_ids:
        wanted = set(platform_ids)
        platforms = [p for p in platforms if p.id in wanted]

    rows = [entry_row(entry) for entry in title_service.list_entries(category)]
    if search:
        needle = search.strip().lower()
        rows = [r for r in rows if needle in r["title"].lower()]

    reverse = order == "desc"
    if sort_by == "distribution":
        rows.sort(key=lambda r: (r["launched_count"], r["title"]), reverse=reverse)
    else:
        rows.sort(key=lambda r: r["title"], reverse=reverse)

    return {
        "category": category,
        "platforms": [p.to_dict() for p in platforms],
        "items": rows,
        "total": len(rows),
    }


def platform_stats(category: str, platform_id: str) -> dict:
    """How many titles of a category sit in each launch status on one platform."""
    category = normalize_category(category)
    counts = {status: 0 for status in rc.LAUNCH_STATUSES}
    entries = title_service.list_entries(category)
    for entry in entries:
        status = reconciled_statuses(entry).get(platform_id, rc.NONE)
        counts[status] += 1
    return {
        "category": category,
        "platform_id": platform_id,
        "platform_name": get_catalog().display_name(platform_id),
        "total": len(entries),
        **counts,
    }
