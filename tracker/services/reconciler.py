"""
Webtoon Studio Tracker
Platform status reconciler.

One logical fact, "title T in category C has status S on platform P", may be
stored under several physical keys written by successive storage schemes:

    current   "<projectId>::<category>::<platformId>"
    dash      "<projectId>-<platformId>"               (no category)
    title     "<title>::<category>::<platformId>"
    compound  "<title>|<launchDocId>|<platformId>"

``select_records`` picks the stored records that describe a given title entry,
and ``reconcile`` turns them, together with what the launch sheet currently
shows, into one status per platform:

    1. If the sheet shows any platform as launched, the sheet's statuses are
       taken as they are. Backend ``launched`` facts for platforms the sheet
       does not show are not merged back in.
    2. Otherwise each platform gets the highest-ranked status found across
       backend records and sheet entries
       (launched 3 > pending 2 > rejected 1 > none 0).
    3. Platforms missing from the configured catalog are dropped, on both
       sides: an unlisted platform on the sheet does not count as shown.

Only non-``none`` statuses appear in the result. Everything in this module is
pure: callers load the records and pass them in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping

from tracker.services.sync_groups import normalize_category

NONE = "none"
PENDING = "pending"
LAUNCHED = "launched"
REJECTED = "rejected"

LAUNCH_STATUSES = (NONE, PENDING, LAUNCHED, REJECTED)

STATUS_RANK = {
    LAUNCHED: 3,
    PENDING: 2,
    REJECTED: 1,
    NONE: 0,
}

SCHEME_CURRENT = "current"
SCHEME_DASH = "dash"
SCHEME_TITLE = "title"
SCHEME_COMPOUND = "compound"


def rank(status: str | None) -> int:
    return STATUS_RANK.get(status or NONE, 0)


# ── Keys ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StatusKey:
    """A parsed storage key. ``owner`` is a project id or a title, depending on scheme."""

    scheme: str
    owner: str
    platform_id: str
    category: str | None = None
    launch_doc_id: str | None = None


def canonical_key(owner_id: str, category: str, platform_id: str) -> str:
    return f"{owner_id}::{normalize_category(category)}::{platform_id}"


def dash_key(owner_id: str, platform_id: str) -> str:
    return f"{owner_id}-{platform_id}"


def title_key(title: str, category: str, platform_id: str) -> str:
    return f"{title}::{normalize_category(category)}::{platform_id}"


def compound_key(title: str, launch_doc_id: str, platform_id: str) -> str:
    return f"{title}|{launch_doc_id}|{platform_id}"


def parse_key(key: str) -> StatusKey | None:
    """Identify the scheme of ``key``.

    ``::`` keys are reported as ``current``; whether the first part is a
    project id or a title is decided when matching against an entry. Dash keys
    split at the first ``-`` because project ids never contain one while
    platform ids often do.
    """
    if not key:
        return None
    parts = key.split("|")
    if len(parts) == 3 and all(parts):
        return StatusKey(SCHEME_COMPOUND, parts[0], parts[2], launch_doc_id=parts[1])
    parts = key.split("::")
    if len(parts) == 3 and parts[0] and parts[2]:
        return StatusKey(SCHEME_CURRENT, parts[0], parts[2], category=normalize_category(parts[1]))
    owner, sep, platform_id = key.partition("-")
    if sep and owner and platform_id:
        return StatusKey(SCHEME_DASH, owner, platform_id)
    return None


# ── Inputs ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EntryRef:
    """What the reconciler needs to know about one title entry."""

    entry_id: str
    owner_id: str
    title: str
    category: str


@dataclass(frozen=True)
class BackendRecord:
    key: str
    platform_id: str
    status: str
    category: str | None = None
    timestamp: int = 0


@dataclass(frozen=True)
class MatchedRecord:
    record: BackendRecord
    scheme: str


@dataclass(frozen=True)
class ReconciliationInput:
    """Sheet snapshot plus backend snapshot for one (title, category)."""

    screen: Mapping[str, str] = field(default_factory=dict)
    backend: tuple[BackendRecord, ...] = ()
    configured_platforms: frozenset[str] = frozenset()


def match_scheme(ref: EntryRef, parsed: StatusKey, record_category: str | None = None) -> str | None:
    """Return the scheme under which ``parsed`` describes ``ref``, or None."""
    category = normalize_category(ref.category)
    if parsed.scheme == SCHEME_CURRENT:
        if parsed.category != category:
            return None
        if parsed.owner == ref.owner_id:
            return SCHEME_CURRENT
        if parsed.owner == ref.title:
            return SCHEME_TITLE
        return None
    if parsed.scheme == SCHEME_DASH:
        return SCHEME_DASH if parsed.owner == ref.owner_id else None
    if parsed.scheme == SCHEME_COMPOUND:
        if parsed.owner != ref.title:
            return None
        if parsed.launch_doc_id == ref.entry_id:
            return SCHEME_COMPOUND
        if record_category and normalize_category(record_category) == category:
            return SCHEME_COMPOUND
        return None
    return None


def select_records(ref: EntryRef, records: Iterable[BackendRecord]) -> list[MatchedRecord]:
    """Keep the records that describe ``ref``, tagged with their scheme."""
    matched = []
    for record in records:
        parsed = parse_key(record.key)
        if parsed is None:
            continue
        scheme = match_scheme(ref, parsed, record.category)
        if scheme is not None:
            matched.append(MatchedRecord(record, scheme))
    return matched


# ── Reconcile ────────────────────────────────────────────────────────────────


def screen_has_launched(screen: Mapping[str, str]) -> bool:
    return any(status == LAUNCHED for status in screen.values())


def reconcile(data: ReconciliationInput) -> dict[str, str]:
    """Return ``{platform_id: status}`` for every platform with a non-none status."""
    configured = data.configured_platforms
    # A platform the category does not list is never on screen
    screen = {pid: status for pid, status in data.screen.items() if pid in configured}

    merged: dict[str, str] = {}
    if screen_has_launched(screen):
        merged.update(screen)
    else:
        for record in data.backend:
            if rank(record.status) > rank(merged.get(record.platform_id)):
                merged[record.platform_id] = record.status
        for platform_id, status in screen.items():
            if rank(status) > rank(merged.get(platform_id)):
                merged[platform_id] = status

    return {
        platform_id: status
        for platform_id, status in merged.items()
        if platform_id in configured and status in STATUS_RANK and status != NONE
    }


def launched_platforms(statuses: Mapping[str, str]) -> list[str]:
    return sorted(pid for pid, status in statuses.items() if status == LAUNCHED)


# ── Click transitions ────────────────────────────────────────────────────────


def click_launch(status: str) -> str:
    """Left click: launched ⇄ none; anything else becomes launched."""
    return NONE if status == LAUNCHED else LAUNCHED


_SUBMISSION_CYCLE = {
    NONE: PENDING,
    PENDING: REJECTED,
    REJECTED: NONE,
    LAUNCHED: PENDING,
}


def cycle_submission(status: str) -> str:
    """Right click: none → pending → rejected → none; launched drops to pending."""
    return _SUBMISSION_CYCLE.get(status, PENDING)
