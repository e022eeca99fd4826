"""
Webtoon Studio Tracker
Sync groups: which distribution categories mirror each other.

A category is a (region, lifecycle) pair. Categories of the same lifecycle
form a sync group: a title present in one must be present in every sibling.

    live group        domestic-live       ↔ overseas-live
    completed group   domestic-completed  ↔ overseas-completed

The resolver is total (unknown categories resolve to themselves) and
symmetric (every member of a group resolves to the same group).
"""

from __future__ import annotations

DOMESTIC = "domestic"
OVERSEAS = "overseas"
LIVE = "live"
COMPLETED = "completed"

REGIONS = (DOMESTIC, OVERSEAS)
LIFECYCLES = (LIVE, COMPLETED)

DOMESTIC_LIVE = "domestic-live"
OVERSEAS_LIVE = "overseas-live"
DOMESTIC_COMPLETED = "domestic-completed"
OVERSEAS_COMPLETED = "overseas-completed"

CATEGORIES = (DOMESTIC_LIVE, OVERSEAS_LIVE, DOMESTIC_COMPLETED, OVERSEAS_COMPLETED)

SYNC_GROUPS = (
    frozenset({DOMESTIC_LIVE, OVERSEAS_LIVE}),
    frozenset({DOMESTIC_COMPLETED, OVERSEAS_COMPLETED}),
)

# Display labels used by the launch sheet and by old status keys
CATEGORY_LABELS = {
    DOMESTIC_LIVE: "국내비독점 [라이브]",
    OVERSEAS_LIVE: "해외비독점 [라이브]",
    DOMESTIC_COMPLETED: "국내비독점 [완결]",
    OVERSEAS_COMPLETED: "해외비독점 [완결]",
}
_LABEL_TO_CATEGORY = {label: cat for cat, label in CATEGORY_LABELS.items()}

_GROUP_OF = {member: group for group in SYNC_GROUPS for member in group}


def normalize_category(value: str | None) -> str:
    """Map a category id or display label to its canonical id.

    Unknown values are returned trimmed, so the resolver stays total.
    """
    value = (value or "").strip()
    return _LABEL_TO_CATEGORY.get(value, value)


def is_known(category: str) -> bool:
    return normalize_category(category) in _GROUP_OF


def resolve_sync_group(category: str) -> frozenset[str]:
    category = normalize_category(category)
    return _GROUP_OF.get(category, frozenset({category}))


def siblings(category: str) -> frozenset[str]:
    """The other members of the category's sync group."""
    category = normalize_category(category)
    return resolve_sync_group(category) - {category}


def region_of(category: str) -> str | None:
    category = normalize_category(category)
    if category not in _GROUP_OF:
        return None
    return category.split("-", 1)[0]


def lifecycle_of(category: str) -> str | None:
    category = normalize_category(category)
    if category not in _GROUP_OF:
        return None
    return category.split("-", 1)[1]


def category_for(region: str, lifecycle: str) -> str:
    if region not in REGIONS or lifecycle not in LIFECYCLES:
        raise ValueError(f"Unknown region/lifecycle: {region}/{lifecycle}")
    return f"{region}-{lifecycle}"


def counterpart_lifecycle(category: str) -> str | None:
    """Same region, other lifecycle: domestic-live ↔ domestic-completed."""
    region = region_of(category)
    lifecycle = lifecycle_of(category)
    if region is None:
        return None
    return category_for(region, COMPLETED if lifecycle == LIVE else LIVE)


def categories_for_lifecycle(lifecycle: str) -> tuple[str, ...]:
    return tuple(c for c in CATEGORIES if lifecycle_of(c) == lifecycle)
