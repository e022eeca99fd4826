"""
Webtoon Studio Tracker
Platform catalog: the distribution platforms the studio currently works with.

The catalog is configuration: a status stored for a platform that is no longer
listed here is never shown. The built-in lists can be extended through the
``EXTRA_PLATFORMS`` setting (``"region:id:name"`` entries) and edited at
runtime with ``add_platform`` / ``rename_platform`` / ``remove_platform``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app, has_app_context

from tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from tracker.services import sync_groups as sg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Platform:
    id: str
    name: str
    region: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "region": self.region}


DOMESTIC_PLATFORMS = (
    ("anitoon", "애니툰"),
    ("alltoon", "올툰"),
    ("bomtoon", "봄툰"),
    ("blice", "블라이스"),
    ("bookcube", "북큐브"),
    ("bookpal", "북팔"),
    ("comico", "코미코"),
    ("kyobo-ebook", "교보E북"),
    ("guru-company", "구루컴퍼니"),
    ("ktoon", "케이툰"),
    ("manhwa365", "만화365"),
    ("mrblue", "미스터블루"),
    ("muto", "무툰"),
    ("muto2", "미툰"),
    ("naver-series", "네이버시리즈"),
    ("pickme", "픽미툰"),
    ("ridibooks", "리디북스"),
    ("lezhin", "레진"),
    ("toomics", "투믹스"),
    ("qtoon", "큐툰"),
    ("watcha", "왓챠"),
    ("onestory", "원스토리"),
    ("internet-manhwabang", "인터넷만화방"),
    ("duri", "두리요"),
)

OVERSEAS_PLATFORMS = (
    ("funple", "펀플"),
    ("dlsite", "DLSITE (누온)"),
    ("toptoon-japan", "탑툰 재팬"),
    ("toonhub", "툰허브"),
    ("honeytoon", "허니툰"),
    ("manta", "만타"),
    ("toomics-north-america", "투믹스 (EN)"),
    ("toomics-japan", "투믹스 (JP)"),
    ("toomics-italy", "투믹스 (IT)"),
    ("toomics-portugal", "투믹스 (PT)"),
    ("toomics-france", "투믹스 (FR)"),
    ("toomics-china-simplified", "투믹스 (간체)"),
    ("toomics-china-traditional", "투믹스 (번체)"),
    ("toomics-germany", "투믹스 (DE)"),
    ("toomics-spain", "투믹스 (ES)"),
    ("toomics-south-america", "투믹스 (남미)"),
    ("lezhin-north-america", "레진 (EN)"),
    ("lezhin-japan", "레진 (JP)"),
)


class PlatformCatalog:
    """Ordered platform lists per region."""

    def __init__(self, extra: list[str] | None = None):
        self._platforms: dict[str, Platform] = {}
        for pid, name in DOMESTIC_PLATFORMS:
            self._platforms[pid] = Platform(pid, name, sg.DOMESTIC)
        for pid, name in OVERSEAS_PLATFORMS:
            self._platforms[pid] = Platform(pid, name, sg.OVERSEAS)
        for entry in extra or []:
            self._add_from_setting(entry)

    def _add_from_setting(self, entry: str) -> None:
        parts = [p.strip() for p in entry.split(":", 2)]
        if len(parts) != 3 or parts[0] not in sg.REGIONS or not parts[1]:
            logger.warning("Ignoring malformed EXTRA_PLATFORMS entry: %r", entry)
            return
        region, pid, name = parts
        self._platforms[pid] = Platform(pid, name or pid, region)

    # ── Lookups ──────────────────────────────────────────────────────────

    def platforms_for_region(self, region: str) -> list[Platform]:
        return sorted(
            (p for p in self._platforms.values() if p.region == region),
            key=lambda p: p.name,
        )

    def platforms_for_category(self, category: str) -> list[Platform]:
        """Overseas categories use the overseas list; everything else the domestic one."""
        region = sg.region_of(category) or sg.DOMESTIC
        return self.platforms_for_region(region)

    def ids_for_category(self, category: str) -> frozenset[str]:
        return frozenset(p.id for p in self.platforms_for_category(category))

    def get(self, platform_id: str) -> Platform | None:
        return self._platforms.get(platform_id)

    def is_configured(self, platform_id: str, category: str | None = None) -> bool:
        if category is None:
            return platform_id in self._platforms
        return platform_id in self.ids_for_category(category)

    def display_name(self, platform_id: str) -> str:
        platform = self._platforms.get(platform_id)
        return platform.name if platform else platform_id

    def id_for_name(self, name: str) -> str | None:
        """Resolve a display name (as found on settlement sheets) to a platform id."""
        wanted = " ".join((name or "").split())
        for platform in self._platforms.values():
            if platform.name == wanted or platform.id == wanted:
                return platform.id
        return None

    # ── Editing ──────────────────────────────────────────────────────────

    def add_platform(self, region: str, platform_id: str, name: str) -> Platform:
        if region not in sg.REGIONS:
            raise ValidationError(f"Unknown region: {region}", details={"region": region})
        platform_id = (platform_id or "").strip()
        if not platform_id:
            raise ValidationError("platform id is required", details={"id": "required"})
        if platform_id in self._platforms:
            raise ConflictError("Platform", "id", platform_id)
        platform = Platform(platform_id, (name or platform_id).strip(), region)
        self._platforms[platform_id] = platform
        logger.info("Platform added: %s (%s)", platform_id, region, extra={"platform_id": platform_id})
        return platform

    def rename_platform(self, platform_id: str, name: str) -> Platform:
        platform = self._platforms.get(platform_id)
        if platform is None:
            raise NotFoundError("Platform", platform_id)
        renamed = Platform(platform.id, name.strip(), platform.region)
        self._platforms[platform_id] = renamed
        return renamed

    def remove_platform(self, platform_id: str) -> None:
        if self._platforms.pop(platform_id, None) is None:
            raise NotFoundError("Platform", platform_id)
        logger.info("Platform removed: %s", platform_id, extra={"platform_id": platform_id})


def get_catalog() -> PlatformCatalog:
    """The app-wide catalog, built once per app from ``EXTRA_PLATFORMS``."""
    if not has_app_context():
        return PlatformCatalog()
    catalog = current_app.extensions.get("platform_catalog")
    if catalog is None:
        catalog = PlatformCatalog(current_app.config.get("EXTRA_PLATFORMS"))
        current_app.extensions["platform_catalog"] = catalog
    return catalog
