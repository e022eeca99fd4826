"""
Webtoon Studio Tracker
Scheduled jobs.

Jobs:
    - legacy_status_sync: apply pending legacy-key write-through tasks
    - title_group_backfill: give ungrouped launch rows a title group id
"""

from __future__ import annotations

import logging
from typing import Any

from tracker.services import legacy_sync, title_service
from tracker.services.scheduler_service import register_job

logger = logging.getLogger(__name__)


@register_job("legacy_status_sync")
def drain_legacy_queue(app) -> dict[str, Any]:
    """Apply pending legacy-key writes; failures stay queued until max attempts."""
    result = legacy_sync.drain()
    result["queue"] = legacy_sync.queue_stats()
    return result


@register_job("title_group_backfill")
def backfill_title_groups(app) -> dict[str, Any]:
    """Assign title group ids to launch rows created before groups existed."""
    return title_service.backfill_title_groups()
