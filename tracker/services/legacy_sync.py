"""
Webtoon Studio Tracker
Legacy sync queue: write-through of launch statuses to older key schemes.

Older readers still look at dash, title and compound keys. Turning a platform
off deletes those rows at once (``delete_now``) and queues only the keys it
could not delete. Other edits enqueue one task per such key; ``drain`` applies
them. Each task is an idempotent upsert (or delete) by key, so a task that
failed can simply run again. A task is marked ``failed`` after
``LEGACY_SYNC_MAX_ATTEMPTS`` unsuccessful runs and stays visible through the
jobs API.
"""

from __future__ import annotations

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from tracker.models import db
from tracker.models.distribution import DistributionStatus, TitleEntry
from tracker.models.project import now_ms
from tracker.models.scheduling import LegacySyncTask
from tracker.services import reconciler as rc

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


def enqueue(entry: TitleEntry, platform_id: str, status: str, keys: list[str]) -> int:
    """Queue write-through tasks for ``keys``. Returns how many were queued.

    Queueing is itself a secondary write: a failure is logged and dropped.
    """
    unique_keys = list(dict.fromkeys(keys))
    if not unique_keys:
        return 0
    operation = "delete" if status == rc.NONE else "upsert"
    try:
        for key in unique_keys:
            db.session.add(LegacySyncTask(
                key=key,
                operation=operation,
                project_id=entry.project_id,
                title=entry.title,
                category=entry.category,
                platform_id=platform_id,
                target_status=status,
                state="pending",
                attempts=0,
            ))
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Could not queue %d legacy writes", len(unique_keys), exc_info=True,
                       extra={"title": entry.title, "platform_id": platform_id})
        return 0
    logger.debug("Queued %d legacy %s task(s)", len(unique_keys), operation,
                 extra={"title": entry.title, "platform_id": platform_id})
    return len(unique_keys)


def delete_now(entry: TitleEntry, platform_id: str, keys: list[str]) -> list[str]:
    """Delete every row stored under ``keys`` right away.

    Turning a platform off cannot wait for the queue: a stale legacy
    ``launched`` row would be read back as the live value. Best-effort;
    returns the keys that could not be deleted so the caller can queue them.
    """
    unique_keys = list(dict.fromkeys(keys))
    if not unique_keys:
        return []
    try:
        deleted = DistributionStatus.query.filter(
            DistributionStatus.key.in_(unique_keys)
        ).delete(synchronize_session="fetch")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.warning("Legacy delete failed for %d key(s); queued for retry",
                       len(unique_keys), exc_info=True,
                       extra={"title": entry.title, "platform_id": platform_id})
        return unique_keys
    logger.debug("Deleted %d legacy row(s)", deleted,
                 extra={"title": entry.title, "platform_id": platform_id})
    return []


def apply_task(task: LegacySyncTask) -> None:
    """Bring every row stored under ``task.key`` to the task's target."""
    rows = DistributionStatus.query.filter_by(key=task.key).all()
    if task.operation == "delete":
        for row in rows:
            db.session.delete(row)
        return
    if rows:
        for row in rows:
            row.status = task.target_status
            row.timestamp = now_ms()
        return
    parsed = rc.parse_key(task.key)
    db.session.add(DistributionStatus(
        key=task.key,
        project_id=task.project_id,
        title=task.title,
        platform_id=parsed.platform_id if parsed else task.platform_id,
        category=task.category,
        status=task.target_status,
        note="",
        timestamp=now_ms(),
    ))


def _max_attempts() -> int:
    return int(current_app.config.get("LEGACY_SYNC_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))


def drain(limit: int | None = None) -> dict:
    """Apply pending tasks in queue order.

    Returns counts of applied, retried (still pending) and failed tasks.
    """
    max_attempts = _max_attempts()
    query = LegacySyncTask.query.filter_by(state="pending").order_by(LegacySyncTask.id)
    if limit:
        query = query.limit(limit)
    task_ids = [t.id for t in query.all()]

    result = {"applied": 0, "retried": 0, "failed": 0}
    for task_id in task_ids:
        task = db.session.get(LegacySyncTask, task_id)
        if task is None or task.state != "pending":
            continue
        try:
            apply_task(task)
            task.attempts = (task.attempts or 0) + 1
            task.state = "done"
            task.last_error = None
            db.session.commit()
            result["applied"] += 1
        except Exception as exc:  # recorded on the task and retried later
            db.session.rollback()
            _record_failure(task_id, exc, max_attempts, result)
    if any(result.values()):
        logger.info("Legacy sync drained: %s", result)
    return result


def _record_failure(task_id: int, exc: Exception, max_attempts: int, result: dict) -> None:
    task = db.session.get(LegacySyncTask, task_id)
    if task is None:
        return
    task.attempts = (task.attempts or 0) + 1
    task.last_error = str(exc)[:500]
    if task.attempts >= max_attempts:
        task.state = "failed"
        result["failed"] += 1
        logger.error("Legacy write %s failed permanently after %d attempts: %s",
                     task.key, task.attempts, exc, extra={"title": task.title,
                                                          "platform_id": task.platform_id})
    else:
        result["retried"] += 1
        logger.warning("Legacy write %s failed (attempt %d/%d): %s",
                       task.key, task.attempts, max_attempts, exc,
                       extra={"title": task.title, "platform_id": task.platform_id})
    db.session.commit()


def retry_failed() -> int:
    """Put failed tasks back in the queue with a fresh attempt budget."""
    tasks = LegacySyncTask.query.filter_by(state="failed").all()
    for task in tasks:
        task.state = "pending"
        task.attempts = 0
    db.session.commit()
    return len(tasks)


def list_tasks(state: str | None = None) -> list[LegacySyncTask]:
    query = LegacySyncTask.query
    if state:
        query = query.filter_by(state=state)
    return query.order_by(LegacySyncTask.id.desc()).all()


def queue_stats() -> dict:
    stats = {"pending": 0, "done": 0, "failed": 0}
    rows = db.session.query(LegacySyncTask.state, db.func.count(LegacySyncTask.id)) \
        .group_by(LegacySyncTask.state).all()
    for state, count in rows:
        stats[state] = count
    return stats
