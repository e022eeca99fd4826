"""
Webtoon Studio Tracker
Daily tasks and the bridge between them and the status grid.

Two views say whether a cell is done today: the grid and the worker's day
list. They are kept in step only at the moment of a user action:

    grid → tasks   a cell set to done/none updates the tasks for that
                   (project, process, episode) dated today in the studio
                   timezone. Older and future task dates are left alone.
    tasks → grid   toggling an assigned task writes done/none into the grid
                   without bouncing back into the task list.

There is no background reconciliation pass between the two.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.daily_task import DailyTask
from tracker.models.project import Worker, now_ms
from tracker.services import cell_state as cs
from tracker.services import project_service
from tracker.services.cell_state import CellState
from tracker.utils.helpers import commit_or_raise, parse_date_input, today_iso

logger = logging.getLogger(__name__)


def task_description(project_title: str, process_name: str, episode: int) -> str:
    return f"{project_title} - {process_name} {episode}화"


def _task_date(value: str | None) -> str:
    parsed = parse_date_input(value)
    return parsed.isoformat() if parsed else today_iso()


def get_task(task_id: str) -> DailyTask:
    task = db.session.get(DailyTask, task_id)
    if task is None:
        raise NotFoundError("DailyTask", task_id)
    return task


# ── Bridge ───────────────────────────────────────────────────────────────────


def on_grid_cell_changed(project_id: str, process_id: int, episode: int, status: str,
                         today: str | None = None) -> int:
    """Mirror a grid change into today's tasks for the cell. Returns tasks updated."""
    if status not in (cs.DONE, cs.NONE):
        return 0
    today = today or today_iso()
    completed = status == cs.DONE
    tasks = db.session.execute(
        select(DailyTask).where(
            DailyTask.project_id == project_id,
            DailyTask.process_id == int(process_id),
            DailyTask.episode == int(episode),
            DailyTask.date == today,
        )
    ).scalars().all()
    changed = 0
    for task in tasks:
        if task.completed != completed:
            task.completed = completed
            task.updated_at = now_ms()
            changed += 1
    if changed:
        commit_or_raise("daily task")
        logger.debug("Grid change pushed to %d daily task(s)", changed,
                     extra={"project_id": project_id})
    return changed


def toggle_task(task_id: str) -> DailyTask:
    """Flip a task's completed flag and push done/none into the grid cell."""
    task = get_task(task_id)
    task.completed = not task.completed
    task.updated_at = now_ms()
    commit_or_raise("daily task")

    if task.is_assigned:
        target = cs.DONE if task.completed else cs.NONE
        try:
            current = project_service.get_cell(task.project_id, task.process_id, task.episode)
            project_service.set_cell(
                task.project_id, task.process_id, task.episode,
                CellState(status=target, text=current.text),
                sync_tasks=False,
            )
        except (NotFoundError, ValidationError) as exc:
            logger.warning("Task %s no longer maps to a grid cell: %s", task.id, exc,
                           extra={"project_id": task.project_id})
    return task


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_assigned_tasks(worker_id: str, project_id: str, process_id: int,
                          episodes: list[int], date: str | None = None) -> list[DailyTask]:
    """One task per selected episode, described as "<title> - <process> <n>화"."""
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError("Worker", worker_id)
    if not episodes:
        raise ValidationError("Select at least one episode", details={"episodes": "required"})
    project = project_service.get_project(project_id)
    process = next((p for p in project.processes or [] if int(p["id"]) == int(process_id)), None)
    if process is None:
        raise NotFoundError("Process", process_id)

    task_date = _task_date(date)
    tasks = []
    for episode in sorted(set(int(e) for e in episodes)):
        task = DailyTask(
            worker_id=worker.id,
            worker_name=worker.name,
            date=task_date,
            task=task_description(project.title, process["name"], episode),
            project_id=project.id,
            project_title=project.title,
            process_id=int(process_id),
            process_name=process["name"],
            episode=episode,
            completed=False,
        )
        db.session.add(task)
        tasks.append(task)
    commit_or_raise("daily task")
    logger.info("Created %d assigned task(s) for %s", len(tasks), worker.name,
                extra={"project_id": project.id})
    return tasks


def create_custom_task(worker_id: str, text: str, date: str | None = None) -> DailyTask:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError("Worker", worker_id)
    text = (text or "").strip()
    if not text:
        raise ValidationError("task text is required", details={"task": "required"})
    task = DailyTask(
        worker_id=worker.id,
        worker_name=worker.name,
        date=_task_date(date),
        task=text,
        completed=False,
    )
    db.session.add(task)
    commit_or_raise("daily task")
    return task


def list_tasks(date: str | None = None, worker_id: str | None = None) -> list[DailyTask]:
    query = DailyTask.query.filter_by(date=_task_date(date))
    if worker_id:
        query = query.filter_by(worker_id=worker_id)
    return query.order_by(DailyTask.created_at, DailyTask.id).all()


def update_task_text(task_id: str, text: str) -> DailyTask:
    task = get_task(task_id)
    text = (text or "").strip()
    if not text:
        raise ValidationError("task text is required", details={"task": "required"})
    task.task = text
    task.updated_at = now_ms()
    commit_or_raise("daily task")
    return task


def delete_task(task_id: str) -> None:
    task = get_task(task_id)
    db.session.delete(task)
    commit_or_raise("daily task delete")


def worker_overview(date: str | None = None) -> list[dict]:
    """Per-worker task lists for a day with completion counts."""
    tasks = list_tasks(date)
    by_worker: dict[str, dict] = {}
    for task in tasks:
        bucket = by_worker.setdefault(task.worker_id, {
            "worker_id": task.worker_id,
            "worker_name": task.worker_name,
            "tasks": [],
            "completed_count": 0,
            "total_count": 0,
        })
        bucket["tasks"].append(task.to_dict())
        bucket["total_count"] += 1
        if task.completed:
            bucket["completed_count"] += 1
    return sorted(by_worker.values(), key=lambda b: b["worker_name"])
