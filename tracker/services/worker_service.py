"""
Webtoon Studio Tracker
Worker registry. Workers only label process assignees and own daily tasks.
"""

from __future__ import annotations

import logging

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.project import TEAMS, Project, Worker
from tracker.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)


def get_worker(worker_id: str) -> Worker:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError("Worker", worker_id)
    return worker


def list_workers(team: str | None = None) -> list[Worker]:
    query = Worker.query
    if team:
        query = query.filter_by(team=team)
    return query.order_by(Worker.name).all()


def create_worker(name: str, team: str = "공통") -> Worker:
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", details={"name": "required"})
    if team not in TEAMS:
        raise ValidationError(f"Unknown team: {team!r}", details={"team": team})
    worker = Worker(name=name, team=team)
    db.session.add(worker)
    commit_or_raise("worker")
    return worker


def update_worker(worker_id: str, data: dict) -> Worker:
    worker = get_worker(worker_id)
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise ValidationError("name is required", details={"name": "required"})
        worker.name = name
    if "team" in data:
        if data["team"] not in TEAMS:
            raise ValidationError(f"Unknown team: {data['team']!r}", details={"team": data["team"]})
        worker.team = data["team"]
    commit_or_raise("worker")
    return worker


def delete_worker(worker_id: str) -> int:
    """Delete a worker and clear them from every process they were assigned to.

    Returns the number of projects whose process list changed.
    """
    worker = get_worker(worker_id)
    changed = 0
    for project in Project.query.all():
        processes = [dict(p) for p in (project.processes or [])]
        hit = False
        for proc in processes:
            if proc.get("assignee") == worker_id:
                proc["assignee"] = ""
                hit = True
        if hit:
            project.processes = processes
            project.touch()
            changed += 1
    db.session.delete(worker)
    commit_or_raise("worker delete")
    logger.info("Worker %s deleted, unassigned from %d projects", worker_id, changed)
    return changed


def assignments(worker_id: str) -> list[dict]:
    """Processes the worker is assigned to, across projects."""
    get_worker(worker_id)
    result = []
    for project in Project.query.order_by(Project.title).all():
        for proc in project.processes or []:
            if proc.get("assignee") == worker_id:
                result.append({
                    "project_id": project.id,
                    "project_title": project.title,
                    "process_id": proc["id"],
                    "process_name": proc["name"],
                })
    return result
