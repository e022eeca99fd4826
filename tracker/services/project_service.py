"""
Webtoon Studio Tracker
Project service: projects, their process lists and status grids.

All business logic for production tracking lives here; blueprints only parse
input and serialize results.

Rules:
  - db.session.commit() happens only in the service layer.
  - Grid edits run as optimistic commands (services.commands): a failed write
    reverts the in-memory grid and raises StorageError.
  - Every grid mutation bumps ``last_modified``.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from sqlalchemy import select

from tracker.core.exceptions import NotFoundError, ValidationError
from tracker.models import db
from tracker.models.project import (
    ADULT_SUB_TYPES,
    IDENTIFIER_TYPES,
    PROJECT_STATUSES,
    PROJECT_TYPES,
    TEAMS,
    Project,
    Worker,
)
from tracker.services import cell_state as cs
from tracker.services import sync_groups as sg
from tracker.services import title_service
from tracker.services.cell_state import CellState
from tracker.services.commands import CallCommand, SetCellCommand, run_optimistic
from tracker.services.status_grid import StatusGrid
from tracker.utils.helpers import commit_or_raise

logger = logging.getLogger(__name__)

DEFAULT_EPISODE_COUNT = 10

# ── Templates ────────────────────────────────────────────────────────────────

GENERAL_PROCESSES = (
    "1_줄거리",
    "2_콘티",
    "3_컷콘티",
    "4_제작",
    "5_편집",
)

ADULT_INTERNAL_AI_PROCESSES = (
    "1_줄거리",
    "2_콘티",
    "3_컷콘티",
    "4_일반씬 제작",
    "5_다즈,모듈",
    "6_로퀄",
    "7_추출 및 디벨롭",
    "8_편집",
)

ADULT_COPE_INTER_PROCESSES = (
    "1_줄거리",
    "2_콘티",
    "3_컷콘티",
    "4_일반씬 제작",
    "5_다즈 및 모듈",
    "6_로퀄 및 코페인터",
    "7_디벨롭 및 소재",
    "8_편집",
)

TEMPLATES = {
    ("general", None): GENERAL_PROCESSES,
    ("adult", "internal-ai"): ADULT_INTERNAL_AI_PROCESSES,
    ("adult", "cope-inter"): ADULT_COPE_INTER_PROCESSES,
}

# Fields update_project may set directly
_METADATA_FIELDS = (
    "team", "story_writer", "art_writer", "identifier_type",
    "identifier_value", "synopsis", "memo",
)


def process_template(project_type: str, adult_sub_type: str | None = None) -> list[dict]:
    """Fresh process list for a project type (adult defaults to internal-ai)."""
    if project_type not in PROJECT_TYPES:
        raise ValidationError(f"Unknown project type: {project_type!r}",
                              details={"type": f"must be one of {', '.join(sorted(PROJECT_TYPES))}"})
    if project_type == "adult":
        adult_sub_type = adult_sub_type or "internal-ai"
        if adult_sub_type not in ADULT_SUB_TYPES:
            raise ValidationError(f"Unknown adult sub type: {adult_sub_type!r}",
                                  details={"adult_sub_type": adult_sub_type})
        names = TEMPLATES[("adult", adult_sub_type)]
    else:
        names = TEMPLATES[("general", None)]
    return [{"id": i, "name": name, "assignee": ""} for i, name in enumerate(names, start=1)]


def _positive_int(value: Any, field: str, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an integer", details={field: value}) from exc
    if number < 1:
        raise ValidationError(f"{field} must be at least 1", details={field: number})
    return number


def _choice(value: str | None, allowed: set, field: str) -> str | None:
    if value is None:
        return None
    if value not in allowed:
        raise ValidationError(f"Unknown {field}: {value!r}",
                              details={field: f"must be one of {', '.join(sorted(allowed))}"})
    return value


# ── CRUD ─────────────────────────────────────────────────────────────────────


def get_project(project_id: str) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


def list_projects(status: str | None = None, team: str | None = None) -> list[Project]:
    stmt = select(Project)
    if status:
        stmt = stmt.where(Project.status == status)
    if team:
        stmt = stmt.where(Project.team == team)
    return list(db.session.execute(stmt.order_by(Project.title)).scalars())


def default_category(status: str) -> str:
    return sg.DOMESTIC_COMPLETED if status == "completed" else sg.DOMESTIC_LIVE


def create_project(data: dict) -> Project:
    """Create a project from its template and fan it out onto the launch sheet.

    The title is added to ``category`` (default by lifecycle status) and its
    sync-group siblings. Launch rows that already carry the title and have no
    project are linked instead of duplicated.
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})

    project_type = data.get("type") or "general"
    adult_sub_type = data.get("adult_sub_type") if project_type == "adult" else None
    processes = process_template(project_type, adult_sub_type)
    if project_type == "adult":
        adult_sub_type = adult_sub_type or "internal-ai"

    status = _choice(data.get("status") or "production", PROJECT_STATUSES, "status")
    project = Project(
        title=title,
        type=project_type,
        adult_sub_type=adult_sub_type,
        team=_choice(data.get("team") or "0팀", TEAMS, "team"),
        story_writer=data.get("story_writer", ""),
        art_writer=data.get("art_writer", ""),
        identifier_type=_choice(data.get("identifier_type") or "isbn", IDENTIFIER_TYPES, "identifier_type"),
        identifier_value=data.get("identifier_value", ""),
        synopsis=data.get("synopsis", ""),
        memo=data.get("memo"),
        processes=processes,
        episode_count=_positive_int(data.get("episode_count"), "episode_count", DEFAULT_EPISODE_COUNT),
        start_episode=_positive_int(data.get("start_episode"), "start_episode", 1),
        statuses={},
        hidden_episodes=[],
        status=status,
    )
    project.touch()
    db.session.add(project)
    db.session.flush()

    category = sg.normalize_category(data.get("category") or default_category(status))
    existing = title_service.find_entry(title, category)
    if existing is not None:
        unlinked = [m for m in title_service.group_members(existing) if m.project_id is None]
        title_service.link_project(unlinked, project.id)
    else:
        title_service.add_title(title, category, project_id=project.id, commit=False)

    commit_or_raise("project")
    logger.info("Project created (%s, %d processes)", project_type, len(processes),
                extra={"project_id": project.id, "title": title})
    return project


def update_project(project_id: str, data: dict) -> Project:
    """Update title, metadata and lifecycle status.

    A title change follows onto the linked launch rows; a move to or from
    ``completed`` re-categorises them.
    """
    project = get_project(project_id)

    if "title" in data:
        new_title = (data.get("title") or "").strip()
        if not new_title:
            raise ValidationError("title is required", details={"title": "required"})
        if new_title != project.title:
            title_service.rename_project_entries(project.id, project.title, new_title)
            project.title = new_title

    for field in _METADATA_FIELDS:
        if field in data:
            setattr(project, field, data[field])
    _choice(project.team, TEAMS, "team")
    _choice(project.identifier_type, IDENTIFIER_TYPES, "identifier_type")

    if "status" in data and data["status"] != project.status:
        new_status = _choice(data["status"], PROJECT_STATUSES, "status")
        project.status = new_status
        title_service.move_lifecycle(project.id, new_status, commit=False)

    project.touch()
    commit_or_raise("project")
    return project


def delete_project(project_id: str) -> None:
    """Delete the project, its launch rows and their stored statuses."""
    project = get_project(project_id)
    removed = title_service.delete_project_entries(project.id)
    db.session.delete(project)
    commit_or_raise("project delete")
    logger.info("Project deleted with %d launch rows", removed, extra={"project_id": project_id})


def project_detail(project: Project) -> dict:
    grid = StatusGrid.from_project(project)
    return {
        **project.to_dict(),
        "display_episodes": grid.display_episodes(),
        "completed_episodes": grid.completed_episodes(),
        "progress_percent": grid.progress_percent(),
        "process_progress": {
            str(pid): grid.process_completed_count(pid) for pid in grid.process_ids
        },
    }


# ── Grid edits ───────────────────────────────────────────────────────────────


def _run(project: Project, command) -> tuple[StatusGrid, Any]:
    grid = StatusGrid.from_project(project)

    def persist(g: StatusGrid) -> None:
        g.apply_to(project)
        project.touch()
        db.session.commit()

    result = run_optimistic(command, grid, persist)
    return grid, result


def _require_cell(grid: StatusGrid, process_id: int, episode: int) -> None:
    if grid.find_process(process_id) is None:
        raise ValidationError(f"Process {process_id} is not part of this project",
                              details={"process_id": process_id})
    if not grid.start_episode <= episode <= grid.end_episode:
        raise ValidationError(
            f"Episode {episode} is outside {grid.start_episode}..{grid.end_episode}",
            details={"episode": episode},
        )


def set_cell(project_id: str, process_id: int, episode: int, state: CellState,
             *, sync_tasks: bool = True) -> CellState:
    """Replace one cell. ``done``/``none`` results are pushed to today's daily tasks."""
    project = get_project(project_id)
    _require_cell(StatusGrid.from_project(project), process_id, episode)
    _grid, new_state = _run(project, SetCellCommand(process_id, episode, state))

    if sync_tasks and new_state.status in (cs.DONE, cs.NONE):
        from tracker.services.daily_task_bridge import on_grid_cell_changed
        on_grid_cell_changed(project.id, process_id, episode, new_state.status)
    return new_state


def set_cell_status(project_id: str, process_id: int, episode: int, status: str) -> CellState:
    cs.validate_status(status)
    current = get_cell(project_id, process_id, episode)
    return set_cell(project_id, process_id, episode, CellState(status=status, text=current.text))


def set_cell_text(project_id: str, process_id: int, episode: int, text: str | None) -> CellState:
    """Commit a text edit; the status is left as it is."""
    current = get_cell(project_id, process_id, episode)
    return set_cell(project_id, process_id, episode, cs.edit_text(current, text), sync_tasks=False)


def get_cell(project_id: str, process_id: int, episode: int) -> CellState:
    return StatusGrid.from_project(get_project(project_id)).get_cell(process_id, episode)


def toggle_cell(project_id: str, process_id: int, episode: int) -> CellState:
    return set_cell(project_id, process_id, episode,
                    cs.toggle(get_cell(project_id, process_id, episode)))


def cycle_cell(project_id: str, process_id: int, episode: int) -> CellState:
    return set_cell(project_id, process_id, episode,
                    cs.cycle(get_cell(project_id, process_id, episode)))


def set_episode_complete(project_id: str, episode: int, checked: bool) -> Project:
    project = get_project(project_id)
    grid = StatusGrid.from_project(project)
    if not grid.start_episode <= episode <= grid.end_episode:
        raise ValidationError(f"Episode {episode} is out of range", details={"episode": episode})
    _run(project, CallCommand("episode completion", StatusGrid.set_episode_complete, episode, checked))

    from tracker.services.daily_task_bridge import on_grid_cell_changed
    target = cs.DONE if checked else cs.NONE
    for pid in grid.process_ids:
        on_grid_cell_changed(project.id, pid, episode, target)
    return project


def is_episode_fully_complete(project_id: str, episode: int) -> bool:
    return StatusGrid.from_project(get_project(project_id)).is_episode_fully_complete(episode)


def add_episode(project_id: str) -> Project:
    project = get_project(project_id)
    _run(project, CallCommand("episode add", StatusGrid.add_episode))
    return project


def remove_last_episode(project_id: str) -> int:
    """Remove the highest episode and its cells. Rejected at one episode."""
    project = get_project(project_id)
    _grid, removed = _run(project, CallCommand("episode removal", StatusGrid.remove_last_episode))
    logger.info("Episode %d removed", removed, extra={"project_id": project_id})
    return removed


def hide_episodes(project_id: str, start: int, end: int) -> list[int]:
    project = get_project(project_id)
    _grid, hidden = _run(project, CallCommand("hidden episodes", StatusGrid.hide_episodes, start, end))
    return hidden


def show_all_episodes(project_id: str) -> Project:
    project = get_project(project_id)
    _run(project, CallCommand("hidden episodes", StatusGrid.show_all))
    return project


# ── Processes ────────────────────────────────────────────────────────────────


def add_process(project_id: str, name: str, assignee: str = "") -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("process name is required", details={"name": "required"})
    project = get_project(project_id)
    _grid, proc = _run(project, CallCommand("process add", StatusGrid.add_process, name, assignee))
    return proc


def _edit_process(grid: StatusGrid, process_id: int, **changes) -> dict:
    proc = grid.find_process(process_id)
    if proc is None:
        raise NotFoundError("Process", process_id)
    proc.update(changes)
    return dict(proc)


def rename_process(project_id: str, process_id: int, name: str) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("process name is required", details={"name": "required"})
    project = get_project(project_id)
    _grid, proc = _run(project, CallCommand("process rename", _edit_process, process_id, name=name))
    return proc


def assign_process(project_id: str, process_id: int, worker_id: str | None) -> dict:
    worker_id = worker_id or ""
    if worker_id and db.session.get(Worker, worker_id) is None:
        raise NotFoundError("Worker", worker_id)
    project = get_project(project_id)
    _grid, proc = _run(project, CallCommand("process assignee", _edit_process, process_id,
                                            assignee=worker_id))
    return proc


def remove_process(project_id: str, process_id: int) -> Project:
    """Drop a process and every cell it had."""
    project = get_project(project_id)
    if StatusGrid.from_project(project).find_process(process_id) is None:
        raise NotFoundError("Process", process_id)
    _run(project, CallCommand("process removal", StatusGrid.remove_process, process_id))
    return project


def change_adult_sub_type(project_id: str, sub_type: str) -> Project:
    """Switch an adult project to another template, keeping assignees by process id."""
    project = get_project(project_id)
    if project.type != "adult":
        raise ValidationError("Only adult projects have a sub type", details={"type": project.type})
    template = process_template("adult", sub_type)
    assignees = {int(p["id"]): p.get("assignee", "") for p in copy.deepcopy(project.processes or [])}
    for proc in template:
        proc["assignee"] = assignees.get(proc["id"], "")

    project.adult_sub_type = sub_type
    _run(project, CallCommand("sub type", StatusGrid.replace_processes, template))
    return project


def bulk_view(project_id: str) -> dict:
    project = get_project(project_id)
    grid = StatusGrid.from_project(project)
    return {"project_id": project.id, "title": project.title, "rows": grid.bulk_rows()}
