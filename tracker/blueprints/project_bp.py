"""
Webtoon Studio Tracker
Project blueprint: projects, process lists and the status grid.

Endpoints summary:
    PROJECT  /api/v1/projects                                   GET, POST
             /api/v1/projects/<id>                              GET, PUT, DELETE
             /api/v1/projects/templates                         GET

    GRID     /api/v1/projects/<id>/cells/<pid>/<ep>             GET, PUT
             /api/v1/projects/<id>/cells/<pid>/<ep>/toggle      POST   (left click)
             /api/v1/projects/<id>/cells/<pid>/<ep>/cycle       POST   (right click)
             /api/v1/projects/<id>/cells/<pid>/<ep>/text        PUT
             /api/v1/projects/<id>/episodes/<ep>/complete       PUT
             /api/v1/projects/<id>/episodes                     POST, DELETE (add / remove last)
             /api/v1/projects/<id>/hidden-episodes              POST, DELETE (hide range / show all)
             /api/v1/projects/<id>/bulk                         GET

    PROCESS  /api/v1/projects/<id>/processes                    POST
             /api/v1/projects/<id>/processes/<pid>              PUT, DELETE
             /api/v1/projects/<id>/sub-type                     PUT

Service layer owns all business logic and commits.
"""

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body, register_error_handlers, required_int
from tracker.services import project_service as ps
from tracker.services.cell_state import CellState, validate_status

logger = logging.getLogger(__name__)

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1/projects")
register_error_handlers(project_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT CRUD
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("", methods=["GET"])
def list_projects():
    projects = ps.list_projects(status=request.args.get("status"), team=request.args.get("team"))
    return jsonify({"items": [ps.project_detail(p) for p in projects], "total": len(projects)})


@project_bp.route("", methods=["POST"])
def create_project():
    data = json_body()
    if not (data.get("title") or "").strip():
        return jsonify({"error": "title is required"}), 400
    project = ps.create_project(data)
    return jsonify(ps.project_detail(project)), 201


@project_bp.route("/templates", methods=["GET"])
def templates():
    return jsonify({
        "general": ps.process_template("general"),
        "adult/internal-ai": ps.process_template("adult", "internal-ai"),
        "adult/cope-inter": ps.process_template("adult", "cope-inter"),
    })


@project_bp.route("/<project_id>", methods=["GET"])
def get_project(project_id):
    return jsonify(ps.project_detail(ps.get_project(project_id)))


@project_bp.route("/<project_id>", methods=["PUT"])
def update_project(project_id):
    project = ps.update_project(project_id, json_body())
    return jsonify(ps.project_detail(project))


@project_bp.route("/<project_id>", methods=["DELETE"])
def delete_project(project_id):
    ps.delete_project(project_id)
    return "", 204


# ═══════════════════════════════════════════════════════════════════════════
#  STATUS GRID
# ═══════════════════════════════════════════════════════════════════════════

def _cell_response(project_id, process_id, episode, state: CellState):
    return jsonify({
        "project_id": project_id,
        "process_id": process_id,
        "episode": episode,
        **state.to_dict(),
        "episode_complete": ps.is_episode_fully_complete(project_id, episode),
    })


@project_bp.route("/<project_id>/cells/<int:process_id>/<int:episode>", methods=["GET"])
def get_cell(project_id, process_id, episode):
    state = ps.get_cell(project_id, process_id, episode)
    return _cell_response(project_id, process_id, episode, state)


@project_bp.route("/<project_id>/cells/<int:process_id>/<int:episode>", methods=["PUT"])
def set_cell(project_id, process_id, episode):
    data = json_body()
    if "status" not in data:
        return jsonify({"error": "status is required"}), 400
    status = validate_status(data["status"])
    if "text" in data:
        state = ps.set_cell(project_id, process_id, episode,
                            CellState(status=status, text=(data.get("text") or "").strip()))
    else:
        state = ps.set_cell_status(project_id, process_id, episode, status)
    return _cell_response(project_id, process_id, episode, state)


@project_bp.route("/<project_id>/cells/<int:process_id>/<int:episode>/toggle", methods=["POST"])
def toggle_cell(project_id, process_id, episode):
    state = ps.toggle_cell(project_id, process_id, episode)
    return _cell_response(project_id, process_id, episode, state)


@project_bp.route("/<project_id>/cells/<int:process_id>/<int:episode>/cycle", methods=["POST"])
def cycle_cell(project_id, process_id, episode):
    state = ps.cycle_cell(project_id, process_id, episode)
    return _cell_response(project_id, process_id, episode, state)


@project_bp.route("/<project_id>/cells/<int:process_id>/<int:episode>/text", methods=["PUT"])
def set_cell_text(project_id, process_id, episode):
    data = json_body()
    state = ps.set_cell_text(project_id, process_id, episode, data.get("text"))
    return _cell_response(project_id, process_id, episode, state)


@project_bp.route("/<project_id>/episodes/<int:episode>/complete", methods=["PUT"])
def set_episode_complete(project_id, episode):
    data = json_body()
    if "checked" not in data:
        return jsonify({"error": "checked is required"}), 400
    project = ps.set_episode_complete(project_id, episode, bool(data["checked"]))
    return jsonify(ps.project_detail(project))


@project_bp.route("/<project_id>/episodes", methods=["POST"])
def add_episode(project_id):
    project = ps.add_episode(project_id)
    return jsonify(ps.project_detail(project)), 201


@project_bp.route("/<project_id>/episodes", methods=["DELETE"])
def remove_last_episode(project_id):
    removed = ps.remove_last_episode(project_id)
    return jsonify({"removed_episode": removed, **ps.project_detail(ps.get_project(project_id))})


@project_bp.route("/<project_id>/hidden-episodes", methods=["POST"])
def hide_episodes(project_id):
    data = json_body()
    start, err = required_int(data, "start")
    if err:
        return err
    end, err = required_int(data, "end")
    if err:
        return err
    hidden = ps.hide_episodes(project_id, start, end)
    return jsonify({"hidden_episodes": hidden})


@project_bp.route("/<project_id>/hidden-episodes", methods=["DELETE"])
def show_all_episodes(project_id):
    project = ps.show_all_episodes(project_id)
    return jsonify(ps.project_detail(project))


@project_bp.route("/<project_id>/bulk", methods=["GET"])
def bulk_view(project_id):
    return jsonify(ps.bulk_view(project_id))


# ═══════════════════════════════════════════════════════════════════════════
#  PROCESSES
# ═══════════════════════════════════════════════════════════════════════════

@project_bp.route("/<project_id>/processes", methods=["POST"])
def add_process(project_id):
    data = json_body()
    if not (data.get("name") or "").strip():
        return jsonify({"error": "name is required"}), 400
    proc = ps.add_process(project_id, data["name"], data.get("assignee", ""))
    return jsonify(proc), 201


@project_bp.route("/<project_id>/processes/<int:process_id>", methods=["PUT"])
def update_process(project_id, process_id):
    data = json_body()
    proc = None
    if "name" in data:
        proc = ps.rename_process(project_id, process_id, data["name"])
    if "assignee" in data:
        proc = ps.assign_process(project_id, process_id, data["assignee"])
    if proc is None:
        return jsonify({"error": "name or assignee is required"}), 400
    return jsonify(proc)


@project_bp.route("/<project_id>/processes/<int:process_id>", methods=["DELETE"])
def remove_process(project_id, process_id):
    project = ps.remove_process(project_id, process_id)
    return jsonify(ps.project_detail(project))


@project_bp.route("/<project_id>/sub-type", methods=["PUT"])
def change_sub_type(project_id):
    data = json_body()
    if not data.get("adult_sub_type"):
        return jsonify({"error": "adult_sub_type is required"}), 400
    project = ps.change_adult_sub_type(project_id, data["adult_sub_type"])
    return jsonify(ps.project_detail(project))
