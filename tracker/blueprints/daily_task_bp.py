"""
Webtoon Studio Tracker
Daily task blueprint: per-worker day lists.

Endpoints:
    GET    /api/v1/daily-tasks?date=&worker_id=
    GET    /api/v1/daily-tasks/overview?date=
    POST   /api/v1/daily-tasks/assigned        one task per selected episode
    POST   /api/v1/daily-tasks/custom
    PUT    /api/v1/daily-tasks/<id>
    POST   /api/v1/daily-tasks/<id>/toggle     also writes done/none into the grid
    DELETE /api/v1/daily-tasks/<id>
"""

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body, register_error_handlers, required_int
from tracker.services import daily_task_bridge as bridge

logger = logging.getLogger(__name__)

daily_task_bp = Blueprint("daily_tasks", __name__, url_prefix="/api/v1/daily-tasks")
register_error_handlers(daily_task_bp)


@daily_task_bp.route("", methods=["GET"])
def list_tasks():
    tasks = bridge.list_tasks(request.args.get("date"), request.args.get("worker_id"))
    return jsonify({"items": [t.to_dict() for t in tasks], "total": len(tasks)})


@daily_task_bp.route("/overview", methods=["GET"])
def overview():
    return jsonify({"items": bridge.worker_overview(request.args.get("date"))})


@daily_task_bp.route("/assigned", methods=["POST"])
def create_assigned():
    data = json_body()
    for field in ("worker_id", "project_id"):
        if not data.get(field):
            return jsonify({"error": f"{field} is required"}), 400
    process_id, err = required_int(data, "process_id")
    if err:
        return err
    episodes = data.get("episodes") or []
    if not isinstance(episodes, list):
        return jsonify({"error": "episodes must be a list"}), 400
    tasks = bridge.create_assigned_tasks(data["worker_id"], data["project_id"], process_id,
                                         episodes, data.get("date"))
    return jsonify({"items": [t.to_dict() for t in tasks]}), 201


@daily_task_bp.route("/custom", methods=["POST"])
def create_custom():
    data = json_body()
    if not data.get("worker_id"):
        return jsonify({"error": "worker_id is required"}), 400
    task = bridge.create_custom_task(data["worker_id"], data.get("task"), data.get("date"))
    return jsonify(task.to_dict()), 201


@daily_task_bp.route("/<task_id>", methods=["PUT"])
def update_task(task_id):
    return jsonify(bridge.update_task_text(task_id, json_body().get("task")).to_dict())


@daily_task_bp.route("/<task_id>/toggle", methods=["POST"])
def toggle_task(task_id):
    return jsonify(bridge.toggle_task(task_id).to_dict())


@daily_task_bp.route("/<task_id>", methods=["DELETE"])
def delete_task(task_id):
    bridge.delete_task(task_id)
    return "", 204
