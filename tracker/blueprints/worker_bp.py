"""
Webtoon Studio Tracker
Worker blueprint.

Endpoints:
    /api/v1/workers                        GET, POST
    /api/v1/workers/<id>                   PUT, DELETE
    /api/v1/workers/<id>/assignments       GET
"""

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body, register_error_handlers
from tracker.services import worker_service as ws

logger = logging.getLogger(__name__)

worker_bp = Blueprint("workers", __name__, url_prefix="/api/v1/workers")
register_error_handlers(worker_bp)


@worker_bp.route("", methods=["GET"])
def list_workers():
    workers = ws.list_workers(team=request.args.get("team"))
    return jsonify({"items": [w.to_dict() for w in workers], "total": len(workers)})


@worker_bp.route("", methods=["POST"])
def create_worker():
    data = json_body()
    if not (data.get("name") or "").strip():
        return jsonify({"error": "name is required"}), 400
    worker = ws.create_worker(data["name"], data.get("team") or "공통")
    return jsonify(worker.to_dict()), 201


@worker_bp.route("/<worker_id>", methods=["PUT"])
def update_worker(worker_id):
    worker = ws.update_worker(worker_id, json_body())
    return jsonify(worker.to_dict())


@worker_bp.route("/<worker_id>", methods=["DELETE"])
def delete_worker(worker_id):
    changed = ws.delete_worker(worker_id)
    return jsonify({"deleted": worker_id, "projects_unassigned": changed})


@worker_bp.route("/<worker_id>/assignments", methods=["GET"])
def assignments(worker_id):
    return jsonify({"items": ws.assignments(worker_id)})
