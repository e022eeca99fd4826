"""
Webtoon Studio Tracker
Jobs blueprint: scheduled job control and the legacy write-through queue.

Endpoints:
    GET  /api/v1/jobs
    GET  /api/v1/jobs/<name>
    POST /api/v1/jobs/<name>/run
    PUT  /api/v1/jobs/<name>/toggle
    GET  /api/v1/jobs/legacy-sync/tasks?state=
    GET  /api/v1/jobs/legacy-sync/stats
    POST /api/v1/jobs/legacy-sync/retry
"""

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body, register_error_handlers
from tracker.services import legacy_sync
from tracker.services.scheduler_service import SchedulerService

logger = logging.getLogger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/v1/jobs")
register_error_handlers(jobs_bp)


@jobs_bp.route("", methods=["GET"])
def list_jobs():
    return jsonify({"items": SchedulerService.list_jobs()})


@jobs_bp.route("/legacy-sync/tasks", methods=["GET"])
def legacy_tasks():
    tasks = legacy_sync.list_tasks(request.args.get("state"))
    return jsonify({"items": [t.to_dict() for t in tasks], "total": len(tasks)})


@jobs_bp.route("/legacy-sync/stats", methods=["GET"])
def legacy_stats():
    return jsonify(legacy_sync.queue_stats())


@jobs_bp.route("/legacy-sync/retry", methods=["POST"])
def legacy_retry():
    return jsonify({"requeued": legacy_sync.retry_failed()})


@jobs_bp.route("/<job_name>", methods=["GET"])
def job_status(job_name):
    status = SchedulerService.get_job_status(job_name)
    if status is None:
        return jsonify({"error": f"Job not found: {job_name}"}), 404
    return jsonify(status)


@jobs_bp.route("/<job_name>/run", methods=["POST"])
def run_job(job_name):
    result = SchedulerService.run_job(job_name)
    if result["status"] == "error":
        return jsonify(result), 404
    return jsonify(result)


@jobs_bp.route("/<job_name>/toggle", methods=["PUT"])
def toggle_job(job_name):
    data = json_body()
    if "enabled" not in data:
        return jsonify({"error": "enabled is required"}), 400
    status = SchedulerService.toggle_job(job_name, bool(data["enabled"]))
    if status is None:
        return jsonify({"error": f"Job not found: {job_name}"}), 404
    return jsonify(status)
