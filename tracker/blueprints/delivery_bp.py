"""
Webtoon Studio Tracker
Delivery blueprint: per-weekday delivery view of live titles.

Endpoints:
    GET    /api/v1/delivery?weekday=monday
    PUT    /api/v1/delivery/records/<title>/<pid>/<ep>           delivered flag (+ date)
    POST   /api/v1/delivery/records/<title>/<pid>/<ep>/toggle
    PUT    /api/v1/delivery/records/<title>/<pid>/<ep>/schedule  platform date
    PUT    /api/v1/delivery/schedules/<title>/<ep>               common open / due date
    DELETE /api/v1/delivery/records/<title>[?platform_id=]       admin prune
"""

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body, register_error_handlers
from tracker.services import delivery_service as dsv

logger = logging.getLogger(__name__)

delivery_bp = Blueprint("delivery", __name__, url_prefix="/api/v1/delivery")
register_error_handlers(delivery_bp)


@delivery_bp.route("", methods=["GET"])
def delivery_view():
    rows = dsv.build_delivery_view(request.args.get("weekday"))
    return jsonify({"items": rows, "total": len(rows)})


@delivery_bp.route("/records/<title>/<platform_id>/<int:episode>", methods=["PUT"])
def set_delivered(title, platform_id, episode):
    data = json_body()
    if "delivered" not in data:
        return jsonify({"error": "delivered is required"}), 400
    record = dsv.set_delivered(title, platform_id, episode, bool(data["delivered"]), data.get("date"))
    return jsonify(record.to_dict())


@delivery_bp.route("/records/<title>/<platform_id>/<int:episode>/toggle", methods=["POST"])
def toggle_delivered(title, platform_id, episode):
    return jsonify(dsv.toggle_delivered(title, platform_id, episode).to_dict())


@delivery_bp.route("/records/<title>/<platform_id>/<int:episode>/schedule", methods=["PUT"])
def set_platform_date(title, platform_id, episode):
    record = dsv.set_platform_date(title, platform_id, episode, json_body().get("date"))
    return jsonify(record.to_dict())


@delivery_bp.route("/schedules/<title>/<int:episode>", methods=["PUT"])
def set_common_schedule(title, episode):
    data = json_body()
    if not data.get("kind"):
        return jsonify({"error": "kind is required"}), 400
    schedule = dsv.set_common_schedule(title, episode, data["kind"], data.get("date"))
    return jsonify(schedule.to_dict())


@delivery_bp.route("/records/<title>", methods=["DELETE"])
def prune(title):
    removed = dsv.prune_delivery(title, request.args.get("platform_id"))
    return jsonify({"title": title, "records_removed": removed})
