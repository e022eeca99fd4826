"""
Webtoon Studio Tracker
Distribution blueprint: title entries per launch category and their
per-platform launch statuses.

Endpoints summary:
    ENTRIES   /api/v1/distribution/entries                         GET, POST
              /api/v1/distribution/entries/<id>                    GET, PUT, DELETE
              /api/v1/distribution/entries/<id>/rename             PUT
              /api/v1/distribution/delivery-day                    PUT

    STATUSES  /api/v1/distribution/entries/<id>/statuses/<pid>     PUT
              /api/v1/distribution/entries/<id>/statuses/<pid>/click   POST  (left click)
              /api/v1/distribution/entries/<id>/statuses/<pid>/cycle   POST  (right click)
              /api/v1/distribution/entries/<id>/notes/<pid>        PUT
              /api/v1/distribution/entries/<id>/reconcile          POST  (screen snapshot)

    VIEWS     /api/v1/distribution/categories/<cat>                GET
              /api/v1/distribution/categories/<cat>/stats/<pid>    GET
              /api/v1/distribution/categories                      GET

    CATALOG   /api/v1/distribution/platforms                       GET, POST
              /api/v1/distribution/platforms/<pid>                 PUT, DELETE
"""

import logging

from flask import Blueprint, jsonify, request

from tracker.blueprints import json_body, register_error_handlers
from tracker.services import distribution_service as ds
from tracker.services import sync_groups as sg
from tracker.services import title_service as ts
from tracker.services.platform_catalog import get_catalog

logger = logging.getLogger(__name__)

distribution_bp = Blueprint("distribution", __name__, url_prefix="/api/v1/distribution")
register_error_handlers(distribution_bp)


# ═══════════════════════════════════════════════════════════════════════════
#  TITLE ENTRIES
# ═══════════════════════════════════════════════════════════════════════════

@distribution_bp.route("/entries", methods=["GET"])
def list_entries():
    entries = ts.list_entries(category=request.args.get("category"),
                              status=request.args.get("status"))
    return jsonify({"items": [e.to_dict() for e in entries], "total": len(entries)})


@distribution_bp.route("/entries", methods=["POST"])
def add_title():
    data = json_body()
    for field in ("title", "category"):
        if not (data.get(field) or "").strip():
            return jsonify({"error": f"{field} is required"}), 400
    entries = ts.add_title(
        data["title"],
        data["category"],
        project_id=data.get("project_id"),
        delivery_day=data.get("delivery_day"),
        total_episodes=data.get("total_episodes"),
    )
    return jsonify({"items": [e.to_dict() for e in entries]}), 201


@distribution_bp.route("/entries/<entry_id>", methods=["GET"])
def get_entry(entry_id):
    return jsonify(ds.entry_row(ts.get_entry(entry_id)))


@distribution_bp.route("/entries/<entry_id>", methods=["PUT"])
def update_entry(entry_id):
    entry = ts.update_entry(entry_id, json_body())
    return jsonify(entry.to_dict())


@distribution_bp.route("/entries/<entry_id>", methods=["DELETE"])
def delete_entry(entry_id):
    removed = ts.delete_title(entry_id)
    return jsonify({"deleted": entry_id, "entries_removed": removed})


@distribution_bp.route("/entries/<entry_id>/rename", methods=["PUT"])
def rename_entry(entry_id):
    data = json_body()
    if not (data.get("title") or "").strip():
        return jsonify({"error": "title is required"}), 400
    renamed = ts.rename_title(entry_id, data["title"])
    return jsonify({"items": [e.to_dict() for e in renamed]})


@distribution_bp.route("/delivery-day", methods=["PUT"])
def set_delivery_day():
    data = json_body()
    if not (data.get("title") or "").strip():
        return jsonify({"error": "title is required"}), 400
    entries = ts.set_delivery_day(data["title"], data.get("delivery_day"))
    return jsonify({"items": [e.to_dict() for e in entries]})


# ═══════════════════════════════════════════════════════════════════════════
#  LAUNCH STATUSES
# ═══════════════════════════════════════════════════════════════════════════

@distribution_bp.route("/entries/<entry_id>/statuses/<platform_id>", methods=["PUT"])
def set_status(entry_id, platform_id):
    data = json_body()
    if not data.get("status"):
        return jsonify({"error": "status is required"}), 400
    return jsonify(ds.set_status(entry_id, platform_id, data["status"]))


@distribution_bp.route("/entries/<entry_id>/statuses/<platform_id>/click", methods=["POST"])
def click_status(entry_id, platform_id):
    return jsonify(ds.click_launch(entry_id, platform_id))


@distribution_bp.route("/entries/<entry_id>/statuses/<platform_id>/cycle", methods=["POST"])
def cycle_status(entry_id, platform_id):
    return jsonify(ds.cycle_submission(entry_id, platform_id))


@distribution_bp.route("/entries/<entry_id>/notes/<platform_id>", methods=["PUT"])
def set_note(entry_id, platform_id):
    return jsonify(ds.set_note(entry_id, platform_id, json_body().get("note")))


@distribution_bp.route("/entries/<entry_id>/reconcile", methods=["POST"])
def reconcile_entry(entry_id):
    """Reconcile a client-side sheet snapshot against the stored rows."""
    data = json_body()
    screen = data.get("screen")
    if screen is not None and not isinstance(screen, dict):
        return jsonify({"error": "screen must be an object of platform_id -> status"}), 400
    statuses = ds.reconciled_statuses(entry_id, screen)
    return jsonify({"entry_id": entry_id, "statuses": statuses})


# ═══════════════════════════════════════════════════════════════════════════
#  CATEGORY VIEWS
# ═══════════════════════════════════════════════════════════════════════════

@distribution_bp.route("/categories", methods=["GET"])
def list_categories():
    return jsonify({
        "items": [
            {
                "category": category,
                "label": sg.CATEGORY_LABELS.get(category, category),
                "region": sg.region_of(category),
                "lifecycle": sg.lifecycle_of(category),
                "sync_group": sorted(sg.resolve_sync_group(category)),
            }
            for category in sg.CATEGORIES
        ]
    })


@distribution_bp.route("/categories/<category>", methods=["GET"])
def category_overview(category):
    platform_ids = [p for p in (request.args.get("platforms") or "").split(",") if p]
    overview = ds.category_overview(
        category,
        sort_by=request.args.get("sort_by", "title"),
        order=request.args.get("order", "asc"),
        search=request.args.get("search"),
        platform_ids=platform_ids or None,
    )
    return jsonify(overview)


@distribution_bp.route("/categories/<category>/stats/<platform_id>", methods=["GET"])
def platform_stats(category, platform_id):
    return jsonify(ds.platform_stats(category, platform_id))


# ═══════════════════════════════════════════════════════════════════════════
#  PLATFORM CATALOG
# ═══════════════════════════════════════════════════════════════════════════

@distribution_bp.route("/platforms", methods=["GET"])
def list_platforms():
    catalog = get_catalog()
    return jsonify({
        region: [p.to_dict() for p in catalog.platforms_for_region(region)]
        for region in sg.REGIONS
    })


@distribution_bp.route("/platforms", methods=["POST"])
def add_platform():
    data = json_body()
    platform = get_catalog().add_platform(data.get("region"), data.get("id"), data.get("name"))
    return jsonify(platform.to_dict()), 201


@distribution_bp.route("/platforms/<platform_id>", methods=["PUT"])
def rename_platform(platform_id):
    data = json_body()
    if not (data.get("name") or "").strip():
        return jsonify({"error": "name is required"}), 400
    return jsonify(get_catalog().rename_platform(platform_id, data["name"]).to_dict())


@distribution_bp.route("/platforms/<platform_id>", methods=["DELETE"])
def remove_platform(platform_id):
    get_catalog().remove_platform(platform_id)
    return "", 204
