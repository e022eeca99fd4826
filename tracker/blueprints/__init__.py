"""
Webtoon Studio Tracker
Blueprint registry and shared request helpers.
"""

import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from tracker.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map the canonical service exceptions to JSON responses for ``bp``."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return jsonify({"error": str(error)}), 404

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return jsonify({"error": str(error), "details": error.details}), 422

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return jsonify({"error": str(error)}), 409

    @bp.errorhandler(StorageError)
    def _handle_storage(error: StorageError):
        return jsonify({"error": str(error)}), 503

    @bp.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in %s endpoint=%s", bp.name, request.endpoint)
        return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def required_int(data: dict, field: str):
    """Return ``(value, None)`` or ``(None, error_response)`` for a required int field."""
    value = data.get(field)
    try:
        return int(value), None
    except (TypeError, ValueError):
        return None, (jsonify({"error": f"{field} must be an integer"}), 400)
