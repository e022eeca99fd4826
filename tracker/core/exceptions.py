"""
Tracker-wide exception hierarchy.

Services raise these canonical types; blueprints register handlers against
them once and get consistent HTTP status codes everywhere.

Usage:
    from tracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id="a1b2")
    raise ValidationError("episode_count cannot go below 1", details={"episode_count": 1})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "TitleEntry").
        resource_id: The key that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input fails business-rule validation in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint): the data was
    well-formed but violated a rule (episode floor, out-of-range hide, unknown
    status value). Always raised before any write.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate a unique value.

    Maps to HTTP 409.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class StorageError(Exception):
    """Raised when the primary write of a user action failed.

    The optimistic in-memory change has already been reverted when this is
    raised. Secondary writes (sync-group mirrors, legacy keys) never raise it.

    Maps to HTTP 503.
    """

    def __init__(self, action: str, cause: Exception | None = None) -> None:
        self.action = action
        self.cause = cause
        msg = f"Could not save {action}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
