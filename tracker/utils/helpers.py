"""Shared utility functions for services and blueprints.

parse_date:          lenient date parsing (returns None on bad input)
parse_date_input:    strict date parsing (raises ValidationError)
today_iso:           "today" in the studio timezone
commit_or_raise:     primary-write commit that maps failures to StorageError
"""
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tracker.core.exceptions import ConflictError, StorageError, ValidationError
from tracker.models import db

logger = logging.getLogger(__name__)

_DEFAULT_TZ = "Asia/Seoul"


def parse_date(value):
    """Parse a date string (ISO or YYYY.MM.DD) to a date object.

    Returns None for empty/invalid input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - YYYY.MM.DD (dotted format used on the delivery sheets)
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%Y.%m.%d").date()
    except (ValueError, TypeError):
        return None


def parse_date_input(value, field: str = "date"):
    """Parse a date string, raising ValidationError on bad input.

    Empty input returns None so callers can treat it as "clear the date".
    """
    if value in (None, ""):
        return None
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(
            "Invalid date format. Use YYYY-MM-DD or YYYY.MM.DD.",
            details={field: value},
        )
    return parsed


def studio_timezone() -> ZoneInfo:
    name = _DEFAULT_TZ
    if has_app_context():
        name = current_app.config.get("STUDIO_TIMEZONE", _DEFAULT_TZ)
    return ZoneInfo(name)


def today_iso() -> str:
    """Today's date as YYYY-MM-DD in the studio timezone."""
    return datetime.now(studio_timezone()).date().isoformat()


# ── Database commit helper ───────────────────────────────────────────────────

def commit_or_raise(action: str):
    """Commit the current session as the primary write of ``action``.

    IntegrityError → ConflictError (duplicate / constraint violation)
    Other SQLAlchemy errors → StorageError

    The session is rolled back before raising.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Integrity error on commit (%s): %s", action, exc.orig)
        raise ConflictError(resource=action, field="unique", value=None) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error on commit (%s)", action)
        raise StorageError(action, exc) from exc
