"""
Shared pytest fixtures for the Webtoon Studio Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - project / single_process_project: projects created through the service
    - worker: a registered worker
"""

import pytest

from tracker import create_app
from tracker.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        # The platform catalog is cached per app and editable at runtime
        app.extensions.pop("platform_catalog", None)
        yield
        app.extensions.pop("platform_catalog", None)
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project():
    """A general project (5 processes, episodes 1..10) in domestic-live."""
    from tracker.services import project_service
    return project_service.create_project({"title": "감금연휴", "status": "live"})


@pytest.fixture()
def single_process_project():
    """A project whose process list has been cut down to one process."""
    from tracker.services import project_service
    proj = project_service.create_project({"title": "한 공정 작품", "status": "production"})
    for pid in (2, 3, 4, 5):
        project_service.remove_process(proj.id, pid)
    return project_service.get_project(proj.id)


@pytest.fixture()
def worker():
    from tracker.services import worker_service
    return worker_service.create_worker("김작가", "0팀")
