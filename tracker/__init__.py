"""
Webtoon Studio Tracker
Flask Application Factory.

Usage:
    from tracker import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_migrate import Migrate

from tracker.config import config
from tracker.middleware.logging_config import configure_logging
from tracker.middleware.timing import init_request_timing
from tracker.models import db

logger = logging.getLogger(__name__)

migrate = Migrate()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from tracker.models import daily_task as _daily_task_models      # noqa: F401
    from tracker.models import distribution as _distribution_models  # noqa: F401
    from tracker.models import project as _project_models            # noqa: F401
    from tracker.models import scheduling as _scheduling_models      # noqa: F401

    # ── Auto-create tables for SQLite dev databases ──────────────────────
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        if ":memory:" not in app.config["SQLALCHEMY_DATABASE_URI"]:
            os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from tracker.blueprints.daily_task_bp import daily_task_bp
    from tracker.blueprints.delivery_bp import delivery_bp
    from tracker.blueprints.distribution_bp import distribution_bp
    from tracker.blueprints.health_bp import health_bp
    from tracker.blueprints.jobs_bp import jobs_bp
    from tracker.blueprints.project_bp import project_bp
    from tracker.blueprints.worker_bp import worker_bp

    app.register_blueprint(project_bp)
    app.register_blueprint(worker_bp)
    app.register_blueprint(distribution_bp)
    app.register_blueprint(delivery_bp)
    app.register_blueprint(daily_task_bp)
    app.register_blueprint(jobs_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("run-job")
    @click.argument("job_name")
    def run_job_cmd(job_name):
        """Run one scheduled job now (e.g. legacy_status_sync)."""
        from tracker.services.scheduler_service import SchedulerService
        result = SchedulerService.run_job(job_name)
        logger.info("Job %s finished: %s", job_name, result["status"], extra={"job_name": job_name})
        click.echo(result)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    # ── Scheduler initialization (import jobs to register them) ──────────
    import importlib
    importlib.import_module("tracker.services.scheduled_jobs")  # registers @register_job handlers
    from tracker.services.scheduler_service import SchedulerService as _SchedulerSvc
    _SchedulerSvc.init_app(app)

    return app
