"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi run-job legacy_status_sync
    gunicorn wsgi:app
"""

from tracker import create_app

app = create_app()
