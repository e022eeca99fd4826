"""
Webtoon Studio Tracker
Model registry.

Tables are document-shaped: fields whose structure varies per record
(process lists, status grids, episode sets, schedules) live in JSON columns.

Usage:
    from tracker.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
