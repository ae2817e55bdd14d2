"""
SalesFlow workflow service
Database models package.

Exports the shared ``db`` instance bound to the app in ``create_app``.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
