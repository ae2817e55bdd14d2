"""
WSGI / Flask CLI entry point.

Usage:
    flask --app wsgi init-store          # create tables + workflow headers
    flask --app wsgi backfill-locations  # fill employee hierarchy fields
    gunicorn wsgi:app
"""

from salesflow import create_app

app = create_app()
