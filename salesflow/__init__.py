"""
SalesFlow workflow service
Flask Application Factory.

Usage:
    from salesflow import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask

from salesflow.config import config
from salesflow.core.exceptions import (
    InvalidTransitionError,
    MalformedEventError,
    MissingLocationError,
    RecordNotFoundError,
    ValidationError,
)
from salesflow.middleware.logging_config import configure_logging
from salesflow.middleware.request_logging import init_request_logging
from salesflow.models import db
from salesflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def _register_error_handlers(app):
    """Map service exceptions to the standard JSON error body."""

    @app.errorhandler(MalformedEventError)
    def malformed_event(e):
        return api_error(E.MALFORMED_EVENT, str(e), details=e.details)

    @app.errorhandler(MissingLocationError)
    def missing_location(e):
        return api_error(E.LOCATION_REQUIRED, str(e), details=e.details)

    @app.errorhandler(ValidationError)
    def validation_failed(e):
        return api_error(E.VALIDATION_INVALID, str(e), details=e.details)

    @app.errorhandler(RecordNotFoundError)
    def record_not_found(e):
        return api_error(E.NOT_FOUND, str(e))

    @app.errorhandler(InvalidTransitionError)
    def invalid_transition(e):
        return api_error(E.CONFLICT_STATE, str(e), details={"current_status": e.current_status})

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": E.NOT_FOUND}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": E.INTERNAL}, 500


def create_app(config_name=None, messenger=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.
        messenger:   Optional Messenger override (tests); otherwise chosen
                     from MAYTAPI_* config.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Request IDs + access log ─────────────────────────────────────────
    init_request_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)

    from salesflow.models import message_log as _message_log_models  # noqa: F401
    from salesflow.models import table_store as _table_store_models  # noqa: F401

    # ── Services (immutable workflow config, built once) ─────────────────
    from salesflow.services import init_services
    init_services(app, messenger=messenger)

    if not app.config.get("TESTING"):
        db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
        if db_uri.startswith("sqlite:///") and ":memory:" not in db_uri:
            os.makedirs(app.instance_path, exist_ok=True)
        with app.app_context():
            try:
                db.create_all()
                app.logger.info("db.create_all() completed successfully")
            except Exception as e:
                app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from salesflow.blueprints.directory_bp import directory_bp
    from salesflow.blueprints.health_bp import health_bp
    from salesflow.blueprints.workflow_bp import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(directory_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("init-store")
    def init_store_cmd():
        """Create tables and the header rows of every workflow table."""
        from salesflow.services import get_services
        db.create_all()
        services = get_services()
        services.directory.ensure_schema()
        services.resolver.ensure_schema()
        for definition in services.config.workflows.values():
            services.engine.ensure_schema(definition)
        logger.info("Initialised %d workflow tables.", len(services.config.workflows))

    @app.cli.command("backfill-locations")
    def backfill_locations_cmd():
        """Fill blank employee hierarchy fields from the Location Map."""
        from salesflow.services import get_services
        count = get_services().directory.backfill_locations()
        logger.info("Backfilled locations for %s employee(s).", count)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "SalesFlow"}

    return app
