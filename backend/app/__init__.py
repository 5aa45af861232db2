"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - `flask db` / alembic to work without starting the full server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging (correlation ids on every record)
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Register the auth blueprint under /api/v1/auth
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register correlation-id middleware, CORS headers and CLI commands

Model imports inside create_app() populate SQLAlchemy's metadata before
Alembic or db.create_all() inspect it.
"""

from __future__ import annotations

from flask import Flask, jsonify, request
from marshmallow import ValidationError

from backend.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    from backend.app.logging_setup import configure_logging
    configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from backend.app.models import refresh_token, user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)

    from backend.app.middleware.correlation_id import register_correlation_id
    register_correlation_id(app)
    _register_cors(app)

    from backend.app.commands import register_commands
    register_commands(app)

    return app


def _register_blueprints(app: Flask) -> None:
    from backend.app.routes.auth import auth_bp

    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors as MISSING_FIELD /
                        INVALID_FIELD responses (400), first error only
      Exception       → generic INTERNAL_ERROR (500); traceback logged, never returned

    Every handler rolls the session back so a failed request leaves no
    half-flushed rows behind.
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        db.session.rollback()
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        db.session.rollback()

        messages = error.messages  # e.g. {"email": ["Not a valid email address."]}

        field = None
        raw_message = "Invalid input."
        code = ErrorCode.INVALID_FIELD

        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                field = field_name if field_name != "_schema" else None
                if isinstance(field_errors, list):
                    raw_message = field_errors[0] if field_errors else "Invalid value."
                else:
                    raw_message = str(field_errors)
                break
        elif isinstance(messages, list):
            raw_message = messages[0] if messages else "Invalid input."

        if str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD

        response_body = {
            "error": {
                "code": code,
                "message": raw_message,
            }
        }
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        # Let Werkzeug render 404/405 and friends with their own status.
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException):
            return error

        db.session.rollback()
        app.logger.exception("Unhandled exception: %s", error)
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for the single-page front end.

    The refresh token travels in a cookie, so credentials are allowed and the
    origin is never "*": CORS_ORIGIN in general, the caller's origin only under
    TESTING. DEBUG alone does not widen it; point CORS_ORIGIN at the dev server.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        reflect_any = bool(app.config.get("TESTING"))

        allowed = origin if (reflect_any and origin) else app.config.get("CORS_ORIGIN")
        if allowed:
            response.headers["Access-Control-Allow-Origin"] = allowed
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = (
                "Authorization, Content-Type, X-Correlation-ID"
            )
            response.headers["Access-Control-Expose-Headers"] = "X-Correlation-ID"

        return response
