"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic and the `flask` CLI to load the app without serving it

Responsibilities:
  1. Load configuration via backend.config.resolve_config(config_name)
  2. Configure logging from LOG_LEVEL
  3. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register the `flask reconcile-balances` maintenance command
  7. Register a custom JSON provider to serialise Decimal as string
     (monetary amounts are transmitted as strings, never JS numbers)

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic inspects it. They are not used
  directly here — the import side-effect is sufficient.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

import click
from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from marshmallow import ValidationError
from sqlalchemy.exc import DataError, IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from backend.config import ProductionConfig, resolve_config, validate_production_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal.
# All monetary amounts are serialised as strings to preserve precision.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Registered on the Flask app so that jsonify() and flask.json.dumps()
    automatically produce string amounts.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via resolve_config() in config.py; when
                     omitted, $APP_ENV decides (development if unset).
        overrides:   Settings applied on top of the config class, before the
                     extensions are initialised (e.g. a test database URI).

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = resolve_config(config_name)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    if config_class is ProductionConfig:
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.app.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    # Alembic needs to see these to auto-generate migrations.
    with app.app_context():
        from backend.app.models import (  # noqa: F401
            currency_rate,
            expense_category,
            expense_record,
            income_record,
            profile,
            refresh_token,
            savings_goal,
            savings_transaction,
            user,
        )

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)
    _register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Applies LOG_LEVEL to the app logger and to every `backend.*` module
    logger. A root handler is installed only when none exists yet, so a host
    (gunicorn, pytest) that already configured logging keeps its own.
    """
    level = app.config.get("LOG_LEVEL", "INFO")
    if not logging.getLogger().handlers:
        logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger("backend").setLevel(level)
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Blueprint names match the route files in app/routes/.
    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "" and "/<int:id>").
    """
    from backend.app.routes.auth import auth_bp
    from backend.app.routes.expenses import expenses_bp
    from backend.app.routes.incomes import incomes_bp
    from backend.app.routes.profiles import profiles_bp
    from backend.app.routes.reference import reference_bp
    from backend.app.routes.savings import savings_bp
    from backend.app.routes.summary import summary_bp

    app.register_blueprint(auth_bp,      url_prefix="/api/v1/auth")
    app.register_blueprint(profiles_bp,  url_prefix="/api/v1/profiles")
    app.register_blueprint(incomes_bp,   url_prefix="/api/v1/incomes")
    app.register_blueprint(expenses_bp,  url_prefix="/api/v1/expenses")
    # reference_bp owns both /categories and /currency-rates.
    app.register_blueprint(reference_bp, url_prefix="/api/v1")
    app.register_blueprint(savings_bp,   url_prefix="/api/v1/savings-goals")
    app.register_blueprint(summary_bp,   url_prefix="/api/v1/summary")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Every handler rolls the session back first: a request that failed leaves
    nothing behind, whatever it had flushed.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD / <specific code> responses (400)
      IntegrityError  → CONSTRAINT_VIOLATION (409), the database having
                        rejected a write the services let through
      DataError       → CONSTRAINT_VIOLATION (422), a value too large for its column
      OperationalError → CONCURRENT_UPDATE (409) on a deadlock or serialization
                        failure; any other OperationalError is a 500
      HTTPException   → routing errors (unknown URL, wrong method) as JSON
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server. The traceback is written to the
    app logger only.
    """
    from backend.app.errors import AppError, ErrorCode
    from backend.app.extensions import db

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        db.session.rollback()
        if error.http_status >= 500:
            app.logger.error("%r", error)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Reports the first schema error only, as a 400.

        Schemas use ErrorCode constants as messages where a specific code
        exists (INVALID_QUARTER, FIELD_NOT_WRITABLE, ...); those become the
        code. A required field that is absent is MISSING_FIELD, anything
        else INVALID_FIELD.
        """
        db.session.rollback()

        field, message = _first_validation_message(error.messages)

        if message in _known_codes(ErrorCode):
            code, message = message, _code_to_message(message)
        elif message.startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
        else:
            code = ErrorCode.INVALID_FIELD

        body = {"code": code, "message": message}
        if field is not None:
            body["field"] = field
        return jsonify({"error": body}), 400

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        """
        A NOT NULL, CHECK, UNIQUE, or FK constraint fired. Services check the
        expected conflicts first with specific codes; reaching this handler
        means a constraint was hit that no service anticipated.
        """
        db.session.rollback()
        app.logger.warning("Constraint violation: %s", error.orig)
        return jsonify({
            "error": {
                "code": ErrorCode.CONSTRAINT_VIOLATION,
                "message": "The request conflicts with an existing record or a data constraint.",
            }
        }), 409

    @app.errorhandler(DataError)
    def handle_data_error(error: DataError):
        """
        The database refused a value its column cannot hold (numeric field
        overflow, string too long). Schemas bound amounts already; this catches
        whatever they missed.
        """
        db.session.rollback()
        app.logger.warning("Value rejected by the database: %s", error.orig)
        return jsonify({
            "error": {
                "code": ErrorCode.CONSTRAINT_VIOLATION,
                "message": "A value is out of range for the field it was written to.",
            }
        }), 422

    @app.errorhandler(OperationalError)
    def handle_operational_error(error: OperationalError):
        """
        PostgreSQL aborts one side of a deadlock (40P01) or a serialization
        failure (40001). Nothing was written, so the client may retry: 409
        CONCURRENT_UPDATE. Any other operational error is a 500.
        """
        db.session.rollback()
        if not is_lock_conflict(error):
            return internal_error(error)

        app.logger.warning("Unit of work aborted by the database: %s", error.orig)
        return jsonify({
            "error": {
                "code": ErrorCode.CONCURRENT_UPDATE,
                "message": "The record was changed by a concurrent request. Please retry.",
            }
        }), 409

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger (stderr in
        production). Stack traces NEVER leave the server in the response body.
        """
        db.session.rollback()

        if isinstance(error, HTTPException):
            return jsonify({
                "error": {
                    "code": ErrorCode.HTTP_ERROR,
                    "message": error.description,
                }
            }), error.code

        return internal_error(error)

    def internal_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    By default this is enabled when DEBUG or TESTING is true so a frontend
    served from another local port (for example :8000) can call the API on
    :5000 with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            # Reflect origin when present so bearer-auth requests from local
            # dev servers are accepted by browsers.
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _register_commands(app: Flask) -> None:
    """
    Maintenance commands for the `flask` CLI, e.g.
      flask --app backend.wsgi reconcile-balances
    """

    @app.cli.command("reconcile-balances")
    def reconcile_balances_command():
        """Recompute every savings goal balance from its transactions."""
        from backend.app.extensions import db
        from backend.app.services import savings_service

        corrections = savings_service.reconcile_goal_balances(db.session)
        db.session.commit()

        for c in corrections:
            click.echo(f"goal {c['goal_id']}: {c['stored']} -> {c['expected']}")
        click.echo(f"{len(corrections)} goal balance(s) corrected.")


def _first_validation_message(messages) -> tuple[str | None, str]:
    """
    (field, message) of the first error in a marshmallow messages structure,
    e.g. {"amount": ["INVALID_AMOUNT_PRECISION"]} → ("amount", "INVALID_AMOUNT_PRECISION").
    Schema-level errors (_schema) carry no field. Nested fields report the
    outer field name.
    """
    field = None
    while isinstance(messages, dict) and messages:
        key, messages = next(iter(messages.items()))
        if field is None and key != "_schema":
            field = key
    if isinstance(messages, list) and messages:
        messages = messages[0]
    if not messages or isinstance(messages, (dict, list)):
        return field, "Invalid input."
    return field, str(messages)


# deadlock_detected, serialization_failure
LOCK_CONFLICT_SQLSTATES = frozenset({"40P01", "40001"})


def is_lock_conflict(error: OperationalError) -> bool:
    """True when the database aborted the transaction to break a lock conflict."""
    return getattr(error.orig, "pgcode", None) in LOCK_CONFLICT_SQLSTATES


def _known_codes(error_codes) -> set:
    return {v for k, v in vars(error_codes).items() if not k.startswith("_")}


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself
    (e.g. INVALID_AMOUNT_PRECISION raised as ValidationError in schemas).
    """
    _messages = {
        "INVALID_AMOUNT_PRECISION": "Amount must have at most 2 decimal places.",
        "AMOUNT_OUT_OF_RANGE": "Amount must not exceed 9999999999999.99.",
        "INVALID_QUARTER": "quarter must be one of Q1, Q2, Q3, Q4.",
        "INVALID_CURRENCY": "currency must be one of USD, GHS.",
        "INVALID_GOAL_TYPE": "goal_type must be one of vacation, car_service, tech_stocks, emergency, other.",
        "INVALID_TRANSACTION_TYPE": "transaction_type must be 'deposit' or 'withdrawal'.",
        "INVALID_ROLE": "role must be 'admin' or 'user'.",
        "FIELD_NOT_WRITABLE": "This field is derived by the server and cannot be set.",
    }
    return _messages.get(code, "Invalid input.")
