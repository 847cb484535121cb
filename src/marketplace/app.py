import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import click
from flask import Flask, g, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from marketplace import db
from marketplace.core.config import Config
from marketplace.core.exceptions import BaseAPIException, DatabaseError, InternalServerError, RateLimitError
from marketplace.routes import (
    analytics_bp,
    auth_bp,
    cart_bp,
    orders_bp,
    products_bp,
    shops_bp,
    users_bp,
)
from marketplace.services.notification_service import Mailer, build_mailer
from marketplace.services.outbox_dispatcher import OutboxDispatcher

logger = logging.getLogger(__name__)


def _error_body(payload: dict) -> dict:
    payload["timestamp"] = datetime.now(timezone.utc).isoformat()
    return payload


def create_app(overrides: Optional[Mapping[str, Any]] = None, mailer: Optional[Mailer] = None) -> Flask:
    """
    Application factory.

    ``overrides`` replaces environment settings (see Config) and ``mailer``
    replaces the backend chosen by MAIL_BACKEND; tests pass both.
    """
    config = Config(overrides)
    config.validate()

    logging.basicConfig(
        level=getattr(logging, config.app.log_level.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    )

    db.init_engine(config.database)
    db.create_all()

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["marketplace"] = {
        "config": config,
        "dispatcher": OutboxDispatcher(mailer or build_mailer(config.mail), config.outbox),
    }

    limiter = Limiter(
        get_remote_address,
        app=app,
        application_limits=[config.api.rate_limit],
        storage_uri=config.api.rate_limit_storage_uri,
        enabled=config.api.rate_limit_enabled,
    )

    # ------------------------------------------------------------------ #
    # Blueprints, each domain registered under /api/                      #
    # ------------------------------------------------------------------ #
    app.register_blueprint(auth_bp,      url_prefix="/api/auth")
    app.register_blueprint(users_bp,     url_prefix="/api/users")
    app.register_blueprint(shops_bp,     url_prefix="/api/shops")
    app.register_blueprint(products_bp,  url_prefix="/api/products")
    app.register_blueprint(cart_bp,      url_prefix="/api/cart")
    app.register_blueprint(orders_bp,    url_prefix="/api/orders")
    app.register_blueprint(analytics_bp, url_prefix="/api/analytics")

    @app.before_request
    def assign_request_id():
        g.request_id = uuid.uuid4().hex[:12]

    # ------------------------------------------------------------------ #
    # Error handlers, consistent JSON error envelope                      #
    # ------------------------------------------------------------------ #
    @app.errorhandler(BaseAPIException)
    def api_error(e: BaseAPIException):
        if e.status_code >= 500:
            logger.error(f"[{g.get('request_id')}] {e.error_code}: {e.internal_message}")
        else:
            logger.warning(f"[{g.get('request_id')}] {e.status_code} {e.error_code}: {e.message}")
        return jsonify(_error_body(e.to_dict())), e.status_code

    @app.errorhandler(400)
    @app.errorhandler(401)
    @app.errorhandler(403)
    @app.errorhandler(404)
    @app.errorhandler(405)
    @app.errorhandler(409)
    def http_error(e: HTTPException):
        code = (e.name or "error").upper().replace(" ", "_")
        body = {"success": False, "error": {"code": code, "message": str(e.description), "details": {}}}
        return jsonify(_error_body(body)), e.code

    @app.errorhandler(429)
    def rate_limited(e: HTTPException):
        logger.warning(f"[{g.get('request_id')}] rate limit hit by {get_remote_address()}: {e.description}")
        return jsonify(_error_body(RateLimitError(limit=str(e.description)).to_dict())), 429

    @app.errorhandler(SQLAlchemyError)
    def db_error(e: SQLAlchemyError):
        logger.error(f"[{g.get('request_id')}] database error: {e}")
        return jsonify(_error_body(DatabaseError(str(e)).to_dict())), 500

    @app.errorhandler(Exception)
    def internal_error(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception(f"[{g.get('request_id')}] unhandled error: {e}")
        return jsonify(_error_body(InternalServerError(str(e)).to_dict())), 500

    # ------------------------------------------------------------------ #
    # Health check                                                         #
    # ------------------------------------------------------------------ #
    @app.get("/health")
    @limiter.exempt
    def health():
        """Liveness + readiness probe. Returns 503 if DB is unreachable."""
        try:
            db.ping()
            return jsonify({
                "status": "ok",
                "database": "reachable",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }), 200
        except SQLAlchemyError as exc:
            logger.error(f"Health check failed: {exc}")
            return jsonify({"status": "error", "database": "unreachable"}), 503

    # ------------------------------------------------------------------ #
    # CLI                                                                  #
    # ------------------------------------------------------------------ #
    @app.cli.command("init-db")
    @click.option("--drop", is_flag=True, help="Drop all tables first.")
    def init_db_command(drop: bool):
        """Create the database tables."""
        if drop:
            db.drop_all()
        db.create_all()
        click.echo("Database initialised.")

    @app.cli.command("seed")
    @click.option("--keep", is_flag=True, help="Do not wipe existing data.")
    def seed_command(keep: bool):
        """Populate the database with development data."""
        from marketplace.seed import seed

        click.echo("Seeding database...")
        seed(config, wipe=not keep)

    @app.cli.command("dispatch-outbox")
    def dispatch_outbox_command():
        """Deliver pending and retryable outbox events."""
        counts = app.extensions["marketplace"]["dispatcher"].dispatch_pending()
        click.echo(f"Outbox: {counts['sent']} sent, {counts['failed']} failed")

    return app
