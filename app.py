"""Flask application factory for the complaint intake service."""
import os
from typing import Optional

import click
from flask import Flask, current_app, jsonify, request
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from config import CONFIG_MAP, INSECURE_SECRET_KEY, ProductionConfig
from extensions import db, login_manager, migrate
from storage import DatabaseStorage
from utils.errors import ApiError, Conflict
from utils.logger import init_logging
from utils.security import apply_security_headers
from utils.session_store import InMemorySessionStore, SessionStore


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def api_error(error: ApiError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        app.logger.warning(
            "%s %s", error.code, error.name, extra={"path": request.path, "method": request.method}
        )
        return jsonify({"message": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        db.session.rollback()
        app.logger.exception("500 Internal Server Error", extra={"path": request.path, "method": request.method})
        return jsonify({"message": "Internal server error"}), 500


def ensure_database_exists(database_uri: str) -> None:
    """Create the target database if it does not exist (PostgreSQL + SQLite support)."""
    url = make_url(database_uri)

    if url.drivername.startswith("sqlite"):
        # For SQLite just make sure the parent directory exists.
        if url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
        return

    if url.drivername.startswith("postgres"):
        db_name = url.database
        admin_url = url.set(database=os.getenv("POSTGRES_DB_ADMIN", "postgres"))
        engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
        try:
            with engine.connect() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": db_name}
                ).scalar()
                if not exists:
                    conn.execute(text(f'CREATE DATABASE "{db_name}"'))
        except OperationalError:
            # Startup fails loudly later when the real engine connects.
            pass
        finally:
            engine.dispose()


def load_admin_from_cookie(req):
    """Resolve the admin bound to the request's session cookie, if any."""
    token = req.cookies.get(current_app.config["ADMIN_SESSION_COOKIE"])
    record = current_app.extensions["session_store"].get(token)
    if record is None:
        return None
    return current_app.extensions["storage"].get_admin(record.admin_id)


def ensure_default_admin(app: Flask) -> None:
    """Provision the configured bootstrap admin when both credentials are set."""
    email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").lower().strip()
    password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not email or not password:
        return

    storage = app.extensions["storage"]
    if storage.get_admin_by_email(email) is not None:
        return
    try:
        admin = storage.create_admin(email, password)
    except Conflict:
        # Another worker provisioned it first.
        return
    app.logger.info("admin_created", extra={"admin_id": admin.id, "source": "default_admin"})


def register_commands(app: Flask) -> None:
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.password_option()
    def create_admin_command(email, password):
        """Provision an admin account outside the HTTP setup endpoint."""
        try:
            admin = app.extensions["storage"].create_admin(email, password)
        except Conflict as exc:
            raise click.ClickException(exc.message) from exc
        app.logger.info("admin_created", extra={"admin_id": admin.id, "source": "cli"})
        click.echo(f"Admin {admin.email} created (id={admin.id}).")


def create_app(
    config_name: Optional[str] = None,
    *,
    storage: Optional[DatabaseStorage] = None,
    session_store: Optional[SessionStore] = None,
    config_overrides: Optional[dict] = None,
) -> Flask:
    """Application factory with environment-aware configuration and injectable stores."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_class = CONFIG_MAP.get(config_key, ProductionConfig)
    app.config.from_object(config_class())
    # Optional instance-specific overrides
    app.config.from_pyfile("config.py", silent=True)
    if config_overrides:
        app.config.update(config_overrides)

    ensure_database_exists(app.config["SQLALCHEMY_DATABASE_URI"])
    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    # Initialize logging early
    init_logging(app)
    if app.config["SECRET_KEY"] == INSECURE_SECRET_KEY:
        app.logger.warning(
            "SECRET_KEY is not set; using the insecure fallback. Set SECRET_KEY before deploying.",
            extra={"config": config_key},
        )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    if storage is None:
        storage = DatabaseStorage()
    if session_store is None:
        session_store = InMemorySessionStore(
            lifetime=app.config["ADMIN_SESSION_LIFETIME"],
            secret=app.config["SECRET_KEY"],
        )
    app.extensions["storage"] = storage
    app.extensions["session_store"] = session_store

    login_manager.request_loader(load_admin_from_cookie)

    # Blueprints
    from routes import auth_bp, complaints_bp, main_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(complaints_bp)
    app.register_blueprint(auth_bp)

    register_error_handlers(app)
    register_commands(app)

    @app.before_request
    def _log_request() -> None:
        app.logger.debug("%s %s", request.method, request.path, extra={"ip_address": request.remote_addr})

    @app.after_request
    def _after_request(response):
        return apply_security_headers(response, force_https=app.config.get("SESSION_COOKIE_SECURE", False))

    # Ensure tables exist so first run creates the database structure automatically.
    with app.app_context():
        db.create_all()
        ensure_default_admin(app)

    return app


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    create_app().run(host="0.0.0.0", port=port, use_reloader=False)
