from __future__ import annotations

import atexit
import importlib
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify
from flask_mail import Mail
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .container import Container, build_container
from .core.exceptions import DomainError, UpstreamError
from .database.bootstrap import ensure_demo_users, ensure_indexes
from .fees.controller import register as register_fees
from .notifications.mailer import FlaskMailSender
from .profiles.controller import register as register_profiles
from .reports.controller import register as register_reports
from .scheduler.jobs import create_scheduler, start_scheduler
from .students.controller import register as register_students
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    pkg_logger = logging.getLogger("sk_tutorial")
    pkg_logger.setLevel(level)

    if not any(getattr(h, "_sk_tutorial", False) for h in pkg_logger.handlers):
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(LOG_FORMAT))
        stream._sk_tutorial = True
        pkg_logger.addHandler(stream)

        log_file = app.config.get("LOG_FILE")
        if log_file:
            file_handler = RotatingFileHandler(log_file, maxBytes=1_048_576, backupCount=10)
            file_handler.setFormatter(
                logging.Formatter(LOG_FORMAT + " [in %(pathname)s:%(lineno)d]")
            )
            file_handler._sk_tutorial = True
            pkg_logger.addHandler(file_handler)


def register_error_handlers(app: Flask) -> None:
    def _body(message: str, error: Optional[Exception] = None) -> dict:
        body = {"message": message}
        if error is not None and app.config.get("DEBUG"):
            body["error"] = f"{type(error).__name__}: {error}"
        return body

    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if isinstance(e, UpstreamError):
            logger.error("upstream failure: %s", e, exc_info=e)
            return jsonify(_body("Internal server error", e)), e.status_code
        return jsonify(_body(str(e))), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify(_body(e.name)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("unhandled error")
        return jsonify(_body("Internal server error", e)), 500


def check_settings(settings) -> None:
    """Refuse to boot with settings that would make tokens forgeable."""
    if getattr(settings, "REQUIRE_SECRET_KEY", False) and not getattr(settings, "SECRET_KEY", ""):
        raise RuntimeError("SECRET_KEY must be set (environment or .env) for this environment")


def create_app(container: Optional[Container] = None, settings_module: Optional[str] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    check_settings(settings)
    app.config.from_object(settings)
    app.secret_key = settings.SECRET_KEY
    app.json.sort_keys = False

    configure_logging(app)
    register_error_handlers(app)
    logger.debug("settings=%s db=%s", settings_module, getattr(settings, "DB_NAME", "?"))

    if container is None:
        mail = Mail(app)
        container = build_container(settings=settings, sender=FlaskMailSender(app, mail))
        atexit.register(container.close)

        if getattr(settings, "AUTO_INIT_DB", False):
            ensure_indexes(container.conn)
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_demo_users(
                container.user_service,
                admin_password=settings.DEMO_ADMIN_PASSWORD,
                teacher_password=settings.DEMO_TEACHER_PASSWORD,
            )
        if getattr(settings, "SCHEDULER_ENABLED", False) and not app.config.get("TESTING"):
            scheduler = create_scheduler(
                outbox=container.outbox_service,
                fees=container.fee_service,
                dispatch_seconds=int(getattr(settings, "OUTBOX_DISPATCH_SECONDS", 60)),
                due_entries_day=int(getattr(settings, "DUE_ENTRIES_DAY", 0)),
            )
            start_scheduler(scheduler)
            atexit.register(scheduler.shutdown, wait=False)

    app.extensions["sk_tutorial.container"] = container

    register_users(app, container)
    register_students(app, container)
    register_attendance(app, container)
    register_reports(app, container)
    register_fees(app, container)
    register_profiles(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        if container.conn is None:
            return jsonify({"status": "ok", "db": "not configured"})
        try:
            container.conn.ping()
        except PyMongoError as e:
            logger.warning("health check: database unreachable: %s", e)
            return jsonify({"status": "degraded", "db": "down"}), 503
        return jsonify({"status": "ok", "db": "up"})

    return app
