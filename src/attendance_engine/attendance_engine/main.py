from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .configuration.controller import register as register_configuration
from .container import Container, build_container
from .core.exceptions import (
    AlreadyCheckedInError,
    AlreadyCheckedOutError,
    AmbiguousMatchError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    DomainError,
    FaceNotVerifiedError,
    LocationDeniedError,
    LockedRecordError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from .database.bootstrap import apply_schema, list_tables

logger = logging.getLogger(__name__)

# First matching class wins.
ERROR_STATUS = (
    (StoreUnavailableError, 503),
    (ConfigurationError, 500),
    (NotFoundError, 404),
    ((AlreadyCheckedInError, AlreadyCheckedOutError, LockedRecordError, AmbiguousMatchError), 409),
    ((AuthorizationError, LocationDeniedError), 403),
    ((AuthenticationError, FaceNotVerifiedError), 401),
    (ValidationError, 400),
)


def status_for(err: DomainError) -> int:
    for classes, status in ERROR_STATUS:
        if isinstance(err, classes):
            return status
    return 400


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(err: DomainError):
        status = status_for(err)
        if status >= 500:
            logger.error("%s: %s %s", err.code, err.message, err.details)
        else:
            logger.info("Rejected (%s): %s", err.code, err.message)
        return jsonify({"success": False, **err.to_dict()}), status


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
        container = build_container(db_config=db_config)

    _register_error_handlers(app)
    register_attendance(app, container)
    register_configuration(app, container)

    @app.route("/health", methods=["GET"], endpoint="health")
    def health():
        return jsonify({"status": "OK", "service": "attendance-engine"}), 200

    return app
