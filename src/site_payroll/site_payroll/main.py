from __future__ import annotations

import importlib
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.logging_config import configure_logging, get_logger
from .common.web import register_error_handlers
from .container import Container, build_container
from .core.constants import DEFAULT_NON_WORKING_WEEKDAYS, GEOFENCE_RADIUS_METERS, LATE_CHECKIN_HOUR
from .database.bootstrap import apply_schema, ensure_demo_project, ensure_demo_users, list_tables
from .payroll.controller import register as register_payroll
from .users.controller import register as register_users

log = get_logger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the Flask app; pass ``container`` to skip MySQL wiring (tests)."""
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        json_output=bool(getattr(settings, "LOG_JSON", True)),
    )

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        log.info(
            "starting",
            extra={
                "settings": settings_module,
                "db": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
            },
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=SCHEMA_PATH)
            log.info("schema ready", extra={"tables": len(list_tables(db_config))})
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_users(db_config)
            ensure_demo_project(db_config)
            log.info("demo data ready")

        container = build_container(
            db_config=db_config,
            geofence_radius_meters=float(getattr(settings, "GEOFENCE_RADIUS_METERS", GEOFENCE_RADIUS_METERS)),
            non_working_weekdays=getattr(settings, "NON_WORKING_WEEKDAYS", DEFAULT_NON_WORKING_WEEKDAYS),
            late_checkin_hour=int(getattr(settings, "LATE_CHECKIN_HOUR", LATE_CHECKIN_HOUR)),
        )

    app.extensions["site_payroll"] = container
    register_error_handlers(app)
    register_users(app, container)
    register_attendance(app, container)
    register_payroll(app, container)

    return app
