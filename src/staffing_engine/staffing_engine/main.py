from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .assignments.controller import register as register_assignments
from .common.http_errors import register_error_handlers
from .common.logging_utils import setup_json_logging, setup_plain_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, apply_seed_sql, list_tables
from .permissions.controller import register as register_permissions
from .roles.controller import register as register_roles
from .shifts.controller import register as register_shifts
from .timesheets.controller import register as register_timesheets

logger = logging.getLogger("staffing_engine.app")

_DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def create_app(container: Container | None = None) -> Flask:
    """Application factory.

    Pass ``container`` to run against already-built repositories (tests);
    otherwise the MySQL container is built from the active settings module.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    level = logging.DEBUG if app.config["DEBUG"] else logging.INFO
    if getattr(settings, "LOG_JSON", False):
        setup_json_logging(level)
    else:
        setup_plain_logging(level)

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "app_starting",
            extra={
                "settings": settings_module,
                "db": f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
            },
        )

        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config, schema_path=_DATABASE_DIR / "schema.sql")
            logger.info("schema_ready", extra={"tables": len(list_tables(db_config))})
        if getattr(settings, "AUTO_SEED_DB", False):
            apply_seed_sql(db_config, seed_path=_DATABASE_DIR / "seed.sql")

        container = build_container(
            db_config=db_config,
            regular_hours_per_day=float(getattr(settings, "REGULAR_HOURS_PER_DAY", 8)),
            min_work_minutes=int(getattr(settings, "MIN_WORK_MINUTES", 0)),
        )

    app.extensions["staffing_container"] = container
    register_error_handlers(app)

    register_roles(app, container)
    register_shifts(app, container)
    register_assignments(app, container)
    register_timesheets(app, container)
    register_permissions(app, container)

    return app
