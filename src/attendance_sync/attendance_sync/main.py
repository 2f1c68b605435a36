from __future__ import annotations

import atexit
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from .common.logging_config import configure_logging
from .config import get_settings_module
from .container import build_container
from .database.bootstrap import apply_schema, list_tables
from .roster.controller import register as register_roster
from .session.controller import register as register_session

logger = logging.getLogger(__name__)


def create_app(**overrides) -> Flask:
    """Build the device app.

    ``overrides`` are passed to :func:`build_container` (store, bus,
    scheduler, ...) so tests can run without MySQL.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    configure_logging(settings)
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    db_config = getattr(settings, "DB_CONFIG")
    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)) and "store" not in overrides:
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))

    container = build_container(settings=settings, **overrides)
    app.extensions["attendance_sync"] = container

    container.tracker.start()

    def _shutdown() -> None:
        container.tracker.stop()
        container.scheduler.shutdown()

    atexit.register(_shutdown)

    register_session(app, container)
    register_roster(app, container)

    return app
