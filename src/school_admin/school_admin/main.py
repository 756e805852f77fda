from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .admissions.controller import register as register_admissions
from .attendance.controller import register as register_attendance
from .changes.controller import register as register_changes
from .common.http import register_error_handlers
from .container import Container, build_container
from .core.constants import DEFAULT_BANNER_SECONDS, DEFAULT_PUBLIC_LINK_DAYS
from .core.logging import setup_logging
from .courses.controller import register as register_courses
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .notifications.controller import register as register_notifications
from .review.controller import register as register_review
from .students.controller import register as register_students
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[3]


def _prepare_database(settings, db_config: dict) -> None:
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
        ensure_demo_users(db_config)
        logger.info("Demo seed ready")


def register_routes(app: Flask, container: Container) -> None:
    register_users(app, container)
    register_courses(app, container)
    register_students(app, container)
    register_admissions(app, container)
    register_review(app, container)
    register_changes(app, container)
    register_attendance(app, container)
    register_notifications(app, container)


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the Flask app. Tests pass a container wired over in-memory repositories."""

    load_dotenv(override=False)
    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app = Flask(__name__)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["RECEIPTS_DIR"] = str(getattr(settings, "RECEIPTS_DIR", REPO_ROOT / "receipts"))

    if container is None:
        db_config = dict(getattr(settings, "DB_CONFIG"))
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        _prepare_database(settings, db_config)
        container = build_container(
            db_config=db_config,
            receipts_dir=app.config["RECEIPTS_DIR"],
            receipts_url_prefix=getattr(settings, "RECEIPTS_URL_PREFIX", "/receipts"),
            public_link_days=int(getattr(settings, "PUBLIC_LINK_DAYS", DEFAULT_PUBLIC_LINK_DAYS)),
            connect_retries=int(getattr(settings, "DB_CONNECT_RETRIES", 3)),
        )

    register_error_handlers(app, banner_seconds=int(getattr(settings, "BANNER_SECONDS", DEFAULT_BANNER_SECONDS)))
    register_routes(app, container)
    return app
