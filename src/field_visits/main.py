from __future__ import annotations

import importlib
import logging
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .accounts.controller import register as register_accounts
from .common.http import register_error_handlers
from .container import Container, build_container
from .core.constants import DEFAULT_PASSWORD_HASH_METHOD, MAX_PHOTO_BYTES, MAX_PHOTOS_PER_VISIT
from .database.bootstrap import SCHEMA_PATH, apply_schema, list_tables
from .database.connection import DBConfig, DatabaseConnection
from .employees.controller import register as register_employees
from .visits.controller import register as register_visits


def seed_if_empty(container: Container) -> list:
    """Seed one employee per designation, only into an empty registry."""
    if container.identity_registry.list_employees():
        return []
    return container.identity_registry.seed_employees()


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    # Room for a full set of base64 photos in one JSON body.
    app.config["MAX_CONTENT_LENGTH"] = 2 * MAX_PHOTOS_PER_VISIT * MAX_PHOTO_BYTES
    jwt_secret = getattr(settings, "JWT_SECRET", None) or app.secret_key
    hash_method = getattr(settings, "PASSWORD_HASH_METHOD", DEFAULT_PASSWORD_HASH_METHOD)

    if app.config["DEBUG"]:
        app.logger.setLevel(logging.DEBUG)
        app.logger.debug(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            conn = DatabaseConnection(DBConfig.from_dict(db_config))
            apply_schema(conn, schema_path=SCHEMA_PATH)
            app.logger.info("schema ready (tables=%d)", len(list_tables(conn)))
        container = build_container(db_config=db_config, jwt_secret=jwt_secret, password_hash_method=hash_method)
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            seeded = seed_if_empty(container)
            app.logger.info("seeded %d employee(s)", len(seeded))

    app.extensions["field_visits"] = container

    register_error_handlers(app)
    register_accounts(app, container)
    register_employees(app, container)
    register_visits(app, container)

    @app.cli.command("sweep-overdue")
    def sweep_overdue_command():
        """Mark pending/in-progress visits past their deadline as overdue."""
        updated = container.overdue_sweeper.sweep()
        click.echo(f"Marked {updated} visit(s) overdue")

    return app
