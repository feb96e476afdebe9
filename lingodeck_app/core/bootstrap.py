"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

import logging
import os

from flask import Flask
from sqlalchemy.engine import make_url

from .extensions import db
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Set up the package logger from config, then make sure app.logger has a handler."""

    if app.config.get("LOG_TO_FILE") or app.config.get("LOG_JSON"):
        setup_logging(
            log_level=app.config.get("LOG_LEVEL", "INFO"),
            log_dir=app.config.get("LOG_DIR"),
            json_format=app.config.get("LOG_JSON", False),
            to_file=app.config.get("LOG_TO_FILE", True),
        )

    if app.logger.handlers:
        return

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))
    handler = logging.StreamHandler()
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    app.logger.addHandler(handler)
    app.logger.propagate = False
    app.logger.info("Flask app logger configured successfully.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)


def register_blueprints(app: Flask) -> None:
    """Set up the feature modules and mount their blueprints."""

    register_default_modules(app)


def _ensure_sqlite_directory(uri: str) -> None:
    url = make_url(uri)
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        return
    directory = os.path.dirname(os.path.abspath(url.database))
    os.makedirs(directory, exist_ok=True)


def initialize_database(app: Flask) -> None:
    """Create database tables."""

    _ensure_sqlite_directory(app.config["SQLALCHEMY_DATABASE_URI"])
    db.create_all()
    app.logger.info("Database tables ready.")
