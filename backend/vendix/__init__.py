# backend/vendix/__init__.py
from flask import Flask, current_app

from .config import Config
from .extensions import db


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Writers wait on a locked SQLite file instead of failing immediately
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        engine_options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
        connect_args = dict(engine_options.get("connect_args") or {})
        connect_args.setdefault("timeout", app.config["SQLITE_BUSY_TIMEOUT"])
        engine_options["connect_args"] = connect_args
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options

    # Initialize extensions
    db.init_app(app)

    # Import models so the metadata is complete before create_all
    from . import models  # noqa: F401

    # Storage selection happens once per app; the facade is what callers use
    from .storage import Storage
    from .services.facade import PosFacade

    storage = Storage(app)
    app.extensions["vendix"] = PosFacade.from_app(app, storage)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.categories import categories_bp
    from .routes.sales import sales_bp
    from .routes.inventory import inventory_bp
    from .routes.reports import reports_bp
    from .routes.license import license_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(license_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def get_facade():
    """The PosFacade bound to the current app."""
    return current_app.extensions["vendix"]
