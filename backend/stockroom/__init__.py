# backend/stockroom/__init__.py
from flask import Flask, jsonify, request

from .config import Config, WRITE_MODE_ATOMIC, WRITE_MODE_COMPENSATING
from .errors import ConfigurationError, InventoryError
from .extensions import db, migrate



def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    if app.config["INVENTORY_WRITE_MODE"] not in (WRITE_MODE_ATOMIC, WRITE_MODE_COMPENSATING):
        raise ConfigurationError(f"Unknown INVENTORY_WRITE_MODE {app.config['INVENTORY_WRITE_MODE']!r}")

    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.catalog import catalog_bp
    from .routes.warehouses import warehouses_bp
    from .routes.sales import sales_bp
    from .routes.purchases import purchases_bp
    from .routes.stock_movements import stock_movements_bp
    from .routes.reports import reports_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(purchases_bp)
    app.register_blueprint(stock_movements_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(notifications_bp)

    @app.errorhandler(InventoryError)
    def handle_inventory_error(exc: InventoryError):
        # Reads raise directly; mutations go through stockroom.actions
        db.session.rollback()
        if isinstance(exc, ConfigurationError):
            app.logger.error("Misconfigured tenant on %s: %s", request.path, exc.message)
        return jsonify(exc.to_result()), exc.status_code

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                f"{app.config['TENANT_IDENTITY_HEADER']}, Content-Type"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
