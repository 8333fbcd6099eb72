# backend/payportal/__init__.py
from flask import Flask
from werkzeug.exceptions import BadRequest, HTTPException, MethodNotAllowed, NotFound

from .config import Config
from .extensions import db, migrate



def create_app(config_class=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Signing key injected from config, one instance per app
    from .services.token_service import create_token_service
    app.extensions["token_service"] = create_token_service(app.config)

    # Ordered request/response stages (markup screening, JSON body, security headers, CORS)
    from .pipeline import install_pipeline
    install_pipeline(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.transactions import transactions_bp
    from .routes.employees import employees_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(admin_bp)

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """JSON bodies for errors raised outside the route try/except blocks."""
    from .responses import error_response, internal_error

    @app.errorhandler(NotFound)
    def handle_not_found(e):
        return error_response("Route not found", 404)

    @app.errorhandler(MethodNotAllowed)
    def handle_method_not_allowed(e):
        return error_response("Method not allowed", 405)

    @app.errorhandler(BadRequest)
    def handle_bad_request(e):
        return error_response("Malformed request body", 400)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return error_response(e.description or e.name, e.code)
        db.session.rollback()
        return internal_error("Unhandled error")
