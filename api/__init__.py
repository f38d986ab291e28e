import logging
import time

from flask import Flask
from flask_compress import Compress
from flasgger import Swagger
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .config import get_config, validate_config
from .errors import register_error_handlers
from .headers import init_security_headers
from .logs import configure_logging, init_request_context
from models import storage  # DBStorage singleton (scoped_session)
from utils.crypto import init_field_cipher

logger = logging.getLogger(__name__)

# Minimal Swagger config: exposes /swagger.json and UI at /docs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "AuthKit API",
        "version": "1.0.0",
        "description": "Registration, login, refresh-token rotation and RBAC over a relational user store.",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/docs/",
}

limiter = Limiter(key_func=get_remote_address)
compress = Compress()


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    `overrides` is applied on top of the selected config class (handy in tests).
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)
    validate_config(app.config)
    app.extensions["started_at"] = time.monotonic()

    configure_logging(app)
    init_request_context(app)
    init_security_headers(app)

    # Cross-Origin Resource Sharing: origins come from CORS_ORIGINS
    CORS(
        app,
        resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
        supports_credentials=True,
        expose_headers=["X-Request-ID"],
    )

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    limiter.init_app(app)
    compress.init_app(app)
    init_field_cipher(app)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage.reload(app.config["DATABASE_URL"], echo=app.config.get("SQLALCHEMY_ECHO", False))
    if app.config.get("SEED_RBAC", True):
        from models.seed import seed_rbac
        seed_rbac(storage.get_session())
        storage.close()

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .commands import register_commands

    limiter.exempt(health_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    register_commands(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        # This calls scoped_session.remove(), preventing connection leaks
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to AuthKit API",
            "docs": "/docs/",
            "health": "/health",
        }, 200

    logger.info("App created (env=%s)", app.config.get("APP_ENV"))
    return app
