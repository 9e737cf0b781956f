from flask import Flask
from flasgger import Swagger
from flask_cors import CORS
import click
import logging

from .config import get_config
from .errors import register_error_handlers
from .request_log import configure_logging, register_request_logging
from models.db_storage import DBStorage
from models.memory import InMemoryTokenRepository, InMemoryUserRepository
from models.repositories import SQLTokenRepository, SQLUserRepository
from models.user import Role
from services.auth import AuthService, AuthSettings
from services.reauth import Reauthenticator
from utils.decorators import attach_reissued_tokens
from utils.security import Argon2PasswordHasher

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "Token Auth API",
        "version": "1.0.0",
        "description": "Registration, login, logout and transparent access-token refresh.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
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
    "specs_route": "/apidocs/",
}


def auth_settings_from_config(config) -> AuthSettings:
    return AuthSettings(
        access_secret=config["JWT_ACCESS_SECRET"],
        refresh_secret=config["JWT_REFRESH_SECRET"],
        algorithm=config["JWT_ALGORITHM"],
        access_token_ttl=config["ACCESS_TOKEN_TTL"],
        refresh_token_ttl=config["REFRESH_TOKEN_TTL"],
        refresh_token_bytes=config["REFRESH_TOKEN_BYTES"],
        rotation_policy=config["REFRESH_ROTATION_POLICY"],
        rotation_window=config["REFRESH_ROTATION_WINDOW"],
    )


def _build_repositories(app: Flask):
    backend = app.config["STORAGE_BACKEND"].lower()
    if backend == "memory":
        return InMemoryUserRepository(), InMemoryTokenRepository(), None
    if backend != "sql":
        raise RuntimeError(f"Unknown STORAGE_BACKEND: {backend}")

    storage = DBStorage(
        app.config["DATABASE_URL"],
        statement_timeout_ms=app.config["DB_STATEMENT_TIMEOUT_MS"],
        pool_timeout=app.config["DB_POOL_TIMEOUT_SECONDS"],
        echo=app.config["DB_ECHO"],
    )
    storage.reload()
    return SQLUserRepository(storage), SQLTokenRepository(storage), storage


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    Builds storage, the auth service and the re-authenticator once and
    registers them in app.extensions; nothing in the core is a module global.
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    config_class.validate()
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])
    log = logging.getLogger("api")

    # Cross-Origin Resource Sharing; credentials so the refresh cookie travels
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}}, supports_credentials=True)

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)
    register_request_logging(app)
    app.after_request(attach_reissued_tokens)

    users, tokens, storage = _build_repositories(app)
    hasher = Argon2PasswordHasher(
        time_cost=app.config["ARGON2_TIME_COST"],
        memory_cost=app.config["ARGON2_MEMORY_COST"],
        parallelism=app.config["ARGON2_PARALLELISM"],
    )
    auth_service = AuthService(
        users, tokens, hasher, auth_settings_from_config(app.config),
        logger=logging.getLogger("services.auth"),
    )
    app.extensions["db_storage"] = storage
    app.extensions["auth_service"] = auth_service
    app.extensions["reauthenticator"] = Reauthenticator(
        auth_service, logger=logging.getLogger("services.reauth")
    )

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp, url_prefix="/api/v1")

    if storage is not None:
        # Ensure the DB session is removed at the end of each request/app context
        @app.teardown_appcontext
        def remove_session(exception=None):
            storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Token Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("password")
    def create_admin(email, password):
        """Register EMAIL as an admin user."""
        user = auth_service.register(email.strip().lower(), password, role=Role.ADMIN)
        click.echo(f"created admin {user.email} ({user.id})")

    log.info("app created env=%s storage=%s", app.config["APP_ENV"], app.config["STORAGE_BACKEND"])
    return app
