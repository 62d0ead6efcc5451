from time import monotonic
from typing import Any, Mapping, Optional

from flask import Flask
from flask_jwt_extended import JWTManager

from subscription_api.controllers.health_controller import health_bp
from subscription_api.controllers.subscription_controller import subscription_bp
from subscription_api.controllers.subscription_dependencies import (
    register_subscription_dependencies,
)
from subscription_api.extensions.database import init_database
from subscription_api.extensions.error_handlers import register_error_handlers
from subscription_api.extensions.jwt_callbacks import register_jwt_callbacks
from subscription_api.extensions.subscription_cli import register_subscription_commands
from subscription_api.middleware.cors import register_cors
from subscription_api.middleware.rate_limit import register_rate_limit_guard
from subscription_api.middleware.security_headers import register_security_headers
from subscription_api.models.subscription import Subscription  # noqa: F401

jwt = JWTManager()


def create_app(config_overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    from config import Config, runtime_mode, validate_security_configuration

    validate_security_configuration()
    app.config.from_object(Config)
    # Resolved per app so every component sees the same mode.
    app.config["MODE"] = runtime_mode()
    app.config["DEBUG"] = app.config["MODE"] == "development"
    app.config.from_prefixed_env()
    if config_overrides:
        app.config.update(config_overrides)

    app.extensions["started_at"] = monotonic()

    init_database(app)
    jwt.init_app(app)
    register_jwt_callbacks(jwt)

    # Error pipeline first so every hook below reports through it.
    register_error_handlers(app)

    register_cors(app)
    register_security_headers(app)
    register_rate_limit_guard(app)

    register_subscription_dependencies(app)
    app.register_blueprint(health_bp)
    app.register_blueprint(subscription_bp)

    register_subscription_commands(app)

    app.logger.info("app_created mode=%s", app.config.get("MODE"))
    return app


__all__ = ["create_app"]
