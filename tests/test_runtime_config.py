from __future__ import annotations

import importlib

import pytest

import config as config_module


def _reload_config_module():
    return importlib.reload(config_module)


@pytest.fixture
def clean_mode_env(monkeypatch: pytest.MonkeyPatch):
    for name in ("APP_ENV", "FLASK_ENV", "FLASK_TESTING"):
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
    monkeypatch.undo()
    _reload_config_module()


def test_runtime_mode_defaults_to_production(clean_mode_env) -> None:
    assert config_module.runtime_mode() == "production"


@pytest.mark.parametrize("raw", ["dev", "development", " Development "])
def test_runtime_mode_recognizes_development(clean_mode_env, raw: str) -> None:
    clean_mode_env.setenv("APP_ENV", raw)
    assert config_module.runtime_mode() == "development"


@pytest.mark.parametrize("raw", ["production", "staging", "test"])
def test_runtime_mode_treats_other_values_as_production(
    clean_mode_env, raw: str
) -> None:
    clean_mode_env.setenv("APP_ENV", raw)
    assert config_module.runtime_mode() == "production"


def test_runtime_mode_falls_back_to_flask_env(clean_mode_env) -> None:
    clean_mode_env.setenv("FLASK_ENV", "development")
    assert config_module.runtime_mode() == "development"


def test_config_defaults(clean_mode_env) -> None:
    for name in (
        "DATABASE_URL",
        "MONGODB_URI",
        "PORT",
        "MAX_CONTENT_LENGTH_BYTES",
        "SHUTDOWN_GRACE_PERIOD_SECONDS",
        "SERVICE_NAME",
    ):
        clean_mode_env.delenv(name, raising=False)

    module = _reload_config_module()

    assert module.Config.MODE == "production"
    assert module.Config.DEBUG is False
    assert module.Config.PORT == 3000
    assert module.Config.MAX_CONTENT_LENGTH == 10 * 1024
    assert module.Config.SHUTDOWN_GRACE_PERIOD_SECONDS == 10
    assert module.Config.SQLALCHEMY_DATABASE_URI == "sqlite:///subscriptions.sqlite3"


def test_invalid_numeric_env_falls_back_to_default(clean_mode_env) -> None:
    clean_mode_env.setenv("PORT", "not-a-port")
    clean_mode_env.setenv("SHUTDOWN_GRACE_PERIOD_SECONDS", "-5")
    clean_mode_env.setenv("CORS_MAX_AGE_SECONDS", "ten minutes")

    module = _reload_config_module()

    assert module.Config.PORT == 3000
    assert module.Config.SHUTDOWN_GRACE_PERIOD_SECONDS == 10
    assert module.Config.CORS_MAX_AGE_SECONDS == 600


def test_validate_security_configuration_rejects_weak_secrets_in_production(
    clean_mode_env,
) -> None:
    clean_mode_env.setenv("APP_ENV", "production")
    clean_mode_env.setenv("SECRET_KEY", "dev")
    clean_mode_env.setenv("JWT_SECRET_KEY", "super-secret-key")

    with pytest.raises(RuntimeError) as exc_info:
        config_module.validate_security_configuration()

    assert "SECRET_KEY" in str(exc_info.value)
    assert "JWT_SECRET_KEY" in str(exc_info.value)


def test_validate_security_configuration_accepts_strong_secrets(
    clean_mode_env,
) -> None:
    clean_mode_env.setenv("APP_ENV", "production")
    clean_mode_env.setenv("SECRET_KEY", "s" * 48)
    clean_mode_env.setenv("JWT_SECRET_KEY", "j" * 48)

    config_module.validate_security_configuration()


def test_validate_security_configuration_is_relaxed_outside_production(
    clean_mode_env,
) -> None:
    clean_mode_env.setenv("SECRET_KEY", "dev")
    clean_mode_env.setenv("APP_ENV", "development")
    config_module.validate_security_configuration()

    clean_mode_env.setenv("APP_ENV", "production")
    clean_mode_env.setenv("FLASK_TESTING", "true")
    config_module.validate_security_configuration()


def test_mode_is_resolved_when_each_app_is_created(clean_mode_env, tmp_path) -> None:
    from subscription_api import create_app
    from subscription_api.middleware.security_headers import hsts_enabled

    apps = {}
    for mode in ("development", "production"):
        clean_mode_env.setenv("APP_ENV", mode)
        clean_mode_env.setenv("FLASK_TESTING", "true")
        apps[mode] = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / mode}.sqlite3",
            }
        )

    assert apps["development"].config["MODE"] == "development"
    assert apps["development"].config["DEBUG"] is True
    assert hsts_enabled(apps["development"]) is False
    assert apps["production"].config["MODE"] == "production"
    assert hsts_enabled(apps["production"]) is True
