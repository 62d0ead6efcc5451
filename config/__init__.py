from __future__ import annotations

import os

DEFAULT_ALLOWED_ORIGINS = (
    "https://www.preciseksa.co,"
    "https://preciseksa.co,"
    "http://localhost:3000,"
    "https://ksa-77f3.onrender.com"
)


def read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def read_optional_bool_env(name: str) -> bool | None:
    if os.getenv(name) is None:
        return None
    return read_bool_env(name, False)


def parse_csv(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _is_secret_weak(secret: str) -> bool:
    normalized = secret.strip().lower()
    return normalized in {"", "dev", "super-secret-key", "changeme"} or len(secret) < 32


def runtime_mode() -> str:
    """Resolve the renderer mode: ``development`` or ``production``."""
    for env_name in ("APP_ENV", "FLASK_ENV"):
        raw = os.getenv(env_name)
        if raw is not None and raw.strip():
            normalized = raw.strip().lower()
            if normalized in {"dev", "development"}:
                return "development"
            return "production"
    return "production"


def validate_security_configuration() -> None:
    is_testing = read_bool_env("FLASK_TESTING", False)
    if is_testing or runtime_mode() == "development":
        return

    secret_key = os.getenv("SECRET_KEY", "dev")
    jwt_secret_key = os.getenv("JWT_SECRET_KEY", "super-secret-key")
    weak = []
    if _is_secret_weak(secret_key):
        weak.append("SECRET_KEY")
    if _is_secret_weak(jwt_secret_key):
        weak.append("JWT_SECRET_KEY")

    if weak:
        raise RuntimeError(
            "Weak/invalid secrets for production runtime: "
            + ", ".join(weak)
            + ". Configure strong values in environment variables."
        )


class Config:
    SERVICE_NAME = os.getenv("SERVICE_NAME", "Subscription API")
    MODE = runtime_mode()
    DEBUG = MODE == "development"

    SECRET_KEY = os.getenv("SECRET_KEY", "dev")
    # JWT config
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "super-secret-key")
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_HEADER_TYPE = "Bearer"
    JWT_ACCESS_TOKEN_EXPIRES_MINUTES = read_int_env(
        "JWT_ACCESS_TOKEN_EXPIRES_MINUTES", 60
    )

    # Database config
    SQLALCHEMY_DATABASE_URI = (
        os.getenv("DATABASE_URL")
        or os.getenv("MONGODB_URI")
        or "sqlite:///subscriptions.sqlite3"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Request body cap (10 KB)
    MAX_CONTENT_LENGTH = read_int_env("MAX_CONTENT_LENGTH_BYTES", 10 * 1024)

    # Browser origins allowed to call the API; methods and headers are fixed.
    CORS_ALLOWED_ORIGINS = parse_csv(
        os.getenv("CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    )
    CORS_MAX_AGE_SECONDS = read_int_env("CORS_MAX_AGE_SECONDS", 600)
    # None means "on in production".
    SECURITY_HSTS_ENABLED = read_optional_bool_env("SECURITY_HSTS_ENABLED")

    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = read_int_env("PORT", 3000)
    SHUTDOWN_GRACE_PERIOD_SECONDS = read_int_env(
        "SHUTDOWN_GRACE_PERIOD_SECONDS", 10
    )