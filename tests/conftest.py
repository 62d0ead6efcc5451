import os
import sys
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

TEST_JWT_SECRET = "test-jwt-secret-with-enough-entropy-0123456789"

TEST_ENV_OVERRIDES = {
    "SECRET_KEY": "test-secret",
    "JWT_SECRET_KEY": TEST_JWT_SECRET,
    "FLASK_TESTING": "true",
    "APP_ENV": "production",
    "RATE_LIMIT_ENABLED": "true",
    "RATE_LIMIT_BACKEND": "memory",
    "RATE_LIMIT_SUBSCRIBE_LIMIT": "5",
    "RATE_LIMIT_DEFAULT_LIMIT": "100",
}


@pytest.fixture(autouse=True)
def isolate_test_env() -> Generator[None, None, None]:
    tracked_keys = set(TEST_ENV_OVERRIDES.keys()) | {"DATABASE_URL"}
    original_values = {key: os.environ.get(key) for key in tracked_keys}
    yield
    for key, value in original_values.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def make_app(tmp_path: Path) -> Generator[Callable[..., Any], None, None]:
    created: list[Any] = []

    def factory(**config_overrides: Any) -> Any:
        test_db_path = tmp_path / f"test-{len(created)}.sqlite3"
        os.environ["DATABASE_URL"] = f"sqlite:///{test_db_path}"
        for key, value in TEST_ENV_OVERRIDES.items():
            os.environ[key] = value

        from subscription_api import create_app

        overrides = {
            "TESTING": True,
            "MODE": "production",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{test_db_path}",
            "JWT_SECRET_KEY": TEST_JWT_SECRET,
            "CORS_ALLOWED_ORIGINS": ("https://frontend.local",),
        }
        overrides.update(config_overrides)
        app = create_app(overrides)
        created.append(app)
        return app

    yield factory

    from subscription_api.extensions.database import db

    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()


@pytest.fixture
def app(make_app: Callable[..., Any]) -> Any:
    return make_app()


@pytest.fixture
def client(app: Any) -> Generator:
    yield app.test_client()


@pytest.fixture(autouse=True)
def clear_metrics() -> Generator[None, None, None]:
    from subscription_api.extensions.integration_metrics import (
        reset_metrics_for_tests,
    )

    reset_metrics_for_tests()
    yield
    reset_metrics_for_tests()
