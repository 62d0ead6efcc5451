from datetime import timedelta
from typing import Any

from flask_jwt_extended import create_access_token

from subscription_api.extensions.database import db
from subscription_api.models.subscription import Subscription


def _subscription_count(app: Any) -> int:
    with app.app_context():
        return int(db.session.query(Subscription).count())


def _operator_headers(app: Any, expires_delta: timedelta | None = None) -> dict[str, str]:
    with app.app_context():
        token = create_access_token(identity="ops", expires_delta=expires_delta)
    return {"Authorization": f"Bearer {token}"}


def test_root_reports_service_is_running(client: Any) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.get_json() == {
        "status": "success",
        "message": "Subscription API is running",
    }


def test_health_reports_database_state(client: Any) -> None:
    for path in ("/api/health", "/health"):
        response = client.get(path)
        body = response.get_json()

        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["uptime_seconds"] >= 0
        assert "timestamp" in body


def test_subscribe_creates_normalized_subscription(app: Any, client: Any) -> None:
    response = client.post("/api/subscribe", json={"email": "  USER@Example.com "})

    assert response.status_code == 201
    assert response.get_json() == {
        "status": "success",
        "message": "Successfully subscribed!",
    }
    with app.app_context():
        stored = db.session.query(Subscription).one()
        assert stored.email == "user@example.com"
        assert stored.created_at is not None


def test_normalized_duplicate_is_rejected(app: Any, client: Any) -> None:
    first = client.post("/api/subscribe", json={"email": "  USER@Example.com "})
    second = client.post("/api/subscribe", json={"email": "user@example.com"})

    assert first.status_code == 201
    assert second.status_code == 400
    body = second.get_json()
    assert body["status"] == "fail"
    assert body["error"]["code"] == "DUPLICATE_FIELD"
    assert body["error"]["message"] == (
        "Duplicate field value: user@example.com. Please use another value."
    )
    assert _subscription_count(app) == 1


def test_same_email_never_succeeds_twice(app: Any, client: Any) -> None:
    statuses = [
        client.post("/subscribe", json={"email": "repeat@example.com"}).status_code
        for _ in range(2)
    ]

    assert statuses == [201, 400]
    assert _subscription_count(app) == 1


def test_invalid_email_returns_validation_details(app: Any, client: Any) -> None:
    response = client.post("/api/subscribe", json={"email": "not-an-email"})

    assert response.status_code == 400
    body = response.get_json()
    assert body["status"] == "fail"
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["message"] == "Validation failed"
    assert body["error"]["details"][0] == {
        "field": "email",
        "message": "Invalid email address",
        "rejected_value": "not-an-email",
    }
    assert "trace" not in body["error"]
    assert _subscription_count(app) == 0


def test_missing_or_malformed_body_is_a_validation_error(client: Any) -> None:
    empty = client.post("/api/subscribe")
    malformed = client.post(
        "/api/subscribe", data="{not json", content_type="application/json"
    )

    for response in (empty, malformed):
        assert response.status_code == 400
        body = response.get_json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"][0]["field"] == "email"


def test_oversized_body_is_rejected(client: Any) -> None:
    response = client.post(
        "/api/subscribe",
        data='{"email": "' + "a" * 20_000 + '@example.com"}',
        content_type="application/json",
    )

    assert response.status_code == 413
    assert response.get_json()["error"]["code"] == "PAYLOAD_TOO_LARGE"


def test_unknown_route_returns_route_not_found(client: Any) -> None:
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.get_json() == {
        "status": "fail",
        "error": {
            "message": "Can't find /does-not-exist on this server!",
            "code": "ROUTE_NOT_FOUND",
        },
    }


def test_wrong_method_goes_through_error_pipeline(client: Any) -> None:
    response = client.get("/api/subscribe")

    assert response.status_code == 405
    assert response.get_json()["error"]["code"] == "METHOD_NOT_ALLOWED"


def test_unexpected_fault_is_masked_in_production(make_app: Any) -> None:
    app = make_app(MODE="production")

    @app.get("/boom")
    def boom() -> Any:
        raise RuntimeError("connection string leaked")

    response = app.test_client().get("/boom")

    assert response.status_code == 500
    assert response.get_json() == {
        "status": "error",
        "error": {"message": "Something went wrong!", "code": "INTERNAL_ERROR"},
    }


def test_development_mode_exposes_trace(make_app: Any) -> None:
    app = make_app(MODE="development")

    @app.get("/boom")
    def boom() -> Any:
        raise RuntimeError("connection string leaked")

    response = app.test_client().get("/boom")
    body = response.get_json()

    assert response.status_code == 500
    assert body["error"]["code"] == "INTERNAL_ERROR"
    assert "connection string leaked" in body["error"]["trace"]
    assert body["error"]["raw"]["is_operational"] is False


def test_storage_race_is_reported_as_duplicate(app: Any, client: Any) -> None:
    from subscription_api.controllers.subscription_dependencies import (
        SubscriptionDependencies,
        register_subscription_dependencies,
    )
    from subscription_api.repositories import SubscriptionRepository

    class LateDuplicateRepository(SubscriptionRepository):
        def find_one(self, email: str) -> Subscription | None:
            return None

    register_subscription_dependencies(
        app,
        SubscriptionDependencies(
            repository=LateDuplicateRepository(),
            create_operator_token=lambda identity: identity,
        ),
    )
    client.post("/api/subscribe", json={"email": "race@example.com"})

    response = client.post("/api/subscribe", json={"email": "race@example.com"})

    assert response.status_code == 400
    assert response.get_json()["error"]["code"] == "DUPLICATE_FIELD"
    assert _subscription_count(app) == 1


def test_operator_listing_requires_token(client: Any) -> None:
    response = client.get("/api/subscriptions")

    assert response.status_code == 401
    assert response.get_json()["error"]["code"] == "INVALID_TOKEN"


def test_operator_listing_rejects_malformed_token(client: Any) -> None:
    response = client.get(
        "/api/subscriptions", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
    assert response.get_json()["error"] == {
        "message": "Invalid token. Please log in again.",
        "code": "INVALID_TOKEN",
    }


def test_operator_listing_rejects_expired_token(app: Any, client: Any) -> None:
    headers = _operator_headers(app, expires_delta=timedelta(seconds=-30))

    response = client.get("/api/subscriptions", headers=headers)

    assert response.status_code == 401
    assert response.get_json()["error"]["code"] == "TOKEN_EXPIRED"


def test_operator_listing_returns_subscriptions(app: Any, client: Any) -> None:
    client.post("/api/subscribe", json={"email": "first@example.com"})
    client.post("/api/subscribe", json={"email": "second@example.com"})

    response = client.get("/api/subscriptions?limit=10", headers=_operator_headers(app))

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "success"
    assert body["data"]["total"] == 2
    emails = {item["email"] for item in body["data"]["subscriptions"]}
    assert emails == {"first@example.com", "second@example.com"}


def test_cors_and_security_headers_are_applied(client: Any) -> None:
    allowed = client.get("/", headers={"Origin": "https://frontend.local"})
    denied = client.get("/", headers={"Origin": "https://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "https://frontend.local"
    assert allowed.headers["Access-Control-Allow-Credentials"] == "false"
    assert "Access-Control-Allow-Origin" not in denied.headers
    assert allowed.headers["X-Content-Type-Options"] == "nosniff"


def test_error_responses_keep_cors_headers(client: Any) -> None:
    response = client.get("/missing", headers={"Origin": "https://frontend.local"})

    assert response.status_code == 404
    assert response.headers["Access-Control-Allow-Origin"] == "https://frontend.local"
