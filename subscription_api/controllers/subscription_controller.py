from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, current_app, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from subscription_api.application.errors import DuplicateKeyFault
from subscription_api.extensions.integration_metrics import (
    build_rate_limit_metrics_payload,
    build_subscription_metrics_payload,
    increment_metric,
)
from subscription_api.middleware.validation import validate_json_body
from subscription_api.schemas import SubscriptionRequestSchema, SubscriptionSchema
from subscription_api.utils.response_builder import json_response, success_payload

from .subscription_dependencies import get_subscription_dependencies

SUBSCRIBED_MESSAGE = "Successfully subscribed!"
DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500

subscription_bp = Blueprint("subscription", __name__)

_subscription_list_schema = SubscriptionSchema(many=True)


@subscription_bp.post("/subscribe")
@subscription_bp.post("/api/subscribe")
@validate_json_body(SubscriptionRequestSchema())
def subscribe(email: str) -> Response:
    repository = get_subscription_dependencies().repository

    if repository.find_one(email) is not None:
        increment_metric("subscription.duplicate")
        raise DuplicateKeyFault({"email": email})

    try:
        repository.create(email)
    except DuplicateKeyFault:
        increment_metric("subscription.duplicate")
        raise

    increment_metric("subscription.created")
    current_app.logger.info("subscription_created")
    return json_response(success_payload(SUBSCRIBED_MESSAGE), status_code=201)


def _resolve_list_limit() -> int:
    raw = request.args.get("limit", type=int)
    if raw is None or raw <= 0:
        return DEFAULT_LIST_LIMIT
    return min(raw, MAX_LIST_LIMIT)


@subscription_bp.get("/api/subscriptions")
@jwt_required()
def list_subscriptions() -> Response:
    repository = get_subscription_dependencies().repository
    subscriptions = repository.list_recent(_resolve_list_limit())
    current_app.logger.info(
        "subscriptions_listed operator=%s count=%s",
        get_jwt_identity(),
        len(subscriptions),
    )
    data: dict[str, Any] = {
        "total": repository.count(),
        "subscriptions": _subscription_list_schema.dump(subscriptions),
    }
    return json_response(
        success_payload("Subscriptions retrieved", data=data), status_code=200
    )


@subscription_bp.get("/api/metrics")
@jwt_required()
def metrics_snapshot() -> Response:
    """Counters of the serving process (the CLI only sees its own process)."""
    data = {
        "rate_limit": build_rate_limit_metrics_payload(),
        "subscription": build_subscription_metrics_payload(),
    }
    return json_response(success_payload("Metrics snapshot", data=data), status_code=200)
