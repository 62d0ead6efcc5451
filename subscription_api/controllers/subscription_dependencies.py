from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, cast

from flask import Flask, current_app
from flask_jwt_extended import create_access_token

from subscription_api.repositories import SubscriptionRepository

SUBSCRIPTION_DEPENDENCIES_EXTENSION_KEY = "subscription_dependencies"


@dataclass(frozen=True)
class SubscriptionDependencies:
    repository: SubscriptionRepository
    create_operator_token: Callable[[str], str]


def _create_operator_token(identity: str) -> str:
    minutes = int(current_app.config.get("JWT_ACCESS_TOKEN_EXPIRES_MINUTES", 60))
    return cast(
        str,
        create_access_token(
            identity=identity,
            expires_delta=timedelta(minutes=minutes),
            additional_claims={"role": "operator"},
        ),
    )


def _default_dependencies() -> SubscriptionDependencies:
    return SubscriptionDependencies(
        repository=SubscriptionRepository(),
        create_operator_token=_create_operator_token,
    )


def register_subscription_dependencies(
    app: Flask, dependencies: SubscriptionDependencies | None = None
) -> None:
    app.extensions[SUBSCRIPTION_DEPENDENCIES_EXTENSION_KEY] = (
        dependencies or _default_dependencies()
    )


def get_subscription_dependencies() -> SubscriptionDependencies:
    dependencies = current_app.extensions.get(SUBSCRIPTION_DEPENDENCIES_EXTENSION_KEY)
    if not isinstance(dependencies, SubscriptionDependencies):
        raise RuntimeError("Subscription dependencies are not registered.")
    return dependencies
