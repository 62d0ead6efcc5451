from __future__ import annotations

import json

import click
from flask import Flask

from subscription_api.controllers.subscription_dependencies import (
    get_subscription_dependencies,
)
from subscription_api.extensions.integration_metrics import (
    build_rate_limit_metrics_payload,
    build_subscription_metrics_payload,
    reset_metrics,
)


def register_subscription_commands(app: Flask) -> None:
    @app.cli.group("subscriptions")
    def subscriptions_group() -> None:
        """Operational commands for the subscription store."""

    @subscriptions_group.command("count")
    def subscriptions_count() -> None:
        total = get_subscription_dependencies().repository.count()
        click.echo(json.dumps({"total": total}))

    @subscriptions_group.command("issue-token")
    @click.option(
        "--identity",
        required=True,
        help="Operator name embedded as the token subject.",
    )
    def subscriptions_issue_token(identity: str) -> None:
        token = get_subscription_dependencies().create_operator_token(identity)
        click.echo(token)

    @subscriptions_group.command(
        "metrics",
        help=(
            "Counters recorded by this CLI process. The serving process "
            "exposes its own counters at GET /api/metrics."
        ),
    )
    @click.option(
        "--reset",
        is_flag=True,
        default=False,
        help="Reset counters after emitting the snapshot.",
    )
    def subscriptions_metrics(reset: bool) -> None:
        payload = {
            "rate_limit": build_rate_limit_metrics_payload(),
            "subscription": build_subscription_metrics_payload(),
        }
        click.echo(json.dumps(payload, sort_keys=True))
        if reset:
            reset_metrics()
