"""
Service status endpoints.

- `GET /` confirms the process is serving requests.
- `GET /api/health` (and the legacy `GET /health`) reports uptime and the
  persistence connectivity state. They always answer 200 so that a database
  outage does not take the process out of the load balancer.
"""

from __future__ import annotations

from datetime import datetime, timezone
from time import monotonic

from flask import Blueprint, Response, current_app, jsonify

from subscription_api.extensions.database import (
    STATE_CONNECTED,
    STATE_DISCONNECTED,
    get_persistence_monitor,
)

health_bp = Blueprint("health", __name__)


@health_bp.get("/")
def root() -> tuple[Response, int]:
    service_name = current_app.config.get("SERVICE_NAME", "Subscription API")
    return (
        jsonify({"status": "success", "message": f"{service_name} is running"}),
        200,
    )


@health_bp.get("/health")
@health_bp.get("/api/health")
def health() -> tuple[Response, int]:
    monitor = get_persistence_monitor(current_app)
    database = STATE_CONNECTED if monitor.ping() else STATE_DISCONNECTED
    started_at = current_app.extensions.get("started_at", monotonic())
    return (
        jsonify(
            {
                "status": "healthy",
                "database": database,
                "uptime_seconds": round(monotonic() - started_at, 3),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ),
        200,
    )
