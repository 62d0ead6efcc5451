from __future__ import annotations

import threading
from collections import Counter
from typing import Any

_lock = threading.Lock()
_counters: Counter[str] = Counter()


def increment_metric(name: str, amount: int = 1) -> None:
    if amount <= 0:
        return
    with _lock:
        _counters[name] += amount


def snapshot_metrics(prefix: str | None = None) -> dict[str, int]:
    with _lock:
        raw = dict(_counters)
    if prefix is None:
        return raw
    return {key: value for key, value in raw.items() if key.startswith(prefix)}


def reset_metrics() -> None:
    with _lock:
        _counters.clear()


def reset_metrics_for_tests() -> None:
    reset_metrics()


def build_rate_limit_metrics_payload() -> dict[str, Any]:
    metrics = snapshot_metrics(prefix="rate_limit.")
    return {
        "component": "rate_limit",
        "counters": metrics,
        "summary": {
            "allowed": metrics.get("rate_limit.allowed", 0),
            "blocked": metrics.get("rate_limit.blocked", 0),
        },
    }


def build_subscription_metrics_payload() -> dict[str, Any]:
    metrics = snapshot_metrics(prefix="subscription.")
    return {
        "component": "subscription",
        "counters": metrics,
        "summary": {
            "created": metrics.get("subscription.created", 0),
            "duplicates": metrics.get("subscription.duplicate", 0),
        },
    }
