from __future__ import annotations

import importlib
import os
import threading
from dataclasses import dataclass
from time import monotonic, time
from typing import Any, Callable, Protocol

from flask import Flask, Response, current_app, g, request

from config import read_bool_env, read_int_env
from subscription_api.exceptions import RateLimitExceededError
from subscription_api.extensions.integration_metrics import increment_metric

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."

RULE_SUBSCRIBE = "subscribe"
RULE_DEFAULT = "default"

DEFAULT_WINDOW_SECONDS = 15 * 60

_SKIPPED_PATHS = {"/", "/health", "/api/health"}


def _get_client_ip() -> str:
    trust_proxy_headers = read_bool_env("RATE_LIMIT_TRUST_PROXY_HEADERS", False)
    if trust_proxy_headers:
        forwarded_for = str(request.headers.get("X-Forwarded-For", "")).strip()
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop
        real_ip = str(request.headers.get("X-Real-IP", "")).strip()
        if real_ip:
            return real_ip
    return str(request.remote_addr or "unknown")


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    limit: int
    window_seconds: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    rule: RateLimitRule
    remaining: int
    retry_after_seconds: int
    key: str

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.rule.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.retry_after_seconds),
            "X-RateLimit-Rule": self.rule.name,
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after_seconds)
        return headers

    def details(self) -> dict[str, Any]:
        return {
            "rule": self.rule.name,
            "limit": self.rule.limit,
            "window_seconds": self.rule.window_seconds,
            "retry_after_seconds": self.retry_after_seconds,
        }


class RateLimitStorage(Protocol):
    def consume(
        self,
        *,
        rule_name: str,
        key: str,
        window_seconds: int,
    ) -> tuple[int, int]:
        # Returns (count in current window including this request, seconds left).
        ...

    def reset(self) -> None:
        ...


class InMemoryRateLimitStorage:
    """Fixed windows anchored at each client's first counted request.

    Expired windows are swept at most once per ``sweep_interval_seconds`` so
    the map only holds clients seen within their current window.
    """

    def __init__(
        self,
        clock: Callable[[], float] = monotonic,
        *,
        sweep_interval_seconds: float = 60.0,
    ) -> None:
        self._clock = clock
        self._windows: dict[tuple[str, str], tuple[float, int, int]] = {}
        self._lock = threading.Lock()
        self._sweep_interval_seconds = sweep_interval_seconds
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep_expired(self, now: float) -> None:
        if now - self._last_sweep < self._sweep_interval_seconds:
            return
        self._last_sweep = now
        expired = [
            bucket_key
            for bucket_key, (window_start, _count, window_seconds) in self._windows.items()
            if now - window_start >= window_seconds
        ]
        for bucket_key in expired:
            del self._windows[bucket_key]

    def consume(
        self,
        *,
        rule_name: str,
        key: str,
        window_seconds: int,
    ) -> tuple[int, int]:
        now = self._clock()
        bucket_key = (rule_name, key)
        with self._lock:
            self._sweep_expired(now)
            window_start, count, _ = self._windows.get(
                bucket_key, (now, 0, window_seconds)
            )
            if now - window_start >= window_seconds:
                window_start, count = now, 0
            count += 1
            self._windows[bucket_key] = (window_start, count, window_seconds)
            retry_after_seconds = max(1, int(window_seconds - (now - window_start)))
            return count, retry_after_seconds

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


class RedisRateLimitStorage:
    def __init__(
        self, client: Any, *, key_prefix: str = "subscription-api:rate-limit"
    ) -> None:
        self._client = client
        self._key_prefix = key_prefix

    def _window_slot(self, window_seconds: int) -> tuple[int, int]:
        now_seconds = int(time())
        slot = now_seconds // window_seconds
        retry_after_seconds = max(1, window_seconds - (now_seconds % window_seconds))
        return slot, retry_after_seconds

    def consume(
        self,
        *,
        rule_name: str,
        key: str,
        window_seconds: int,
    ) -> tuple[int, int]:
        slot, retry_after_seconds = self._window_slot(window_seconds)
        redis_key = f"{self._key_prefix}:{rule_name}:{key}:{slot}"
        consumed = int(self._client.incr(redis_key))
        if consumed == 1:
            self._client.expire(redis_key, window_seconds + 2)
        return consumed, retry_after_seconds

    def reset(self) -> None:
        # Keys expire naturally by TTL.
        return None


class RateLimiterService:
    def __init__(
        self,
        *,
        rules: dict[str, RateLimitRule],
        storage: RateLimitStorage,
        backend_name: str = "memory",
    ) -> None:
        self._rules = rules
        self._storage = storage
        self.backend_name = backend_name
        self._route_rule_order: tuple[tuple[str, str], ...] = (
            ("/api/subscribe", RULE_SUBSCRIBE),
            ("/subscribe", RULE_SUBSCRIBE),
        )

    @classmethod
    def from_env(cls) -> "RateLimiterService":
        default_window = read_int_env(
            "RATE_LIMIT_WINDOW_SECONDS", DEFAULT_WINDOW_SECONDS
        )
        rules = {
            RULE_SUBSCRIBE: RateLimitRule(
                name=RULE_SUBSCRIBE,
                limit=read_int_env("RATE_LIMIT_SUBSCRIBE_LIMIT", 5),
                window_seconds=read_int_env(
                    "RATE_LIMIT_SUBSCRIBE_WINDOW_SECONDS", default_window
                ),
            ),
            RULE_DEFAULT: RateLimitRule(
                name=RULE_DEFAULT,
                limit=read_int_env("RATE_LIMIT_DEFAULT_LIMIT", 100),
                window_seconds=default_window,
            ),
        }
        storage, backend_name = _build_storage_from_env()
        return cls(rules=rules, storage=storage, backend_name=backend_name)

    def get_rule(self, name: str) -> RateLimitRule:
        return self._rules[name]

    def set_rule(
        self,
        name: str,
        *,
        limit: int | None = None,
        window_seconds: int | None = None,
    ) -> None:
        current = self._rules.get(name)
        if current is None:
            raise KeyError(f"Rate limit rule '{name}' not found.")
        resolved_limit = current.limit if limit is None else max(limit, 1)
        resolved_window = (
            current.window_seconds if window_seconds is None else max(window_seconds, 1)
        )
        self._rules[name] = RateLimitRule(
            name=current.name,
            limit=resolved_limit,
            window_seconds=resolved_window,
        )
        self.reset()

    def reset(self) -> None:
        self._storage.reset()

    def resolve_rule(self, path: str) -> RateLimitRule:
        for prefix, rule_name in self._route_rule_order:
            if path == prefix or path.startswith(f"{prefix}/"):
                return self._rules[rule_name]
        return self._rules[RULE_DEFAULT]

    def consume(self, *, path: str, client_ip: str) -> RateLimitDecision:
        rule = self.resolve_rule(path)
        key = f"ip:{client_ip}"
        consumed, retry_after_seconds = self._storage.consume(
            rule_name=rule.name,
            key=key,
            window_seconds=rule.window_seconds,
        )
        allowed = consumed <= rule.limit
        remaining = max(rule.limit - min(consumed, rule.limit), 0)
        return RateLimitDecision(
            allowed=allowed,
            rule=rule,
            remaining=remaining,
            retry_after_seconds=max(1, retry_after_seconds),
            key=key,
        )


def _build_storage_from_env() -> tuple[RateLimitStorage, str]:
    backend = str(os.getenv("RATE_LIMIT_BACKEND", "memory")).strip().lower()
    if backend != "redis":
        return InMemoryRateLimitStorage(), "memory"

    redis_url = str(
        os.getenv("RATE_LIMIT_REDIS_URL", os.getenv("REDIS_URL", ""))
    ).strip()
    if not redis_url:
        return InMemoryRateLimitStorage(), "memory"

    try:
        redis_client_cls = getattr(importlib.import_module("redis"), "Redis")
        client = redis_client_cls.from_url(redis_url)
        client.ping()
    except Exception:
        return InMemoryRateLimitStorage(), "memory"
    return RedisRateLimitStorage(client), "redis"


def _should_skip_rate_limit() -> bool:
    if request.method == "OPTIONS":
        return True
    return request.path in _SKIPPED_PATHS


def get_rate_limiter(app: Flask) -> RateLimiterService:
    limiter = app.extensions.get("rate_limiter")
    if not isinstance(limiter, RateLimiterService):
        raise RuntimeError("Rate limiter is not registered.")
    return limiter


def register_rate_limit_guard(
    app: Flask, limiter: RateLimiterService | None = None
) -> None:
    if not read_bool_env("RATE_LIMIT_ENABLED", True):
        return

    limiter = limiter or RateLimiterService.from_env()
    app.extensions["rate_limiter"] = limiter
    app.logger.info("rate_limit_backend_config backend_name=%s", limiter.backend_name)

    def rate_limit_guard() -> None:
        if _should_skip_rate_limit():
            return None

        decision = limiter.consume(path=request.path, client_ip=_get_client_ip())
        g.rate_limit_headers = decision.headers()

        if decision.allowed:
            increment_metric("rate_limit.allowed")
            increment_metric(f"rate_limit.allowed.{decision.rule.name}")
            return None

        increment_metric("rate_limit.blocked")
        increment_metric(f"rate_limit.blocked.{decision.rule.name}")
        current_app.logger.warning(
            "rate_limit_blocked rule=%s key=%s path=%s",
            decision.rule.name,
            decision.key,
            request.path,
        )
        raise RateLimitExceededError(RATE_LIMIT_MESSAGE, details=decision.details())

    def attach_rate_limit_headers(response: Response) -> Response:
        headers = getattr(g, "rate_limit_headers", None)
        if isinstance(headers, dict):
            for header_name, header_value in headers.items():
                response.headers[header_name] = str(header_value)
        return response

    app.before_request(rate_limit_guard)
    app.after_request(attach_rate_limit_headers)
