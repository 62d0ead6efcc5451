"""
Cross-origin access for the browser sign-up form.

Only origins listed in ``CORS_ALLOWED_ORIGINS`` receive ``Access-Control-*``
headers. Methods and request headers are the fixed set the form uses and
credentials are never shared.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, Response, request

from config import parse_csv

CORS_ALLOWED_METHODS = ("GET", "POST", "OPTIONS")
CORS_ALLOWED_HEADERS = ("Content-Type", "Accept")


@dataclass(frozen=True)
class CorsPolicy:
    allowed_origins: frozenset[str]
    max_age_seconds: int

    def allows(self, origin: str | None) -> bool:
        return bool(origin) and origin in self.allowed_origins

    def headers_for(self, origin: str) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "false",
            "Access-Control-Allow-Methods": ",".join(CORS_ALLOWED_METHODS),
            "Access-Control-Allow-Headers": ",".join(CORS_ALLOWED_HEADERS),
            "Access-Control-Max-Age": str(self.max_age_seconds),
            "Vary": "Origin",
        }


def build_cors_policy(app: Flask) -> CorsPolicy:
    origins = app.config.get("CORS_ALLOWED_ORIGINS") or ()
    if isinstance(origins, str):
        origins = parse_csv(origins)
    if "*" in origins:
        raise RuntimeError(
            "CORS misconfiguration: list explicit origins instead of '*'."
        )
    return CorsPolicy(
        allowed_origins=frozenset(origins),
        max_age_seconds=int(app.config.get("CORS_MAX_AGE_SECONDS", 600)),
    )


def register_cors(app: Flask) -> None:
    policy = build_cors_policy(app)
    app.extensions["cors_policy"] = policy

    @app.before_request
    def answer_preflight() -> Response | None:
        if request.method != "OPTIONS":
            return None
        origin = request.headers.get("Origin")
        if not policy.allows(origin):
            return None
        return app.make_response(("", 204))

    @app.after_request
    def add_cors_headers(response: Response) -> Response:
        origin = request.headers.get("Origin")
        if policy.allows(origin):
            response.headers.update(policy.headers_for(str(origin)))
        return response
