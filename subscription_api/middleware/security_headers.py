from __future__ import annotations

from flask import Flask, Request, Response, request

BASELINE_HEADERS = {
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
}
HSTS_VALUE = "max-age=15552000; includeSubDomains"


def hsts_enabled(app: Flask) -> bool:
    configured = app.config.get("SECURITY_HSTS_ENABLED")
    if configured is None:
        return app.config.get("MODE") == "production"
    return bool(configured)


def _arrived_over_https(current_request: Request) -> bool:
    if current_request.is_secure:
        return True
    return current_request.headers.get("X-Forwarded-Proto", "").lower() == "https"


def register_security_headers(app: Flask) -> None:
    send_hsts = hsts_enabled(app)

    @app.after_request
    def attach_security_headers(response: Response) -> Response:
        response.headers.update(BASELINE_HEADERS)
        if send_hsts and _arrived_over_https(request):
            response.headers["Strict-Transport-Security"] = HSTS_VALUE
        return response
