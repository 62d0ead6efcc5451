from flask import Flask, Response, current_app

from subscription_api.application.services.error_translator_service import (
    translate_exception,
)
from subscription_api.utils.response_builder import (
    MODE_PRODUCTION,
    json_response,
    render_error,
)


def error_response(cause: BaseException) -> Response:
    """Translate any failure and render it for the current runtime mode."""
    error = translate_exception(cause)
    mode = str(current_app.config.get("MODE", MODE_PRODUCTION))
    status_code, payload = render_error(error, mode)
    return json_response(payload, status_code=status_code)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(Exception)  # type: ignore[misc]
    def handle_exception(e: Exception) -> Response:
        return error_response(e)
