import logging
import traceback
from typing import Any, Dict, Optional, Tuple

from flask import Response, current_app, has_app_context, jsonify

from subscription_api.exceptions import AppError

MODE_DEVELOPMENT = "development"
MODE_PRODUCTION = "production"

GENERIC_ERROR_MESSAGE = "Something went wrong!"
GENERIC_ERROR_CODE = "INTERNAL_ERROR"

SENSITIVE_DATA_FIELDS = {
    "password",
    "password_hash",
    "secret",
    "secret_key",
    "jwt_secret_key",
    "token",
}

_logger = logging.getLogger(__name__)


def _get_logger() -> logging.Logger:
    if has_app_context():
        return current_app.logger
    return _logger


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, dict):
        sanitized: Dict[str, Any] = {}
        for key, item in value.items():
            if str(key).strip().lower() in SENSITIVE_DATA_FIELDS:
                continue
            sanitized[key] = _sanitize_value(item)
        return sanitized
    if isinstance(value, list):
        return [_sanitize_value(item) for item in value]
    return value


def _exc_info(error: BaseException) -> Tuple[Any, BaseException, Any]:
    return type(error), error, error.__traceback__


def _format_trace(error: BaseException) -> str:
    return "".join(
        traceback.format_exception(type(error), error, error.__traceback__)
    )


def _raw_structure(error: AppError) -> Dict[str, Any]:
    raw = error.to_dict()
    if error.__cause__ is not None:
        raw["cause"] = repr(error.__cause__)
    return raw


def _generic_error_payload() -> Dict[str, Any]:
    return {
        "status": "error",
        "error": {
            "message": GENERIC_ERROR_MESSAGE,
            "code": GENERIC_ERROR_CODE,
        },
    }


def success_payload(
    message: str,
    data: Any = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"status": "success", "message": message}
    if data is not None:
        payload["data"] = _sanitize_value(data)
    if meta is not None:
        payload["meta"] = _sanitize_value(meta)
    return payload


def error_payload(
    message: str,
    code: str,
    *,
    status: str = "error",
    details: Any = None,
) -> Dict[str, Any]:
    error_body: Dict[str, Any] = {"message": message, "code": code}
    if details is not None:
        error_body["details"] = _sanitize_value(details)
    return {"status": status, "error": error_body}


def _render_development(error: AppError) -> Tuple[int, Dict[str, Any]]:
    _get_logger().error(
        "request_error code=%s status_code=%s message=%s",
        error.error_code,
        error.status_code,
        error.message,
        exc_info=_exc_info(error),
    )
    payload = error_payload(
        error.message,
        error.error_code,
        status=error.status,
        details=error.details,
    )
    payload["error"]["trace"] = _format_trace(error)
    payload["error"]["raw"] = _sanitize_value(_raw_structure(error))
    return error.status_code, payload


def _render_production(error: AppError) -> Tuple[int, Dict[str, Any]]:
    if error.is_operational:
        _get_logger().info(
            "request_error code=%s status_code=%s",
            error.error_code,
            error.status_code,
        )
        return error.status_code, error_payload(
            error.message,
            error.error_code,
            status=error.status,
            details=error.details,
        )

    _get_logger().error(
        "unexpected_error code=%s status_code=%s message=%s",
        error.error_code,
        error.status_code,
        error.message,
        exc_info=_exc_info(error),
    )
    return 500, _generic_error_payload()


def render_error(error: AppError, mode: str) -> Tuple[int, Dict[str, Any]]:
    """Build ``(http_status, payload)`` for an application error.

    Development mode exposes the trace and the raw error structure. Production
    mode exposes operational errors in abbreviated form and replaces every
    non-operational error with a fixed 500 payload. This function never raises.
    """
    try:
        if mode == MODE_DEVELOPMENT:
            return _render_development(error)
        return _render_production(error)
    except Exception:
        _logger.exception("error_renderer_failure")
        return 500, _generic_error_payload()


def json_response(payload: Dict[str, Any], status_code: int) -> Response:
    response = jsonify(payload)
    response.status_code = status_code
    return response
