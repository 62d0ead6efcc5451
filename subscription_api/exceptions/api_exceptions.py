from typing import Any, Dict, Optional


class AppError(Exception):
    """Structured, immutable application error.

    ``status`` is derived from ``status_code``: ``"fail"`` for client errors
    (4xx) and ``"error"`` otherwise. ``is_operational`` marks anticipated
    failures whose message is safe to show to API clients.
    """

    default_message = "Something went wrong!"
    default_code = "INTERNAL_ERROR"
    default_status_code = 500

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        *,
        details: Any = None,
        is_operational: bool = True,
    ) -> None:
        resolved_message = message if message is not None else self.default_message
        super().__init__(resolved_message)
        self.message = resolved_message
        self.status_code = int(
            status_code if status_code is not None else self.default_status_code
        )
        self.status = "fail" if 400 <= self.status_code <= 499 else "error"
        self.error_code = error_code if error_code is not None else self.default_code
        self.is_operational = is_operational
        self.details = details
        self._sealed = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False) and not name.startswith("__"):
            raise AttributeError(f"{type(self).__name__} is immutable")
        super().__setattr__(name, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "status_code": self.status_code,
            "status": self.status,
            "error_code": self.error_code,
            "is_operational": self.is_operational,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code}, error_code={self.error_code!r})"
        )


class ValidationError(AppError):
    default_message = "Validation failed"
    default_code = "VALIDATION_ERROR"
    default_status_code = 400


class DuplicateFieldError(AppError):
    default_message = "Duplicate field value. Please use another value."
    default_code = "DUPLICATE_FIELD"
    default_status_code = 400


class InvalidDataError(AppError):
    default_message = "Invalid input data."
    default_code = "INVALID_DATA"
    default_status_code = 400


class InvalidTokenError(AppError):
    default_message = "Invalid token. Please log in again."
    default_code = "INVALID_TOKEN"
    default_status_code = 401


class TokenExpiredError(AppError):
    default_message = "Your token has expired. Please log in again."
    default_code = "TOKEN_EXPIRED"
    default_status_code = 401


class RouteNotFoundError(AppError):
    default_message = "Route not found"
    default_code = "ROUTE_NOT_FOUND"
    default_status_code = 404


class PayloadTooLargeError(AppError):
    default_message = "Request body is too large."
    default_code = "PAYLOAD_TOO_LARGE"
    default_status_code = 413


class RateLimitExceededError(AppError):
    default_message = "Too many requests from this IP, please try again later."
    default_code = "RATE_LIMIT_EXCEEDED"
    default_status_code = 429


class InternalError(AppError):
    """Catch-all fault. Non-operational unless explicitly marked otherwise."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Any = None,
        is_operational: bool = False,
    ) -> None:
        super().__init__(
            message,
            500,
            "INTERNAL_ERROR",
            details=details,
            is_operational=is_operational,
        )
