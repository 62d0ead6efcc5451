from .api_exceptions import (
    AppError,
    DuplicateFieldError,
    InternalError,
    InvalidDataError,
    InvalidTokenError,
    PayloadTooLargeError,
    RateLimitExceededError,
    RouteNotFoundError,
    TokenExpiredError,
    ValidationError,
)

__all__ = [
    "AppError",
    "ValidationError",
    "DuplicateFieldError",
    "InvalidDataError",
    "InvalidTokenError",
    "TokenExpiredError",
    "RouteNotFoundError",
    "PayloadTooLargeError",
    "RateLimitExceededError",
    "InternalError",
]
