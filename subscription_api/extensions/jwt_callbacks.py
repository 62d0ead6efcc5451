from typing import Any, Dict

from flask import Response
from flask_jwt_extended import JWTManager
from flask_jwt_extended.exceptions import NoAuthorizationError
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from subscription_api.extensions.error_handlers import error_response


def register_jwt_callbacks(jwt: JWTManager) -> None:
    """Route credential failures through the shared error pipeline."""

    @jwt.expired_token_loader  # type: ignore[misc]
    def expired_token_callback(
        jwt_header: Dict[str, Any], jwt_payload: Dict[str, Any]
    ) -> Response:
        return error_response(ExpiredSignatureError("Signature has expired"))

    @jwt.invalid_token_loader  # type: ignore[misc]
    def invalid_token_callback(error: str) -> Response:
        return error_response(InvalidTokenError(error))

    @jwt.unauthorized_loader  # type: ignore[misc]
    def missing_token_callback(error: str) -> Response:
        return error_response(NoAuthorizationError(error))