from __future__ import annotations

import re
from typing import Any, Callable

from flask import has_request_context, request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import ExpiredSignatureError
from jwt.exceptions import InvalidTokenError as JWTInvalidTokenError
from marshmallow import ValidationError as MarshmallowValidationError
from werkzeug.exceptions import HTTPException, NotFound, RequestEntityTooLarge

from subscription_api.application.errors import CastFault, DuplicateKeyFault, SchemaFault
from subscription_api.application.interfaces.error_translator import ErrorTranslator
from subscription_api.exceptions import (
    AppError,
    DuplicateFieldError,
    InternalError,
    InvalidDataError,
    InvalidTokenError,
    PayloadTooLargeError,
    RouteNotFoundError,
    TokenExpiredError,
    ValidationError,
)

_NON_WORD = re.compile(r"[^A-Za-z0-9]+")


def _is_invalid_credential(cause: BaseException) -> bool:
    if isinstance(cause, ExpiredSignatureError):
        return False
    return isinstance(cause, (JWTInvalidTokenError, JWTExtendedException))


def _flatten_messages(messages: Any) -> list[str]:
    if isinstance(messages, str):
        return [messages]
    if isinstance(messages, dict):
        flattened: list[str] = []
        for value in messages.values():
            flattened.extend(_flatten_messages(value))
        return flattened
    if isinstance(messages, (list, tuple)):
        flattened = []
        for value in messages:
            flattened.extend(_flatten_messages(value))
        return flattened
    return [str(messages)]


def _from_cast_fault(cause: CastFault) -> AppError:
    return InvalidDataError(f"Invalid {cause.field}: {cause.value}")


def _from_duplicate_key(cause: DuplicateKeyFault) -> AppError:
    return DuplicateFieldError(
        f"Duplicate field value: {cause.value}. Please use another value."
    )


def _from_schema_fault(cause: SchemaFault) -> AppError:
    return ValidationError(
        f"Invalid input data. {'. '.join(_flatten_messages(cause.errors))}"
    )


def _from_marshmallow(cause: MarshmallowValidationError) -> AppError:
    return ValidationError(
        f"Invalid input data. {'. '.join(_flatten_messages(cause.messages))}"
    )


def _from_invalid_credential(_cause: BaseException) -> AppError:
    return InvalidTokenError()


def _from_expired_credential(_cause: BaseException) -> AppError:
    return TokenExpiredError()


def _from_not_found(_cause: BaseException) -> AppError:
    path = request.path if has_request_context() else "requested route"
    return RouteNotFoundError(f"Can't find {path} on this server!")


def _from_payload_too_large(_cause: BaseException) -> AppError:
    return PayloadTooLargeError()


def _from_http_exception(cause: HTTPException) -> AppError:
    status_code = int(cause.code or 500)
    name = cause.name or "HTTP Error"
    return AppError(
        cause.description or name,
        status_code,
        _NON_WORD.sub("_", name).strip("_").upper(),
        is_operational=status_code < 500,
    )


_Rule = tuple[Callable[[BaseException], bool], Callable[[Any], AppError]]

# Evaluated top to bottom; the first matching predicate wins.
_RULES: tuple[_Rule, ...] = (
    (lambda cause: isinstance(cause, CastFault), _from_cast_fault),
    (lambda cause: isinstance(cause, DuplicateKeyFault), _from_duplicate_key),
    (lambda cause: isinstance(cause, SchemaFault), _from_schema_fault),
    (
        lambda cause: isinstance(cause, MarshmallowValidationError),
        _from_marshmallow,
    ),
    (_is_invalid_credential, _from_invalid_credential),
    (lambda cause: isinstance(cause, ExpiredSignatureError), _from_expired_credential),
    (lambda cause: isinstance(cause, NotFound), _from_not_found),
    (lambda cause: isinstance(cause, RequestEntityTooLarge), _from_payload_too_large),
    (lambda cause: isinstance(cause, HTTPException), _from_http_exception),
)


class DefaultErrorTranslator(ErrorTranslator):
    def translate(self, cause: BaseException) -> AppError:
        if isinstance(cause, AppError):
            return cause

        for matches, build in _RULES:
            if matches(cause):
                return build(cause)

        error = InternalError()
        error.__cause__ = cause
        return error


_DEFAULT_ERROR_TRANSLATOR = DefaultErrorTranslator()


def get_error_translator() -> ErrorTranslator:
    return _DEFAULT_ERROR_TRANSLATOR


def translate_exception(cause: BaseException) -> AppError:
    return get_error_translator().translate(cause)
