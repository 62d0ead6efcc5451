from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar, cast

from flask import request
from marshmallow import Schema
from marshmallow import ValidationError as MarshmallowValidationError

from subscription_api.exceptions import ValidationError

VALIDATION_FAILED_MESSAGE = "Validation failed"

F = TypeVar("F", bound=Callable[..., Any])


def _rejected_value(data: Any, field: str) -> Any:
    if isinstance(data, dict):
        return data.get(field)
    return data


def _collect_violations(
    messages: Any, data: Any, prefix: str = ""
) -> list[dict[str, Any]]:
    violations: list[dict[str, Any]] = []
    if not isinstance(messages, dict):
        for message in messages if isinstance(messages, list) else [messages]:
            violations.append(
                {"field": prefix or "body", "message": str(message), "rejected_value": data}
            )
        return violations

    for field, field_messages in messages.items():
        field_name = "body" if field == "_schema" else str(field)
        qualified = f"{prefix}.{field_name}" if prefix else field_name
        value = data if field == "_schema" else _rejected_value(data, str(field))
        if isinstance(field_messages, dict):
            violations.extend(_collect_violations(field_messages, value, qualified))
            continue
        for message in field_messages:
            violations.append(
                {"field": qualified, "message": str(message), "rejected_value": value}
            )
    return violations


class RequestValidator:
    """Runs every rule of a marshmallow schema and reports all violations.

    Returns the normalized values on success; otherwise raises one
    ``ValidationError`` whose ``details`` lists one entry per failing rule,
    in rule evaluation order.
    """

    def __init__(self, schema: Schema) -> None:
        self._schema = schema

    def validate(self, data: Any) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], self._schema.load(data))
        except MarshmallowValidationError as exc:
            raise ValidationError(
                VALIDATION_FAILED_MESSAGE,
                details=_collect_violations(exc.messages, data),
            ) from exc


def validate_json_body(schema: Schema) -> Callable[[F], F]:
    validator = RequestValidator(schema)

    def decorator(view: F) -> F:
        @wraps(view)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            payload = request.get_json(silent=True)
            validated_data = validator.validate({} if payload is None else payload)
            return view(*args, **kwargs, **validated_data)

        return cast(F, wrapper)

    return decorator
