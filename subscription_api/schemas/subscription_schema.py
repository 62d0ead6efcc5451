from typing import Any

from marshmallow import EXCLUDE, Schema, fields, validate

from .sanitization import normalize_email


class NormalizedEmail(fields.Email):
    """Email field that trims and lower-cases before the address checks run."""

    def _deserialize(self, value: Any, attr: Any, data: Any, **kwargs: Any) -> str:
        deserialized = super()._deserialize(value, attr, data, **kwargs)
        return normalize_email(deserialized)


class SubscriptionRequestSchema(Schema):
    """Body of ``POST /api/subscribe``."""

    class Meta:
        unknown = EXCLUDE

    email = NormalizedEmail(
        required=True,
        validate=validate.Length(
            max=254, error="Email address must be at most {max} characters long."
        ),
        error_messages={
            "required": "Email is required",
            "invalid": "Invalid email address",
            "null": "Email is required",
        },
    )


class SubscriptionSchema(Schema):
    email = fields.String()
    created_at = fields.DateTime()
