import copy

import pytest
from marshmallow import Schema, fields, validate

from subscription_api.exceptions import ValidationError
from subscription_api.middleware.validation import RequestValidator
from subscription_api.schemas import SubscriptionRequestSchema


def _validator() -> RequestValidator:
    return RequestValidator(SubscriptionRequestSchema())


def test_valid_email_is_trimmed_and_lower_cased() -> None:
    assert _validator().validate({"email": "  USER@Example.com "}) == {
        "email": "user@example.com"
    }


def test_unknown_fields_are_ignored() -> None:
    assert _validator().validate({"email": "a@b.co", "name": "x"}) == {
        "email": "a@b.co"
    }


@pytest.mark.parametrize("bad_email", ["not-an-email", "user@", "@example.com", ""])
def test_invalid_email_reports_email_field(bad_email: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        _validator().validate({"email": bad_email})

    error = exc_info.value
    assert error.status_code == 400
    assert error.error_code == "VALIDATION_ERROR"
    assert error.details
    assert all(entry["field"] == "email" for entry in error.details)
    assert error.details[0]["rejected_value"] == bad_email


def test_missing_email_is_reported() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _validator().validate({})

    assert exc_info.value.details == [
        {"field": "email", "message": "Email is required", "rejected_value": None}
    ]


def test_every_failing_rule_is_reported_without_deduplication() -> None:
    too_long = "x" * 260

    with pytest.raises(ValidationError) as exc_info:
        _validator().validate({"email": too_long})

    details = exc_info.value.details
    assert [entry["field"] for entry in details] == ["email", "email"]
    assert details[0]["message"] == "Invalid email address"
    assert details[1]["message"] == "Email address must be at most 254 characters long."


def test_violations_follow_rule_evaluation_order() -> None:
    class SignupSchema(Schema):
        email = fields.Email(required=True)
        name = fields.String(required=True, validate=validate.Length(min=2))

    with pytest.raises(ValidationError) as exc_info:
        RequestValidator(SignupSchema()).validate({"email": "nope", "name": "a"})

    assert [entry["field"] for entry in exc_info.value.details] == ["email", "name"]


def test_non_object_body_is_reported_against_body() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _validator().validate(["user@example.com"])

    assert exc_info.value.details[0]["field"] == "body"


def test_validator_does_not_mutate_input() -> None:
    payload = {"email": "  USER@Example.com ", "extra": [1, 2]}
    snapshot = copy.deepcopy(payload)

    _validator().validate(payload)

    assert payload == snapshot


def test_control_characters_are_rejected_not_stripped() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _validator().validate({"email": "a\u0000b@Example.com"})

    error = exc_info.value
    assert error.error_code == "VALIDATION_ERROR"
    assert error.details[0]["field"] == "email"
    assert error.details[0]["rejected_value"] == "a\u0000b@Example.com"
