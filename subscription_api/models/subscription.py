import re
import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import validates

from subscription_api.application.errors import SchemaFault
from subscription_api.extensions.database import db

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(254), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    @validates("email")
    def validate_email(self, _key: str, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise SchemaFault({"email": "Email is required"})
        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise SchemaFault({"email": "Please enter a valid email address"})
        return normalized

    def __repr__(self) -> str:
        return f"<Subscription {self.email}>"
