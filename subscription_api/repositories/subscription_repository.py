from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import DataError, IntegrityError

from subscription_api.application.errors import CastFault, DuplicateKeyFault
from subscription_api.extensions.database import db
from subscription_api.models.subscription import Subscription


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class SubscriptionRepository:
    """Persistence gateway for subscriptions.

    Uniqueness of ``email`` is enforced by the database constraint; a losing
    concurrent insert surfaces as :class:`DuplicateKeyFault`.
    """

    def find_one(self, email: str) -> Subscription | None:
        statement = select(Subscription).where(
            Subscription.email == _normalize_email(email)
        )
        return db.session.execute(statement).scalar_one_or_none()

    def create(self, email: str) -> Subscription:
        subscription = Subscription(email=email)
        db.session.add(subscription)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise DuplicateKeyFault({"email": subscription.email}) from exc
        except DataError as exc:
            db.session.rollback()
            raise CastFault("email", email) from exc
        return subscription

    def count(self) -> int:
        return int(
            db.session.execute(select(func.count(Subscription.id))).scalar_one()
        )

    def list_recent(self, limit: int = 100) -> list[Subscription]:
        statement = (
            select(Subscription)
            .order_by(Subscription.created_at.desc())
            .limit(max(limit, 1))
        )
        return list(db.session.execute(statement).scalars())
