from .subscription_schema import SubscriptionRequestSchema, SubscriptionSchema

__all__ = [
    "SubscriptionRequestSchema",
    "SubscriptionSchema",
]
