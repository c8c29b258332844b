# purvita/multilevel/events/event_bus.py
"""
Subscription lifecycle event bus.
"""
from core.event_bus import EventBus


class SubscriptionEvents:
    """Subscription lifecycle event types."""
    PAYMENT_RECORDED = "payment.recorded"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELED = "subscription.canceled"


class SubscriptionEventBus(EventBus):

    def __init__(self):
        super().__init__(name="subscriptions")


# Process-wide instance
subscriptionEventBus = SubscriptionEventBus()
