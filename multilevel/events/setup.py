# purvita/multilevel/events/setup.py
"""
Register subscription event handlers with the subscription event bus.
"""
import logging
from typing import Callable, List

from multilevel.events.event_bus import subscriptionEventBus
from multilevel.events.handlers import handle_subscription_canceled, handle_subscription_updated

logger = logging.getLogger(__name__)

_unsubscribers: List[Callable[[], None]] = []


def setup_subscription_event_handlers():
    """
    Register all subscription event handlers.

    Called once during application startup; repeated calls are no-ops.
    """
    if _unsubscribers:
        logger.debug("Subscription event handlers already registered")
        return

    logger.info("Setting up subscription event handlers...")

    _unsubscribers.append(subscriptionEventBus.subscribe(handle_subscription_canceled))
    _unsubscribers.append(subscriptionEventBus.subscribe(handle_subscription_updated))

    logger.info(f"Subscription event handlers registered ({len(_unsubscribers)})")


def teardown_subscription_event_handlers():
    """Unregister the handlers. Used on shutdown and in tests."""
    logger.info("Tearing down subscription event handlers...")

    while _unsubscribers:
        _unsubscribers.pop()()

    logger.info("Subscription event handlers unregistered")
