# purvita/multilevel/events/handlers.py
"""
Subscription event handlers.
Side effects of lifecycle transitions: cancellation emails and
subscription commissions.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Optional

from sqlalchemy.orm import object_session

from core.db import get_db_session_ctx
from multilevel.events.event_bus import SubscriptionEvents
from multilevel.services.subscription_commission_service import SubscriptionCommissionService
from multilevel.services.subscription_notification_service import SubscriptionNotificationService

logger = logging.getLogger(__name__)


@contextmanager
def _session_for(subscription: Optional[Any]):
    """
    Reuse the session the emitting service works in, so uncommitted
    changes are visible. Falls back to a fresh committed session.
    """
    session = object_session(subscription) if subscription is not None else None
    if session is not None:
        yield session
        return

    with get_db_session_ctx() as new_session:
        yield new_session


async def handle_subscription_canceled(event: Dict[str, Any]):
    """Send the cancellation email for subscription.canceled events."""
    if event.get("type") != SubscriptionEvents.SUBSCRIPTION_CANCELED:
        return

    payload = event.get("payload") or {}
    user_id = payload.get("userId")

    if not user_id:
        logger.error("subscription.canceled event missing userId")
        return

    try:
        with _session_for(payload.get("subscription")) as session:
            notifications = SubscriptionNotificationService(session)
            sent = await notifications.sendCancellationEmail(
                user_id,
                payload.get("reason") or 'user_requested',
                payload.get("locale")
            )

        if sent:
            logger.info(f"✓ Cancellation email sent to user {user_id}")
        else:
            logger.warning(f"Cancellation email not sent to user {user_id}")

    except Exception as e:
        logger.error(f"Error handling cancellation for user {user_id}: {e}", exc_info=True)


async def handle_subscription_updated(event: Dict[str, Any]):
    """Pay subscription commissions when a subscription becomes active."""
    if event.get("type") != SubscriptionEvents.SUBSCRIPTION_UPDATED:
        return

    payload = event.get("payload") or {}
    subscription = payload.get("subscription")

    if subscription is None:
        logger.error("subscription.updated event missing subscription")
        return

    try:
        with _session_for(subscription) as session:
            service = SubscriptionCommissionService(session)
            created = await service.processSubscriptionCommission(
                subscription,
                bool(payload.get("wasActive"))
            )

        if created:
            logger.info(
                f"✓ {len(created)} subscription commission(s) created for user {subscription.userID}"
            )

    except Exception as e:
        logger.error(f"Error processing subscription commissions: {e}", exc_info=True)
