# purvita/multilevel/repositories/subscription_repository.py
"""
Subscription persistence.

MLM and affiliate subscriptions are mutually exclusive: activating one type
cancels the user's active subscription of the other type.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.utils import utcnow
from models.subscription import Subscription

logger = logging.getLogger(__name__)

_UNSET = object()

SUBSCRIPTION_TYPES = ('mlm', 'affiliate')
SUBSCRIPTION_STATUSES = ('active', 'past_due', 'canceled', 'unpaid')


class SubscriptionRepository:
    """Subscription access."""

    def __init__(self, session: Session):
        self.session = session

    def findByUserId(self, userId: str, subscriptionType: Optional[str] = None) -> Optional[Subscription]:
        """
        Newest active subscription, else the newest one of any status.
        """
        query = self.session.query(Subscription).filter(Subscription.userID == userId)
        if subscriptionType:
            query = query.filter(Subscription.subscriptionType == subscriptionType)

        active = (
            query.filter(Subscription.status == 'active')
            .order_by(Subscription.createdAt.desc())
            .first()
        )
        if active:
            return active

        return query.order_by(Subscription.createdAt.desc()).first()

    def findAllByUserId(self, userId: str) -> List[Subscription]:
        return (
            self.session.query(Subscription)
            .filter(Subscription.userID == userId)
            .order_by(Subscription.createdAt.desc())
            .all()
        )

    def upsertSubscription(
            self,
            userId: str,
            status: str,
            gateway: str,
            periodEnd: Optional[datetime],
            subscriptionType: str = 'mlm',
            planId=_UNSET,
            defaultPaymentMethodId=_UNSET,
            cancelAtPeriodEnd: bool = False
    ) -> Subscription:
        """
        Update the newest subscription of this type or insert a new one.
        """
        if subscriptionType not in SUBSCRIPTION_TYPES:
            raise ValueError(f"Unknown subscription type: {subscriptionType}")

        if status == 'active':
            other_type = 'affiliate' if subscriptionType == 'mlm' else 'mlm'
            other = (
                self.session.query(Subscription)
                .filter(
                    Subscription.userID == userId,
                    Subscription.subscriptionType == other_type,
                    Subscription.status == 'active'
                )
                .order_by(Subscription.createdAt.desc())
                .first()
            )
            if other:
                other.status = 'canceled'
                other.cancelAtPeriodEnd = False
                logger.info(
                    f"Canceled {other_type} subscription {other.subscriptionID} because "
                    f"{subscriptionType} was activated for user {userId}"
                )

        subscription = (
            self.session.query(Subscription)
            .filter(
                Subscription.userID == userId,
                Subscription.subscriptionType == subscriptionType
            )
            .order_by(Subscription.createdAt.desc())
            .first()
        )

        if subscription is None:
            subscription = Subscription(userID=userId, subscriptionType=subscriptionType)
            self.session.add(subscription)

        subscription.status = status
        subscription.gateway = gateway
        subscription.currentPeriodEnd = periodEnd
        subscription.cancelAtPeriodEnd = bool(cancelAtPeriodEnd)
        if planId is not _UNSET:
            subscription.planID = planId
        if defaultPaymentMethodId is not _UNSET:
            subscription.defaultPaymentMethodID = defaultPaymentMethodId

        self.session.flush()
        return subscription

    def updateStatusByUserId(
            self,
            userId: str,
            status: str,
            planId=_UNSET,
            currentPeriodEnd=_UNSET,
            cancelAtPeriodEnd=_UNSET,
            defaultPaymentMethodId=_UNSET
    ) -> Subscription:
        """Update the newest subscription row (inserting one if none exists)."""
        if status not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"Unknown subscription status: {status}")

        subscription = (
            self.session.query(Subscription)
            .filter(Subscription.userID == userId)
            .order_by(Subscription.createdAt.desc())
            .first()
        )

        if subscription is None:
            subscription = Subscription(userID=userId)
            self.session.add(subscription)

        subscription.status = status
        if planId is not _UNSET:
            subscription.planID = planId
        if currentPeriodEnd is not _UNSET:
            subscription.currentPeriodEnd = currentPeriodEnd
        if cancelAtPeriodEnd is not _UNSET:
            subscription.cancelAtPeriodEnd = bool(cancelAtPeriodEnd)
        if defaultPaymentMethodId is not _UNSET:
            subscription.defaultPaymentMethodID = defaultPaymentMethodId

        self.session.flush()
        return subscription

    def hasActiveSubscription(self, userId: str) -> bool:
        return self.session.query(Subscription.subscriptionID).filter(
            Subscription.userID == userId,
            Subscription.status == 'active'
        ).first() is not None

    def countActive(self) -> int:
        """Distinct users holding an active subscription."""
        count = self.session.query(
            func.count(func.distinct(Subscription.userID))
        ).filter(Subscription.status == 'active').scalar()
        return int(count or 0)

    def countWaitlisted(self) -> int:
        count = self.session.query(func.count(Subscription.subscriptionID)).filter(
            Subscription.waitlisted.is_(True)
        ).scalar()
        return int(count or 0)

    def findDueForRenewal(self, daysBeforeExpiry: int = 1) -> List[Subscription]:
        """
        Active or past_due subscriptions ending within the window,
        excluding those set to cancel at period end.
        """
        threshold = utcnow() + timedelta(days=daysBeforeExpiry)
        return (
            self.session.query(Subscription)
            .filter(
                Subscription.status.in_(('active', 'past_due')),
                or_(Subscription.cancelAtPeriodEnd.is_(False), Subscription.cancelAtPeriodEnd.is_(None)),
                Subscription.currentPeriodEnd.isnot(None),
                Subscription.currentPeriodEnd <= threshold
            )
            .order_by(Subscription.currentPeriodEnd.asc())
            .all()
        )
