# purvita/multilevel/services/subscription_lifecycle_service.py
"""
Subscription lifecycle - confirmed payments and cancellations.

Every transition is announced on the subscription event bus; listeners
(cancellation emails, subscription commissions) run in-process.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from core.utils import iso
from models.profile import Profile
from multilevel.events.event_bus import SubscriptionEventBus, SubscriptionEvents, subscriptionEventBus
from multilevel.repositories.payment_repository import PaymentRepository
from multilevel.repositories.phase_repository import PhaseRepository
from multilevel.repositories.subscription_repository import SubscriptionRepository, _UNSET
from multilevel.utils.chain_walker import ChainWalker
from services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)


class SubscriptionLifecycleService:

    def __init__(self, session: Session, bus: Optional[SubscriptionEventBus] = None):
        self.session = session
        self.bus = bus or subscriptionEventBus
        self.payments = PaymentRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.phases = PhaseRepository(session)
        self.audit = AuditLogService(session)

    async def handleConfirmedPayment(
            self,
            userId: str,
            amountCents: int,
            gateway: str,
            gatewayRef: str,
            periodEnd: Optional[datetime],
            planId: Optional[str] = None,
            subscriptionType: str = 'mlm'
    ) -> Dict[str, Any]:
        """
        Record a gateway-confirmed subscription payment and activate the subscription.

        Idempotent on gatewayRef.

        Returns:
            {"alreadyProcessed": bool}
        """
        if self.payments.findByGatewayRef(gatewayRef):
            logger.info(f"Payment {gatewayRef} already processed")
            return {"alreadyProcessed": True}

        was_active = self.subscriptions.hasActiveSubscription(userId)

        self.payments.insert(
            userId=userId,
            amountCents=amountCents,
            gateway=gateway,
            gatewayRef=gatewayRef,
            kind='subscription',
            status='paid',
            periodEnd=periodEnd
        )

        await self.bus.emit(SubscriptionEvents.PAYMENT_RECORDED, {
            "userId": userId,
            "amountCents": amountCents,
            "gateway": gateway,
            "gatewayRef": gatewayRef,
            "periodEnd": iso(periodEnd),
            "planId": planId,
        })

        subscription = self.subscriptions.upsertSubscription(
            userId=userId,
            status='active',
            gateway=gateway,
            periodEnd=periodEnd,
            subscriptionType=subscriptionType,
            planId=planId if planId is not None else _UNSET
        )

        self.phases.ensureBasePhase(userId)
        self._recalculatePhases(userId)

        await self.bus.emit(SubscriptionEvents.SUBSCRIPTION_UPDATED, {
            "subscription": subscription,
            "wasActive": was_active,
        })

        self.audit.logUserAction(
            'SUBSCRIPTION_ACTIVATED',
            'subscription',
            subscription.subscriptionID,
            {
                "userId": userId,
                "amountCents": amountCents,
                "gateway": gateway,
                "periodEnd": iso(periodEnd),
            },
            userId=userId
        )

        logger.info(f"✅ Subscription activated for user {userId} via {gateway} until {iso(periodEnd)}")
        return {"alreadyProcessed": False}

    def _recalculatePhases(self, userId: str) -> None:
        """Recalculate the member's phase, then the phases of the sponsor chain."""
        self.phases.recalculatePhase(userId)

        profile = self.session.query(Profile).filter_by(userID=userId).first()
        if profile is None:
            return

        def recalc(sponsor: Profile, level: int) -> bool:
            self.phases.recalculatePhase(sponsor.userID)
            return True

        ChainWalker(self.session).walk_upline(profile, recalc)

    async def cancelSubscription(
            self,
            userId: str,
            reason: str,
            locale: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Schedule cancellation at period end.

        Returns:
            {"canceled": bool, "alreadyCanceled": bool, "subscription": Subscription | None}
        """
        existing = self.subscriptions.findByUserId(userId)

        if existing is None:
            return {"canceled": False, "alreadyCanceled": False, "subscription": None}

        previous_status = existing.status

        if existing.status == 'canceled' or existing.cancelAtPeriodEnd:
            await self.bus.emit(SubscriptionEvents.SUBSCRIPTION_CANCELED, {
                "userId": userId,
                "subscription": existing,
                "previousStatus": previous_status,
                "reason": reason,
                "locale": locale,
            })
            return {"canceled": False, "alreadyCanceled": True, "subscription": existing}

        existing.cancelAtPeriodEnd = True
        self.session.flush()

        await self.bus.emit(SubscriptionEvents.SUBSCRIPTION_UPDATED, {
            "subscription": existing,
            "wasActive": previous_status == 'active',
        })
        await self.bus.emit(SubscriptionEvents.SUBSCRIPTION_CANCELED, {
            "userId": userId,
            "subscription": existing,
            "previousStatus": previous_status,
            "reason": reason,
            "locale": locale,
        })

        self.audit.logUserAction(
            'SUBSCRIPTION_CANCELED',
            'subscription',
            existing.subscriptionID,
            {
                "userId": userId,
                "reason": reason,
                "previousStatus": previous_status,
                "gateway": existing.gateway,
            },
            userId=userId
        )

        logger.info(f"Subscription of user {userId} set to cancel at period end ({reason})")
        return {"canceled": True, "alreadyCanceled": False, "subscription": existing}
