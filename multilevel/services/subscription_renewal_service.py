# purvita/multilevel/services/subscription_renewal_service.py
"""
Automatic subscription renewals.

Flow per due subscription:
    1. Resolve the plan price (DEFAULT_SUBSCRIPTION_PRICE_CENTS without a plan)
    2. Charge through the subscription's gateway (stripe / wallet / paypal)
    3. On success record the payment (extends the period) and email the member
    4. On failure mark the subscription past_due and email the member
Each subscription is committed on its own; one failure never stops the run.
"""
import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import Config
from core.utils import decimal_to_cents, utcnow
from models.payment import PaymentMethod
from models.plan import Plan
from models.subscription import Subscription
from multilevel.errors import WalletError
from multilevel.events.event_bus import SubscriptionEventBus
from multilevel.repositories.subscription_repository import SubscriptionRepository
from multilevel.services.subscription_lifecycle_service import SubscriptionLifecycleService
from multilevel.services.subscription_notification_service import SubscriptionNotificationService
from multilevel.services.wallet_service import WalletService
from payments.paypal_billing_service import PayPalBillingService
from payments.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class SubscriptionRenewalService:

    def __init__(
            self,
            session: Session,
            bus: Optional[SubscriptionEventBus] = None,
            stripeGateway: Optional[StripeGateway] = None,
            paypalService: Optional[PayPalBillingService] = None,
            notifications: Optional[SubscriptionNotificationService] = None
    ):
        self.session = session
        self.subscriptions = SubscriptionRepository(session)
        self.lifecycle = SubscriptionLifecycleService(session, bus)
        self.wallet = WalletService(session)
        self.stripe = stripeGateway or StripeGateway()
        self.paypal = paypalService or PayPalBillingService(session)
        self.notifications = notifications or SubscriptionNotificationService(session)

    async def processRenewals(self, daysBeforeExpiry: int = 1) -> Dict[str, Any]:
        """
        Renew every subscription due within daysBeforeExpiry days.

        Returns:
            {"totalProcessed", "successful", "failed", "results": [...]}
        """
        logger.info("=" * 60)
        logger.info(f"Starting renewal processing (window: {daysBeforeExpiry} day(s))")

        summary: Dict[str, Any] = {
            "totalProcessed": 0,
            "successful": 0,
            "failed": 0,
            "results": [],
        }

        due = self.findSubscriptionsNeedingRenewal(daysBeforeExpiry)
        summary["totalProcessed"] = len(due)
        logger.info(f"Found {len(due)} subscriptions to renew")

        for subscription in due:
            result = await self.renewSubscription(subscription)
            summary["results"].append(result)

            if result["success"]:
                summary["successful"] += 1
            else:
                summary["failed"] += 1

        logger.info(
            f"Renewal processing complete: total={summary['totalProcessed']}, "
            f"successful={summary['successful']}, failed={summary['failed']}"
        )
        logger.info("=" * 60)
        return summary

    def findSubscriptionsNeedingRenewal(self, daysBeforeExpiry: int) -> List[Subscription]:
        """
        Due subscriptions that can be charged: wallet and paypal always,
        stripe only with a saved payment method.
        """
        due = self.subscriptions.findDueForRenewal(daysBeforeExpiry)
        return [
            sub for sub in due
            if sub.gateway in ('wallet', 'paypal')
            or (sub.gateway == 'stripe' and sub.defaultPaymentMethodID)
        ]

    def getPlanPriceCents(self, subscription: Subscription) -> int:
        default_price = int(Config.get(Config.DEFAULT_SUBSCRIPTION_PRICE_CENTS, 3499))
        if not subscription.planID:
            return default_price

        plan = self.session.query(Plan).filter_by(planID=subscription.planID).first()
        if plan is None or plan.price is None:
            return default_price

        price = decimal_to_cents(plan.price)
        return price if price > 0 else default_price

    def _nextPeriodEnd(self):
        return utcnow() + timedelta(days=int(Config.get(Config.SUBSCRIPTION_PERIOD_DAYS, 30)))

    async def renewSubscription(self, subscription: Subscription) -> Dict[str, Any]:
        user_id = subscription.userID
        logger.info(f"Processing renewal for user {user_id} via {subscription.gateway}")

        if subscription.cancelAtPeriodEnd:
            return {
                "userId": user_id,
                "success": False,
                "error": "Subscription is set to cancel at period end",
            }

        try:
            amount_cents = self.getPlanPriceCents(subscription)

            if subscription.gateway == 'stripe':
                result = await self.renewWithStripe(subscription, amount_cents)
            elif subscription.gateway == 'wallet':
                result = await self.renewWithWallet(subscription, amount_cents)
            elif subscription.gateway == 'paypal':
                result = await self.renewWithPayPal(subscription, amount_cents)
            else:
                result = {
                    "userId": user_id,
                    "success": False,
                    "error": f"Unsupported gateway: {subscription.gateway}",
                }

            self.session.commit()
            return result

        except Exception as e:
            logger.error(f"Error renewing subscription for user {user_id}: {e}", exc_info=True)
            self.session.rollback()
            return {
                "userId": user_id,
                "success": False,
                "error": str(e) or "Unknown error",
                "gateway": subscription.gateway,
            }

    async def _markFailed(self, subscription: Subscription, amountCents: int, reason: str) -> None:
        """Roll back partial work, mark past_due and send the failure email."""
        user_id = subscription.userID
        gateway = subscription.gateway

        self.session.rollback()
        self.subscriptions.updateStatusByUserId(user_id, 'past_due')
        self.session.commit()

        await self.notifications.sendRenewalFailureEmail(
            userId=user_id,
            amountCents=amountCents,
            currency=Config.get(Config.CURRENCY, 'USD'),
            reason=reason,
            gateway=gateway
        )

    def _resolveStripePaymentMethod(self, subscription: Subscription) -> Optional[PaymentMethod]:
        return self.session.query(PaymentMethod).filter(
            PaymentMethod.userID == subscription.userID,
            or_(
                PaymentMethod.methodID == subscription.defaultPaymentMethodID,
                PaymentMethod.stripePaymentMethodID == subscription.defaultPaymentMethodID
            )
        ).first()

    async def renewWithStripe(self, subscription: Subscription, amountCents: int) -> Dict[str, Any]:
        user_id = subscription.userID
        currency = Config.get(Config.CURRENCY, 'USD')

        if not subscription.defaultPaymentMethodID:
            return {
                "userId": user_id,
                "success": False,
                "error": "No payment method saved for Stripe renewal",
                "gateway": "stripe",
            }

        try:
            method = self._resolveStripePaymentMethod(subscription)
            if method is None:
                raise ValueError("Payment method not found")

            intent = await self.stripe.chargeOffSession(
                paymentMethodId=method.stripePaymentMethodID,
                amountCents=amountCents,
                currency=currency,
                metadata={"userId": user_id, "intent": "subscription_renewal"},
                customerId=method.stripeCustomerID
            )

            if intent.status != 'succeeded':
                raise ValueError(f"Payment failed with status: {intent.status}")

            period_end = self._nextPeriodEnd()
            await self.lifecycle.handleConfirmedPayment(
                userId=user_id,
                amountCents=amountCents,
                gateway='stripe',
                gatewayRef=f"stripe:renewal:{intent.id}",
                periodEnd=period_end,
                planId=subscription.planID
            )
            self.session.commit()

        except Exception as e:
            logger.error(f"Stripe renewal failed for user {user_id}: {e}")
            await self._markFailed(subscription, amountCents, str(e) or "Payment processing failed")
            return {
                "userId": user_id,
                "success": False,
                "error": str(e) or "Stripe payment failed",
                "gateway": "stripe",
            }

        await self.notifications.sendRenewalSuccessEmail(
            userId=user_id,
            amountCents=amountCents,
            currency=currency,
            nextBillingDate=period_end,
            gateway='stripe'
        )
        return {"userId": user_id, "success": True, "amountCents": amountCents, "gateway": "stripe"}

    async def renewWithWallet(self, subscription: Subscription, amountCents: int) -> Dict[str, Any]:
        """Debit and payment record share one transaction."""
        user_id = subscription.userID
        currency = Config.get(Config.CURRENCY, 'USD')

        try:
            await self.wallet.spendFunds(
                user_id,
                amountCents,
                reason='subscription_renewal',
                metadata={"intent": "subscription_renewal"}
            )
        except WalletError as e:
            logger.warning(f"Wallet renewal failed for user {user_id}: {e}")
            await self._markFailed(subscription, amountCents, str(e))
            return {"userId": user_id, "success": False, "error": str(e), "gateway": "wallet"}

        period_end = self._nextPeriodEnd()
        await self.lifecycle.handleConfirmedPayment(
            userId=user_id,
            amountCents=amountCents,
            gateway='wallet',
            gatewayRef=f"wallet:renewal:{user_id}:{uuid.uuid4()}",
            periodEnd=period_end,
            planId=subscription.planID
        )
        self.session.commit()

        await self.notifications.sendRenewalSuccessEmail(
            userId=user_id,
            amountCents=amountCents,
            currency=currency,
            nextBillingDate=period_end,
            gateway='wallet'
        )
        return {"userId": user_id, "success": True, "amountCents": amountCents, "gateway": "wallet"}

    async def renewWithPayPal(self, subscription: Subscription, amountCents: int) -> Dict[str, Any]:
        """PayPal bills by itself; only an active agreement is required."""
        user_id = subscription.userID

        try:
            renewal = await self.paypal.processRenewal(user_id)
        except Exception as e:
            logger.error(f"PayPal renewal check failed for user {user_id}: {e}")
            self.session.rollback()
            self.subscriptions.updateStatusByUserId(user_id, 'past_due')
            return {
                "userId": user_id,
                "success": False,
                "error": str(e) or "PayPal renewal check failed",
                "gateway": "paypal",
            }

        if not renewal["success"]:
            self.subscriptions.updateStatusByUserId(user_id, 'past_due')
            return {
                "userId": user_id,
                "success": False,
                "error": "No active PayPal billing agreement. User needs to set up PayPal subscription.",
                "gateway": "paypal",
            }

        logger.info(f"PayPal subscription active for user {user_id}, agreement {renewal['agreementId']}")
        return {"userId": user_id, "success": True, "amountCents": amountCents, "gateway": "paypal"}
