# purvita/payments/stripe_gateway.py
"""
Stripe card processor access.

The stripe library is synchronous; calls run in a worker thread so the
event loop is not blocked.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import stripe

from config import Config

logger = logging.getLogger(__name__)


class StripeGatewayError(Exception):
    """Raised when Stripe is not configured or rejects a request."""
    pass


class StripeGateway:

    def __init__(self, secretKey: Optional[str] = None, webhookSecret: Optional[str] = None):
        self.secretKey = secretKey or Config.get(Config.STRIPE_SECRET_KEY)
        self.webhookSecret = webhookSecret or Config.get(Config.STRIPE_WEBHOOK_SECRET)

    @property
    def isConfigured(self) -> bool:
        return bool(self.secretKey)

    async def chargeOffSession(
            self,
            paymentMethodId: str,
            amountCents: int,
            currency: str,
            metadata: Optional[Dict[str, str]] = None,
            customerId: Optional[str] = None
    ):
        """
        Charge a saved card without the customer present.

        Returns:
            The confirmed PaymentIntent

        Raises:
            StripeGatewayError: Missing secret key or Stripe error (card declined included)
        """
        if not self.secretKey:
            raise StripeGatewayError("Stripe secret key not configured")

        params: Dict[str, Any] = {
            "amount": int(amountCents),
            "currency": (currency or 'usd').lower(),
            "payment_method": paymentMethodId,
            "confirm": True,
            "off_session": True,
            "metadata": metadata or {},
            "api_key": self.secretKey,
        }
        if customerId:
            params["customer"] = customerId

        try:
            intent = await asyncio.to_thread(stripe.PaymentIntent.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe charge failed for payment method {paymentMethodId}: {e}")
            raise StripeGatewayError(getattr(e, 'user_message', None) or str(e)) from e

        logger.info(f"Stripe PaymentIntent {intent.id}: {intent.status} ({amountCents} {currency})")
        return intent

    def constructWebhookEvent(self, payload: bytes, signature: str):
        """
        Verify a webhook signature and parse the event.

        Raises:
            StripeGatewayError: Missing webhook secret or invalid payload/signature
        """
        if not self.webhookSecret:
            raise StripeGatewayError("Stripe webhook secret not configured")

        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhookSecret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Stripe webhook verification failed: {e}")
            raise StripeGatewayError("Invalid Stripe webhook signature") from e
