# purvita/payments/paypal_billing_service.py
"""
PayPal billing agreements (REST subscriptions API).

PayPal bills recurring subscriptions itself; a renewal only checks that the
member still holds an active agreement.
"""
import base64
import logging
from typing import Any, Dict, Optional

import aiohttp
from sqlalchemy.orm import Session

from config import Config
from models.payment import BillingAgreement

logger = logging.getLogger(__name__)

PAYPAL_BASE_URLS = {
    'sandbox': 'https://api-m.sandbox.paypal.com',
    'live': 'https://api-m.paypal.com',
}


class PayPalError(Exception):
    """PayPal REST call failed."""
    pass


class PayPalBillingService:

    def __init__(
            self,
            session: Session,
            clientId: Optional[str] = None,
            clientSecret: Optional[str] = None,
            environment: Optional[str] = None
    ):
        self.session = session
        self.clientId = clientId or Config.get(Config.PAYPAL_CLIENT_ID)
        self.clientSecret = clientSecret or Config.get(Config.PAYPAL_CLIENT_SECRET)
        self.environment = environment or Config.get(Config.PAYPAL_ENVIRONMENT, 'sandbox')

    @property
    def baseUrl(self) -> str:
        return PAYPAL_BASE_URLS['live' if self.environment == 'live' else 'sandbox']

    async def _getAccessToken(self, http: aiohttp.ClientSession) -> str:
        if not self.clientId or not self.clientSecret:
            raise PayPalError("PayPal credentials not configured")

        basic = base64.b64encode(f"{self.clientId}:{self.clientSecret}".encode()).decode()
        async with http.post(
                f"{self.baseUrl}/v1/oauth2/token",
                headers={
                    "Authorization": f"Basic {basic}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data="grant_type=client_credentials",
                timeout=aiohttp.ClientTimeout(total=15)
        ) as response:
            if response.status != 200:
                raise PayPalError(f"Failed to get PayPal access token: {response.status}")
            data = await response.json()
            return data["access_token"]

    # ═══════════════════════════════════════════════════════════════════
    # LOCAL AGREEMENTS
    # ═══════════════════════════════════════════════════════════════════

    async def getActiveBillingAgreement(self, userId: str) -> Optional[BillingAgreement]:
        return (
            self.session.query(BillingAgreement)
            .filter(BillingAgreement.userID == userId, BillingAgreement.status == 'active')
            .order_by(BillingAgreement.createdAt.desc())
            .first()
        )

    async def saveBillingAgreement(self, userId: str, paypalSubscriptionId: str) -> BillingAgreement:
        """Store an approved agreement, reactivating a known one."""
        agreement = self.session.query(BillingAgreement).filter_by(
            paypalSubscriptionID=paypalSubscriptionId
        ).first()

        if agreement is None:
            agreement = BillingAgreement(userID=userId, paypalSubscriptionID=paypalSubscriptionId)
            self.session.add(agreement)

        agreement.status = 'active'
        self.session.flush()

        logger.info(f"PayPal billing agreement {paypalSubscriptionId} saved for user {userId}")
        return agreement

    # ═══════════════════════════════════════════════════════════════════
    # REST
    # ═══════════════════════════════════════════════════════════════════

    async def cancelBillingAgreement(
            self,
            subscriptionId: str,
            reason: str = 'User requested cancellation'
    ) -> None:
        """
        Cancel the PayPal subscription, then mark the local agreement cancelled.

        Raises:
            PayPalError: PayPal rejected the cancellation
        """
        async with aiohttp.ClientSession() as http:
            token = await self._getAccessToken(http)
            async with http.post(
                    f"{self.baseUrl}/v1/billing/subscriptions/{subscriptionId}/cancel",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                    json={"reason": reason},
                    timeout=aiohttp.ClientTimeout(total=15)
            ) as response:
                if response.status not in (200, 204):
                    error_text = await response.text()
                    raise PayPalError(f"Failed to cancel PayPal subscription: {error_text}")

        self.session.query(BillingAgreement).filter_by(
            paypalSubscriptionID=subscriptionId
        ).update({"status": "cancelled"}, synchronize_session='fetch')
        self.session.flush()

        logger.info(f"PayPal subscription {subscriptionId} cancelled ({reason})")

    async def processRenewal(self, userId: str) -> Dict[str, Any]:
        """
        Returns:
            {"success": bool, "message": str, "agreementId": str | None}
        """
        agreement = await self.getActiveBillingAgreement(userId)

        if agreement is None:
            return {
                "success": False,
                "message": "No active PayPal billing agreement found",
                "agreementId": None,
            }

        return {
            "success": True,
            "message": "PayPal will process renewal automatically",
            "agreementId": agreement.paypalSubscriptionID,
        }
