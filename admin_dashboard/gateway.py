# purvita/admin_dashboard/gateway.py
"""
HTTP client for the admin metrics endpoint.

The response is validated with the same pydantic model the endpoint serves,
then reshaped into the snapshot the dashboard view model consumes.
"""
import logging
from typing import Any, Dict, Optional

import aiohttp
from pydantic import ValidationError

from config import Config
from schemas.metrics import AdminDashboardMetrics

logger = logging.getLogger(__name__)


class MetricsGatewayError(Exception):
    pass


def _snapshot(parsed: AdminDashboardMetrics) -> Dict[str, Any]:
    return {
        "totalSubscriptionRevenueCents": parsed.totalSubscriptionRevenueCents,
        "totalOrderRevenueCents": parsed.totalOrderRevenueCents,
        "totalWalletBalanceCents": parsed.totalWalletBalanceCents,
        "activeSubscriptions": parsed.activeSubscriptions,
        "waitlistedSubscriptions": parsed.waitlistedSubscriptions or 0,
        "totalUsers": parsed.totalUsers or 0,
        "totalProducts": parsed.totalProducts or 0,
        "totalStock": parsed.totalStock or 0,
        "comingSoonSubscribers": parsed.comingSoonSubscribers or 0,
        "topProductSales": [
            {
                "productId": item.productId,
                "name": item.name.strip() or 'Unnamed product',
                "unitsSold": item.unitsSold,
                "revenueCents": item.revenueCents,
            }
            for item in parsed.topProductSales
        ],
        "recentUsers": [
            {
                "id": user.id,
                "name": user.name or '',
                "email": user.email or '',
                "role": user.role or 'member',
                "status": user.status or 'active',
                "referral_code": user.referral_code,
                "referred_by": user.referred_by,
                "created_at": user.created_at,
                "updated_at": user.created_at,
            }
            for user in parsed.recentUsers
        ],
        "recentProducts": [product.model_dump() for product in parsed.recentProducts],
        "productStock": [item.model_dump() for item in parsed.productStock],
        "recentAuditLogs": [
            {
                "id": log.id,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "action": log.action,
                "user_id": log.actor_id,
                "metadata": log.changes or {},
                "created_at": log.created_at,
                "profiles": {
                    "id": log.actor_id or '',
                    "name": log.actor_name,
                    "email": log.actor_email,
                } if log.actor_name and log.actor_email else None,
            }
            for log in parsed.recentAuditLogs
        ],
    }


class AdminDashboardMetricsHttpGateway:
    """
    Usage:
        gateway = AdminDashboardMetricsHttpGateway(token="...")
        snapshot = await gateway.getMetrics(productsPeriod="weekly")
    """

    def __init__(
            self,
            url: Optional[str] = None,
            token: Optional[str] = None,
            http: Optional[aiohttp.ClientSession] = None,
            timeout: float = 15
    ):
        self.url = url or Config.get(Config.ADMIN_METRICS_URL)
        self.token = token
        self.http = http
        self.timeout = timeout

    async def getMetrics(
            self,
            productsPeriod: Optional[str] = None,
            activityPeriod: Optional[str] = None,
            recentLimit: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Raises:
            MetricsGatewayError: Non-2xx response or a payload that fails validation
        """
        params = {}
        if productsPeriod:
            params['productsPeriod'] = productsPeriod
        if activityPeriod:
            params['activityPeriod'] = activityPeriod
        if recentLimit:
            params['recentLimit'] = str(recentLimit)

        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'

        if self.http is not None:
            payload = await self._fetch(self.http, params, headers)
        else:
            async with aiohttp.ClientSession() as http:
                payload = await self._fetch(http, params, headers)

        try:
            parsed = AdminDashboardMetrics.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Unexpected admin metrics payload: {e}")
            raise MetricsGatewayError("Invalid admin metrics payload") from e

        return _snapshot(parsed)

    async def _fetch(self, http: aiohttp.ClientSession, params: Dict[str, str], headers: Dict[str, str]):
        async with http.get(
                self.url,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            if response.status < 200 or response.status >= 300:
                raise MetricsGatewayError(f"Failed to load admin metrics: {response.status}")
            return await response.json()
