# purvita/multilevel/services/dashboard_summary_service.py
"""
Member dashboard summary: phase, subscription, wallet and network earnings.

The four reads are independent; a failing read falls back to its own
default and never hides the others.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from config import Config
from core.utils import iso
from multilevel.repositories.network_earnings_repository import NetworkEarningsRepository
from multilevel.repositories.phase_repository import PhaseRepository
from multilevel.repositories.subscription_repository import SubscriptionRepository
from multilevel.repositories.wallet_repository import WalletRepository

logger = logging.getLogger(__name__)


class DashboardSummaryService:

    def __init__(self, session: Session):
        self.session = session
        self.phases = PhaseRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.wallets = WalletRepository(session)
        self.earnings = NetworkEarningsRepository(session)

    async def _loadPhase(self, userId: str) -> Optional[Dict[str, Any]]:
        phase = self.phases.findByUserId(userId)
        if phase is None:
            return None
        effective = phase.manualPhaseOverride if phase.manualPhaseOverride is not None else phase.phase
        return {
            "phase": effective,
            "highestPhase": phase.highestPhase,
            "manualOverride": phase.manualPhaseOverride is not None,
        }

    async def _loadSubscription(self, userId: str) -> Optional[Dict[str, Any]]:
        subscription = self.subscriptions.findByUserId(userId)
        if subscription is None:
            return None
        return {
            "id": subscription.subscriptionID,
            "status": subscription.status,
            "gateway": subscription.gateway,
            "subscriptionType": subscription.subscriptionType,
            "currentPeriodEnd": iso(subscription.currentPeriodEnd),
            "cancelAtPeriodEnd": bool(subscription.cancelAtPeriodEnd),
            "waitlisted": bool(subscription.waitlisted),
        }

    async def _loadWalletBalance(self, userId: str) -> int:
        return self.wallets.getBalanceCents(userId)

    async def _loadNetworkEarnings(self, userId: str) -> Dict[str, Any]:
        return self.earnings.fetchAvailableSummary(userId)

    async def getSummary(self, userId: str) -> Dict[str, Any]:
        """
        Returns:
            {"phase", "subscription", "walletBalanceCents", "networkEarnings"}
        """
        phase, subscription, balance, earnings = await asyncio.gather(
            self._loadPhase(userId),
            self._loadSubscription(userId),
            self._loadWalletBalance(userId),
            self._loadNetworkEarnings(userId),
            return_exceptions=True
        )

        if isinstance(phase, Exception):
            logger.error(f"Failed to load phase for user {userId}: {phase}")
            phase = None

        if isinstance(subscription, Exception):
            logger.error(f"Failed to load subscription for user {userId}: {subscription}")
            subscription = None

        if isinstance(balance, Exception):
            logger.error(f"Failed to load wallet balance for user {userId}: {balance}")
            balance = 0

        if isinstance(earnings, Exception):
            logger.error(f"Failed to load network earnings for user {userId}: {earnings}")
            earnings = {
                "totalAvailableCents": 0,
                "currency": Config.get(Config.CURRENCY, 'USD'),
                "members": [],
            }

        return {
            "phase": phase,
            "subscription": subscription,
            "walletBalanceCents": balance,
            "networkEarnings": earnings,
        }
