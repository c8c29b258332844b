# purvita/multilevel/services/subscription_commission_service.py
"""
Network commissions paid when a member's subscription becomes active.

Level earnings are switched off unless SUBSCRIPTION_COMMISSIONS_ENABLED is set.
When enabled, every active sponsor up to MAX_UPLINE_DEPTH levels earns the
creditCents configured for the sponsor's phase.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from config import Config
from core.utils import utcnow
from models.commission import NetworkCommission
from models.profile import Profile
from models.subscription import Subscription
from multilevel.config.phases import MAX_UPLINE_DEPTH, get_phase_levels_cached
from multilevel.repositories.network_earnings_repository import NetworkEarningsRepository
from multilevel.repositories.phase_repository import PhaseRepository
from multilevel.repositories.subscription_repository import SubscriptionRepository
from multilevel.utils.chain_walker import ChainWalker

logger = logging.getLogger(__name__)

SUBSCRIPTION_COMMISSION_TYPE = 'subscription_payment'


class SubscriptionCommissionService:

    def __init__(self, session: Session):
        self.session = session
        self.earnings = NetworkEarningsRepository(session)
        self.phases = PhaseRepository(session)
        self.subscriptions = SubscriptionRepository(session)

    async def processSubscriptionCommission(
            self,
            subscription: Subscription,
            wasActive: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Pay subscription commissions for a newly activated subscription.

        Returns:
            Created entries {userId, memberId, level, amountCents}, [] when skipped
        """
        if subscription.status != 'active' or wasActive:
            logger.debug(
                f"Skipping subscription commission: status={subscription.status}, wasActive={wasActive}"
            )
            return []

        try:
            return await self._createSubscriptionCommissions(subscription.userID)
        except Exception as e:
            logger.error(
                f"Error processing subscription commission for user {subscription.userID}: {e}",
                exc_info=True
            )
            return []

    async def _createSubscriptionCommissions(self, subscriberId: str) -> List[Dict[str, Any]]:
        if not Config.get(Config.SUBSCRIPTION_COMMISSIONS_ENABLED, False):
            logger.info(f"Subscription level earnings disabled, none created for user {subscriberId}")
            return []

        subscriber = self.session.query(Profile).filter_by(userID=subscriberId).first()
        if subscriber is None:
            return []

        levels = get_phase_levels_cached(self.session)
        entries: List[Dict[str, Any]] = []

        def pay_sponsor(sponsor: Profile, level: int) -> bool:
            if not self.subscriptions.hasActiveSubscription(sponsor.userID):
                logger.debug(f"Sponsor {sponsor.userID} inactive, no subscription commission")
                return True

            sponsor_phase = self.phases.getPhase(sponsor.userID)
            amount = int((levels.get(sponsor_phase) or {}).get("creditCents") or 0)
            if amount <= 0:
                return True

            self.earnings.insertCommission(
                userId=sponsor.userID,
                amountCents=amount,
                memberId=subscriberId,
                level=level,
                meta={
                    "commission_type": SUBSCRIPTION_COMMISSION_TYPE,
                    "sponsor_phase": sponsor_phase,
                }
            )
            entries.append({
                "userId": sponsor.userID,
                "memberId": subscriberId,
                "level": level,
                "amountCents": amount,
            })
            return True

        ChainWalker(self.session).walk_upline(subscriber, pay_sponsor, MAX_UPLINE_DEPTH)

        logger.info(f"✓ {len(entries)} subscription commissions created for user {subscriberId}")
        return entries

    async def wasSubscriptionPreviouslyActive(self, userId: str) -> bool:
        """True when the member generated a subscription commission within the last month."""
        try:
            since = utcnow() - timedelta(days=31)
            rows = self.session.query(NetworkCommission).filter(
                NetworkCommission.memberID == userId,
                NetworkCommission.createdAt >= since
            ).all()
            return any(
                (row.meta or {}).get("commission_type") == SUBSCRIPTION_COMMISSION_TYPE
                for row in rows
            )
        except Exception as e:
            logger.warning(f"Error checking previous subscription activity for user {userId}: {e}")
            return False

    async def countMembersAtDepth(self, sponsorId: str, depth: int) -> int:
        """
        Active members exactly `depth` levels below the sponsor.

        Only active members are followed further down the tree.
        """
        current_level = [sponsorId]

        for level in range(1, depth + 1):
            if not current_level:
                return 0

            referrals = self.session.query(Profile.userID).filter(
                Profile.sponsorID.in_(current_level)
            ).all()
            active = [
                row[0] for row in referrals
                if self.subscriptions.hasActiveSubscription(row[0])
            ]

            if level == depth:
                return len(active)
            current_level = active

        return 0
