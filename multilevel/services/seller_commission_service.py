# purvita/multilevel/services/seller_commission_service.py
"""
Seller commission - the affiliate's own cut of an affiliate store sale.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from core.utils import cents_from_rate
from models.phase import Phase
from models.subscription import Subscription
from multilevel.config.phases import get_phase_commission_rate
from multilevel.services.wallet_service import WalletService

logger = logging.getLogger(__name__)


class SellerCommissionService:
    """Credits the selling affiliate's wallet with the phase commission rate."""

    def __init__(self, session: Session):
        self.session = session

    async def calculateAndApplySellerCommission(
            self,
            affiliateId: str,
            totalCents: int,
            orderId: Optional[str] = None
    ) -> int:
        """
        Credit the seller with totalCents * phase commission rate.

        Sellers without an active subscription, or waitlisted ones, earn
        nothing. Errors are logged and yield 0.

        Returns:
            Commission credited in cents
        """
        if not affiliateId or not totalCents or totalCents <= 0:
            logger.warning(
                f"Invalid seller commission input: affiliate={affiliateId}, total={totalCents}"
            )
            return 0

        try:
            subscription = (
                self.session.query(Subscription)
                .filter(Subscription.userID == affiliateId)
                .order_by(Subscription.createdAt.desc())
                .first()
            )

            if subscription is None or subscription.status != 'active':
                logger.info(f"Seller {affiliateId} has no active subscription, no commission")
                return 0

            if subscription.waitlisted:
                logger.info(f"Seller {affiliateId} is waitlisted, no commission")
                return 0

            phase_row = self.session.query(Phase).filter_by(userID=affiliateId).first()
            phase = 0
            if phase_row is not None:
                phase = phase_row.manualPhaseOverride if phase_row.manualPhaseOverride is not None \
                    else (phase_row.phase or 0)

            rate = get_phase_commission_rate(self.session, phase)
            commission_cents = cents_from_rate(totalCents, rate)

            if commission_cents <= 0:
                return 0

            wallet_service = WalletService(self.session)
            await wallet_service.addFunds(
                affiliateId,
                commission_cents,
                'sale_commission',
                metadata={
                    "order_id": orderId,
                    "sale_total_cents": int(totalCents),
                    "commission_rate": str(rate),
                    "seller_phase": int(phase),
                }
            )

            logger.info(
                f"✓ Seller commission: {affiliateId} phase {phase} "
                f"{rate * 100:.0f}% of {totalCents} = {commission_cents} cents"
            )
            return commission_cents

        except Exception as e:
            logger.error(f"Error applying seller commission for {affiliateId}: {e}", exc_info=True)
            return 0
