# purvita/multilevel/services/commission_calculator_service.py
"""
Commission calculation for storefront orders.

Affiliate store sales pay two commissions:
    1. Seller commission: the affiliate's own phase rate, credited to the wallet
    2. Retail commission: the affiliate's direct sponsor earns the
       subscriptionDiscountRate of the affiliate's phase as network earnings
Only sponsors with an active subscription receive retail commissions.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.utils import cents_from_rate
from models.order import Order
from models.profile import Profile
from multilevel.config.phases import MAX_UPLINE_DEPTH, get_subscription_discount_rate
from multilevel.errors import CommissionError
from multilevel.repositories.network_earnings_repository import NetworkEarningsRepository
from multilevel.repositories.phase_repository import PhaseRepository
from multilevel.repositories.subscription_repository import SubscriptionRepository
from multilevel.services.seller_commission_service import SellerCommissionService
from multilevel.utils.chain_walker import ChainWalker

logger = logging.getLogger(__name__)


class CommissionCalculatorService:

    def __init__(self, session: Session):
        self.session = session
        self.earnings = NetworkEarningsRepository(session)
        self.phases = PhaseRepository(session)
        self.subscriptions = SubscriptionRepository(session)

    async def calculateAndCreateCommissions(
            self,
            buyerId: str,
            totalCents: int,
            orderId: Optional[str] = None,
            orderMetadata: Optional[Dict[str, Any]] = None,
            includeSellerCommission: bool = True
    ) -> List[Dict[str, Any]]:
        """
        Create the commissions generated by an order.

        Args:
            buyerId: Member who placed the order
            totalCents: Order total in cents
            orderId: Order to resolve metadata from when orderMetadata is not given
            orderMetadata: Order metadata with affiliateId / saleChannel
            includeSellerCommission: Also credit the seller wallet

        Returns:
            Created retail commission entries {userId, memberId, level, amountCents}
        """
        metadata = self._resolveOrderMetadata(orderId, orderMetadata)

        affiliate_id = metadata.get("affiliateId") if isinstance(metadata.get("affiliateId"), str) else None
        sale_channel = metadata.get("saleChannel") if isinstance(metadata.get("saleChannel"), str) else None
        is_affiliate_sale = bool(affiliate_id) and (sale_channel is None or sale_channel == 'affiliate_store')

        commissions: List[Dict[str, Any]] = []

        if not is_affiliate_sale:
            logger.debug(f"Order {orderId} from {buyerId} is not an affiliate sale, no commissions")
            return commissions

        # ═══════════════════════════════════════════════════════════
        # STEP 1: Seller commission
        # ═══════════════════════════════════════════════════════════
        if includeSellerCommission:
            try:
                seller_service = SellerCommissionService(self.session)
                await seller_service.calculateAndApplySellerCommission(affiliate_id, totalCents, orderId)
            except Exception as e:
                logger.error(f"Failed to apply seller commission for order {orderId}: {e}", exc_info=True)

        # ═══════════════════════════════════════════════════════════
        # STEP 2: Retail commission for the affiliate's direct sponsor
        # ═══════════════════════════════════════════════════════════
        affiliate_phase = self.phases.getPhase(affiliate_id)
        upline = self.getUplineChain(affiliate_id, MAX_UPLINE_DEPTH)

        if not upline:
            logger.info(f"No upline found for affiliate {affiliate_id}")
            return commissions

        sponsor_id = upline[0]

        if not self.subscriptions.hasActiveSubscription(sponsor_id):
            logger.info(f"Sponsor {sponsor_id} has no active subscription, skipping retail commission")
            return commissions

        rate = get_subscription_discount_rate(self.session, affiliate_phase)
        if rate <= 0:
            logger.info(f"No retail commission rate configured for phase {affiliate_phase}")
            return commissions

        sale_total = int(totalCents) if totalCents and totalCents > 0 else 0
        retail_cents = cents_from_rate(sale_total, rate)

        self.earnings.insertCommission(
            userId=sponsor_id,
            amountCents=retail_cents,
            memberId=affiliate_id,
            orderId=orderId,
            level=1,
            meta={
                "commission_type": "retail_commission",
                "retail_commission_cents": retail_cents,
                "retail_commission_rate": float(rate),
                "sale_total_cents": sale_total,
                "affiliate_id": affiliate_id,
                "affiliate_phase": affiliate_phase,
                "order_id": orderId,
            }
        )

        commissions.append({
            "userId": sponsor_id,
            "memberId": affiliate_id,
            "level": 1,
            "amountCents": retail_cents,
        })

        logger.info(
            f"✓ Retail commission: sponsor {sponsor_id}, affiliate {affiliate_id} "
            f"(phase {affiliate_phase}), rate {rate * 100:.1f}%, "
            f"{retail_cents} cents from sale of {sale_total} cents"
        )
        return commissions

    def _resolveOrderMetadata(
            self,
            orderId: Optional[str],
            provided: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        if isinstance(provided, dict):
            return provided

        if not orderId:
            return {}

        try:
            order = self.session.query(Order).filter_by(orderID=orderId).first()
        except Exception as e:
            logger.warning(f"Failed to resolve metadata for order {orderId}: {e}")
            return {}

        if order is None or not isinstance(order.meta, dict):
            return {}
        return order.meta

    def getUplineChain(self, userId: str, maxDepth: int = MAX_UPLINE_DEPTH) -> List[str]:
        """
        Sponsor ids from the direct sponsor upwards, at most maxDepth long.
        """
        profile = self.session.query(Profile).filter_by(userID=userId).first()
        if profile is None:
            logger.info(f"No profile found for user {userId}")
            return []

        walker = ChainWalker(self.session)
        return [sponsor.userID for sponsor in walker.get_upline_chain(profile, maxDepth)]

    async def recalculateOrderCommissions(self, orderId: str) -> List[Dict[str, Any]]:
        """
        Drop and recreate the network commissions of a paid order.

        The seller wallet credit is not repeated.

        Raises:
            CommissionError: Order does not exist
        """
        order = self.session.query(Order).filter_by(orderID=orderId).first()
        if order is None:
            raise CommissionError(f"Order {orderId} not found")

        if order.status != 'paid':
            logger.info(f"Order {orderId} is not paid, skipping recalculation")
            return []

        deleted = self.earnings.deleteByOrderId(orderId)
        logger.info(f"Deleted {deleted} commissions of order {orderId}")

        return await self.calculateAndCreateCommissions(
            order.userID,
            order.totalCents,
            orderId=orderId,
            orderMetadata=order.meta if isinstance(order.meta, dict) else None,
            includeSellerCommission=False
        )
