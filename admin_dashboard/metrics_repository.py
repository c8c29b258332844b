# purvita/admin_dashboard/metrics_repository.py
"""
Aggregates behind GET /api/admin/dashboard/metrics.

Totals come straight from the database; top product sales are aggregated
from paid order items within the requested period.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.utils import iso, utcnow
from models.audit_log import AuditLog
from models.coming_soon import ComingSoonSubscriber
from models.order import Order, OrderItem
from models.product import Product
from models.profile import Profile
from multilevel.repositories.payment_repository import PaymentRepository
from multilevel.repositories.subscription_repository import SubscriptionRepository
from multilevel.repositories.wallet_repository import WalletRepository
from schemas.metrics import AdminDashboardMetrics
from services.product_service import ProductRepository

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 4
RECENT_LIMIT = 5

PERIODS = ('all', 'daily', 'weekly', 'monthly')


def period_start(period: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Lower bound for a reporting period.

    Examples:
        'daily' → start of today, 'weekly' → now - 7 days,
        'monthly' → now - 31 days, 'all' / unknown → None
    """
    now = now or utcnow()
    if period == 'daily':
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == 'weekly':
        return now - timedelta(days=7)
    if period == 'monthly':
        return now - timedelta(days=31)
    return None


class AdminDashboardMetricsRepository:

    def __init__(self, session: Session):
        self.session = session
        self.payments = PaymentRepository(session)
        self.subscriptions = SubscriptionRepository(session)
        self.wallets = WalletRepository(session)
        self.products = ProductRepository(session)

    async def fetchTopProductSales(
            self,
            limit: int = TOP_PRODUCTS_LIMIT,
            period: Optional[str] = 'all'
    ) -> List[Dict[str, Any]]:
        """
        Best sellers by revenue, then units, over paid orders.

        Returns [] when the query fails.
        """
        query = (
            self.session.query(OrderItem.productID, OrderItem.qty, OrderItem.priceCents, Product.name)
            .join(Order, Order.orderID == OrderItem.orderID)
            .join(Product, Product.productID == OrderItem.productID)
            .filter(Order.status == 'paid')
        )

        start = period_start(period)
        if start is not None:
            query = query.filter(Order.createdAt >= start)

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load top product sales: {e}")
            return []

        aggregates: Dict[str, Dict[str, Any]] = {}
        for product_id, qty, price_cents, name in rows:
            if not product_id:
                continue

            units = max(0, int(qty or 0))
            revenue = units * max(0, int(price_cents or 0))

            entry = aggregates.get(product_id)
            if entry is None:
                aggregates[product_id] = {
                    "productId": product_id,
                    "name": (name or '').strip() or 'Unnamed product',
                    "unitsSold": units,
                    "revenueCents": revenue,
                }
            else:
                entry["unitsSold"] += units
                entry["revenueCents"] += revenue

        ranked = [
            entry for entry in aggregates.values()
            if entry["unitsSold"] > 0 or entry["revenueCents"] > 0
        ]
        ranked.sort(key=lambda entry: (entry["revenueCents"], entry["unitsSold"]), reverse=True)
        return ranked[:limit]

    def _countComingSoon(self) -> int:
        try:
            return int(self.session.query(func.count(ComingSoonSubscriber.subscriberID)).scalar() or 0)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to count coming soon subscribers: {e}")
            return 0

    def _recentUsers(self, limit: int) -> List[Dict[str, Any]]:
        users = self.session.query(Profile).order_by(Profile.createdAt.desc()).limit(limit).all()
        return [
            {
                "id": user.userID,
                "name": user.name,
                "email": user.email,
                "role": user.role,
                "status": user.status,
                "created_at": iso(user.createdAt),
                "referral_code": user.referralCode,
                "referred_by": user.sponsorID,
            }
            for user in users
        ]

    def _recentAuditLogs(self, limit: int, period: Optional[str]) -> List[Dict[str, Any]]:
        rows = (
            self.session.query(AuditLog, Profile.name, Profile.email)
            .outerjoin(Profile, Profile.userID == AuditLog.userID)
            .order_by(AuditLog.createdAt.desc())
            .limit(limit)
            .all()
        )

        start = period_start(period)
        return [
            {
                "id": log.logID,
                "entity_type": log.entityType,
                "entity_id": log.entityID,
                "action": log.action,
                "actor_id": log.userID,
                "changes": log.meta,
                "created_at": iso(log.createdAt),
                "actor_name": name,
                "actor_email": email,
            }
            for log, name, email in rows
            if start is None or log.createdAt >= start
        ]

    async def fetchMetrics(
            self,
            productsPeriod: str = 'all',
            activityPeriod: str = 'all',
            recentLimit: int = RECENT_LIMIT
    ) -> AdminDashboardMetrics:
        recent_products = await self.products.listRecent(recentLimit)
        stock = await self.products.getStockSummary()

        order_revenue = self.session.query(func.coalesce(func.sum(Order.totalCents), 0)).filter(
            Order.status == 'paid'
        ).scalar()

        metrics = AdminDashboardMetrics(
            totalUsers=int(self.session.query(func.count(Profile.userID)).scalar() or 0),
            totalProducts=await self.products.count(),
            activeSubscriptions=self.subscriptions.countActive(),
            waitlistedSubscriptions=self.subscriptions.countWaitlisted(),
            totalSubscriptionRevenueCents=self.payments.sumPaidByKind('subscription'),
            totalOrderRevenueCents=int(order_revenue or 0),
            totalWalletBalanceCents=self.wallets.sumTotalBalance(),
            totalStock=stock["totalStock"],
            comingSoonSubscribers=self._countComingSoon(),
            topProductSales=await self.fetchTopProductSales(TOP_PRODUCTS_LIMIT, productsPeriod),
            recentUsers=self._recentUsers(recentLimit),
            recentProducts=[
                {
                    "id": product.productID,
                    "slug": product.slug,
                    "name": product.name,
                    "price_cents": product.priceCents,
                    "stock_quantity": product.stockQuantity,
                    "created_at": iso(product.createdAt),
                }
                for product in recent_products
            ],
            productStock=stock["products"],
            recentAuditLogs=self._recentAuditLogs(recentLimit, activityPeriod),
        )

        logger.debug(
            f"Dashboard metrics: users={metrics.totalUsers}, "
            f"active_subs={metrics.activeSubscriptions}, products={metrics.totalProducts}"
        )
        return metrics
