# tests/test_commissions.py
"""
Tests for affiliate sale commissions and network earnings.

Run:
    pytest tests/test_commissions.py -v
"""
from datetime import timedelta

import pytest

from core.utils import cents_from_rate, utcnow
from models import NetworkCommission, Order
from multilevel.errors import CommissionError, InsufficientBalanceError, InvalidAmountError
from multilevel.repositories.network_earnings_repository import (
    ADMIN_ADJUSTMENT_MEMBER_ID,
    NetworkEarningsRepository,
)
from multilevel.repositories.wallet_repository import WalletRepository
from multilevel.services.commission_calculator_service import CommissionCalculatorService
from multilevel.services.seller_commission_service import SellerCommissionService


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def affiliate_team(make_member, make_profile):
    """Active sponsor, active affiliate below it and a buyer."""
    sponsor = make_member("Sponsor")
    affiliate = make_member("Affiliate", sponsor=sponsor)
    buyer = make_profile("Buyer")
    return sponsor, affiliate, buyer


@pytest.fixture
def make_order(session):
    def _generate(buyer, totalCents, status='paid', meta=None):
        order = Order(userID=buyer.userID, status=status, totalCents=totalCents, meta=meta)
        session.add(order)
        session.commit()
        return order
    return _generate


# =============================================================================
# RATE HELPER
# =============================================================================

class TestCentsFromRate:

    @pytest.mark.parametrize("amount, rate, expected", [
        (10000, "0.15", 1500),
        (3499, "0.08", 280),
        (3499, "0.05", 175),
        (0, "0.30", 0),
    ])
    def test_rounds_half_up(self, amount, rate, expected):
        assert cents_from_rate(amount, rate) == expected


# =============================================================================
# SELLER COMMISSION
# =============================================================================

class TestSellerCommission:

    async def test_phase_rate_credited_to_wallet(self, session, affiliate_team, set_phase):
        _, affiliate, _ = affiliate_team
        set_phase(affiliate, 1)

        credited = await SellerCommissionService(session).calculateAndApplySellerCommission(
            affiliate.userID, 10000, 'order-1'
        )
        session.commit()

        assert credited == 1500
        txn = WalletRepository(session).listTransactions(affiliate.userID)[0]
        assert txn.reason == 'sale_commission'
        assert txn.meta["order_id"] == 'order-1'
        assert txn.meta["seller_phase"] == 1

    async def test_override_phase_used(self, session, affiliate_team, set_phase):
        _, affiliate, _ = affiliate_team
        set_phase(affiliate, 0, override=2)

        credited = await SellerCommissionService(session).calculateAndApplySellerCommission(
            affiliate.userID, 10000
        )

        assert credited == 3000

    async def test_waitlisted_seller_earns_nothing(self, session, make_profile, make_subscription):
        seller = make_profile("Waitlisted")
        make_subscription(seller, waitlisted=True)

        credited = await SellerCommissionService(session).calculateAndApplySellerCommission(
            seller.userID, 10000
        )

        assert credited == 0
        assert WalletRepository(session).getBalanceCents(seller.userID) == 0

    async def test_inactive_seller_earns_nothing(self, session, make_profile, make_subscription):
        seller = make_profile("Lapsed")
        make_subscription(seller, status='past_due')

        assert await SellerCommissionService(session).calculateAndApplySellerCommission(seller.userID, 10000) == 0

    async def test_invalid_input(self, session):
        assert await SellerCommissionService(session).calculateAndApplySellerCommission('', 10000) == 0
        assert await SellerCommissionService(session).calculateAndApplySellerCommission('user', 0) == 0


# =============================================================================
# ORDER COMMISSIONS
# =============================================================================

class TestCalculateAndCreateCommissions:

    async def test_affiliate_sale(self, session, affiliate_team):
        """
        TEST: Affiliate store sale of 100.00 by a phase 0 affiliate.

        Verify:
            - Seller wallet credited 8% (800)
            - Sponsor earns 5% (500) as network earnings, level 1
        """
        sponsor, affiliate, buyer = affiliate_team

        result = await CommissionCalculatorService(session).calculateAndCreateCommissions(
            buyer.userID,
            10000,
            orderId='order-1',
            orderMetadata={"affiliateId": affiliate.userID, "saleChannel": "affiliate_store"}
        )
        session.commit()

        assert result == [{"userId": sponsor.userID, "memberId": affiliate.userID, "level": 1, "amountCents": 500}]
        assert WalletRepository(session).getBalanceCents(affiliate.userID) == 800

        commission = session.query(NetworkCommission).filter_by(userID=sponsor.userID).one()
        assert commission.availableCents == 500
        assert commission.orderID == 'order-1'
        assert commission.meta["commission_type"] == 'retail_commission'

    async def test_higher_phase_affiliate(self, session, affiliate_team, set_phase):
        sponsor, affiliate, buyer = affiliate_team
        set_phase(affiliate, 2)

        result = await CommissionCalculatorService(session).calculateAndCreateCommissions(
            buyer.userID, 10000, orderMetadata={"affiliateId": affiliate.userID}
        )

        assert result[0]["amountCents"] == 1500
        assert WalletRepository(session).getBalanceCents(affiliate.userID) == 3000

    @pytest.mark.parametrize("metadata", [
        {},
        {"affiliateId": None},
        {"affiliateId": 42},
        {"saleChannel": "affiliate_store"},
    ])
    async def test_not_an_affiliate_sale(self, session, affiliate_team, metadata):
        _, _, buyer = affiliate_team

        result = await CommissionCalculatorService(session).calculateAndCreateCommissions(
            buyer.userID, 10000, orderMetadata=metadata
        )

        assert result == []
        assert session.query(NetworkCommission).count() == 0

    async def test_other_sale_channel(self, session, affiliate_team):
        _, affiliate, buyer = affiliate_team

        result = await CommissionCalculatorService(session).calculateAndCreateCommissions(
            buyer.userID, 10000,
            orderMetadata={"affiliateId": affiliate.userID, "saleChannel": "main_store"}
        )

        assert result == []
        assert WalletRepository(session).getBalanceCents(affiliate.userID) == 0

    async def test_inactive_sponsor_gets_nothing(self, session, make_profile, make_member):
        sponsor = make_profile("Inactive sponsor")
        affiliate = make_member("Affiliate", sponsor=sponsor)
        buyer = make_profile("Buyer")

        result = await CommissionCalculatorService(session).calculateAndCreateCommissions(
            buyer.userID, 10000, orderMetadata={"affiliateId": affiliate.userID}
        )

        assert result == []
        assert WalletRepository(session).getBalanceCents(affiliate.userID) == 800

    async def test_metadata_read_from_order(self, session, affiliate_team, make_order):
        sponsor, affiliate, buyer = affiliate_team
        order = make_order(buyer, 2000, meta={"affiliateId": affiliate.userID, "saleChannel": "affiliate_store"})

        result = await CommissionCalculatorService(session).calculateAndCreateCommissions(
            buyer.userID, 2000, orderId=order.orderID
        )

        assert result == [{"userId": sponsor.userID, "memberId": affiliate.userID, "level": 1, "amountCents": 100}]

    def test_upline_chain(self, session, affiliate_team):
        sponsor, affiliate, _ = affiliate_team
        service = CommissionCalculatorService(session)

        assert service.getUplineChain(affiliate.userID) == [sponsor.userID]
        assert service.getUplineChain('missing') == []


class TestRecalculateOrderCommissions:

    async def test_missing_order(self, session):
        with pytest.raises(CommissionError, match="Order missing not found"):
            await CommissionCalculatorService(session).recalculateOrderCommissions('missing')

    async def test_unpaid_order_skipped(self, session, affiliate_team, make_order):
        _, affiliate, buyer = affiliate_team
        order = make_order(buyer, 10000, status='pending', meta={"affiliateId": affiliate.userID})

        assert await CommissionCalculatorService(session).recalculateOrderCommissions(order.orderID) == []

    async def test_replaces_commissions_without_seller_credit(self, session, affiliate_team, make_order):
        """
        TEST: Recalculate a paid order that already has a stale commission.

        Verify:
            - Stale row deleted, one fresh retail commission created
            - Seller wallet not credited again
        """
        sponsor, affiliate, buyer = affiliate_team
        order = make_order(buyer, 10000, meta={"affiliateId": affiliate.userID})
        NetworkEarningsRepository(session).insertCommission(sponsor.userID, 9999, affiliate.userID, order.orderID)
        session.commit()

        result = await CommissionCalculatorService(session).recalculateOrderCommissions(order.orderID)
        session.commit()

        rows = NetworkEarningsRepository(session).listByOrderId(order.orderID)
        assert [r.amountCents for r in rows] == [500]
        assert result[0]["amountCents"] == 500
        assert WalletRepository(session).getBalanceCents(affiliate.userID) == 0


# =============================================================================
# NETWORK EARNINGS
# =============================================================================

class TestNetworkEarnings:

    def test_empty_summary(self, session, make_profile):
        summary = NetworkEarningsRepository(session).fetchAvailableSummary(make_profile().userID)

        assert summary == {"totalAvailableCents": 0, "currency": 'USD', "members": []}

    def test_summary_grouped_by_member(self, session, make_profile):
        sponsor = make_profile("Sponsor")
        ana = make_profile("Ana", email="ana@purvita.test")
        ben = make_profile("Ben")
        repo = NetworkEarningsRepository(session)

        repo.insertCommission(sponsor.userID, 300, ana.userID)
        repo.insertCommission(sponsor.userID, 200, ana.userID)
        repo.insertCommission(sponsor.userID, 700, ben.userID)
        session.commit()

        summary = repo.fetchAvailableSummary(sponsor.userID)

        assert summary["totalAvailableCents"] == 1200
        assert [m["memberId"] for m in summary["members"]] == [ben.userID, ana.userID]
        assert summary["members"][1]["memberName"] == 'Ana'
        assert summary["members"][1]["memberEmail"] == 'ana@purvita.test'
        assert summary["members"][1]["totalCents"] == 500

    def test_decrement_oldest_first(self, session, make_profile):
        """
        TEST: Transfer 400 out of rows of 300 (older) and 500 (newer).

        Verify: Older row emptied, 100 taken from the newer one.
        """
        sponsor = make_profile("Sponsor")
        repo = NetworkEarningsRepository(session)

        newer = repo.insertCommission(sponsor.userID, 500)
        older = repo.insertCommission(sponsor.userID, 300)
        older.createdAt = utcnow() - timedelta(days=3)
        session.commit()

        result = repo.decrementAvailable(sponsor.userID, 400)

        assert result == [
            {"id": older.commissionID, "deductedCents": 300},
            {"id": newer.commissionID, "deductedCents": 100},
        ]
        assert older.availableCents == 0
        assert newer.availableCents == 400

    def test_decrement_errors(self, session, make_profile):
        sponsor = make_profile("Sponsor")
        repo = NetworkEarningsRepository(session)

        with pytest.raises(InvalidAmountError):
            repo.decrementAvailable(sponsor.userID, 0)

        with pytest.raises(InsufficientBalanceError, match="No network earnings available"):
            repo.decrementAvailable(sponsor.userID, 100)

        repo.insertCommission(sponsor.userID, 150)
        with pytest.raises(InsufficientBalanceError, match="Insufficient network earnings: 1.50 available"):
            repo.decrementAvailable(sponsor.userID, 200)

    def test_admin_adjust_up(self, session, make_profile):
        sponsor = make_profile("Sponsor")
        repo = NetworkEarningsRepository(session)
        repo.insertCommission(sponsor.userID, 1000)

        delta = repo.adminAdjustEarnings(sponsor.userID, 2500, note="Bonus")

        assert delta == 1500
        row = session.query(NetworkCommission).filter_by(userID=sponsor.userID, level=0).one()
        assert row.memberID is None
        assert row.meta["commission_type"] == 'admin_adjustment'
        assert row.meta["admin_member_id"] == ADMIN_ADJUSTMENT_MEMBER_ID
        assert repo.fetchAvailableSummary(sponsor.userID)["totalAvailableCents"] == 2500

    def test_admin_adjust_down_and_noop(self, session, make_profile):
        sponsor = make_profile("Sponsor")
        repo = NetworkEarningsRepository(session)
        repo.insertCommission(sponsor.userID, 1000)

        assert repo.adminAdjustEarnings(sponsor.userID, 400) == -600
        assert repo.fetchAvailableSummary(sponsor.userID)["totalAvailableCents"] == 400
        assert repo.adminAdjustEarnings(sponsor.userID, 400) == 0

        with pytest.raises(InvalidAmountError):
            repo.adminAdjustEarnings(sponsor.userID, -1)
