# purvita/multilevel/repositories/network_earnings_repository.py
"""
Network earnings (network_commissions) persistence.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from config import Config
from models.commission import NetworkCommission
from models.profile import Profile
from multilevel.errors import InvalidAmountError, InsufficientBalanceError

logger = logging.getLogger(__name__)

# Fixed member id marking admin-created adjustment rows
ADMIN_ADJUSTMENT_MEMBER_ID = '00000000-0000-0000-0000-000000000001'


class NetworkEarningsRepository:

    def __init__(self, session: Session):
        self.session = session

    def insertCommission(
            self,
            userId: str,
            amountCents: int,
            memberId: Optional[str] = None,
            orderId: Optional[str] = None,
            level: int = 1,
            meta: Optional[Dict[str, Any]] = None,
            currency: Optional[str] = None
    ) -> NetworkCommission:
        commission = NetworkCommission(
            userID=userId,
            memberID=memberId,
            orderID=orderId,
            amountCents=int(amountCents),
            availableCents=int(amountCents),
            currency=(currency or Config.get(Config.CURRENCY, 'USD')).upper(),
            level=level,
            meta=meta or {}
        )
        self.session.add(commission)
        self.session.flush()
        return commission

    def deleteByOrderId(self, orderId: str) -> int:
        deleted = self.session.query(NetworkCommission).filter(
            NetworkCommission.orderID == orderId
        ).delete(synchronize_session=False)
        self.session.flush()
        return int(deleted or 0)

    def listByOrderId(self, orderId: str) -> List[NetworkCommission]:
        return self.session.query(NetworkCommission).filter(
            NetworkCommission.orderID == orderId
        ).all()

    def fetchAvailableSummary(self, userId: str) -> Dict[str, Any]:
        """
        Available earnings with a per-member breakdown.

        Returns:
            {"totalAvailableCents", "currency", "members": [...]} sorted by total desc
        """
        default_currency = Config.get(Config.CURRENCY, 'USD')

        rows = (
            self.session.query(NetworkCommission, Profile.name, Profile.email)
            .outerjoin(Profile, Profile.userID == NetworkCommission.memberID)
            .filter(NetworkCommission.userID == userId)
            .all()
        )

        if not rows:
            return {"totalAvailableCents": 0, "currency": default_currency, "members": []}

        total_available = 0
        members: Dict[str, Dict[str, Any]] = {}

        for commission, member_name, member_email in rows:
            available = int(commission.availableCents or 0)
            total_available += available

            key = commission.memberID or ''
            if key not in members:
                members[key] = {
                    "memberId": key,
                    "memberName": member_name,
                    "memberEmail": member_email,
                    "totalCents": 0,
                }
            members[key]["totalCents"] += available

        return {
            "totalAvailableCents": total_available,
            "currency": rows[0][0].currency or default_currency,
            "members": sorted(members.values(), key=lambda m: m["totalCents"], reverse=True),
        }

    def _availableRows(self, userId: str) -> List[NetworkCommission]:
        return (
            self.session.query(NetworkCommission)
            .filter(
                NetworkCommission.userID == userId,
                NetworkCommission.availableCents > 0
            )
            .order_by(NetworkCommission.createdAt.asc())
            .all()
        )

    def _deduct(self, rows: List[NetworkCommission], amountCents: int) -> List[Dict[str, Any]]:
        remaining = amountCents
        decremented = []

        for row in rows:
            if remaining <= 0:
                break

            deduction = min(int(row.availableCents), remaining)
            row.availableCents = int(row.availableCents) - deduction
            decremented.append({"id": row.commissionID, "deductedCents": deduction})
            remaining -= deduction

        self.session.flush()
        return decremented

    def decrementAvailable(self, userId: str, amountCents: int) -> List[Dict[str, Any]]:
        """
        Consume available earnings oldest first.

        Raises:
            InvalidAmountError: amountCents <= 0
            InsufficientBalanceError: Not enough available earnings
        """
        if amountCents <= 0:
            raise InvalidAmountError()

        rows = self._availableRows(userId)
        total_available = sum(int(row.availableCents) for row in rows)

        if total_available == 0:
            raise InsufficientBalanceError("No network earnings available to transfer")

        if total_available < amountCents:
            raise InsufficientBalanceError(
                f"Insufficient network earnings: {total_available / 100:.2f} available, "
                f"{amountCents / 100:.2f} requested"
            )

        return self._deduct(rows, amountCents)

    def adminAdjustEarnings(self, userId: str, targetAmountCents: int, note: Optional[str] = None) -> int:
        """
        Set a member's available earnings to targetAmountCents.

        Returns:
            Applied delta in cents (0 when already at target)
        """
        if targetAmountCents < 0:
            raise InvalidAmountError("Target amount cannot be negative")

        current = self.fetchAvailableSummary(userId)["totalAvailableCents"]
        delta = int(targetAmountCents) - current

        if delta == 0:
            return 0

        if delta > 0:
            self.insertCommission(
                userId=userId,
                amountCents=delta,
                memberId=None,
                level=0,
                meta={"commission_type": "admin_adjustment", "note": note,
                      "admin_member_id": ADMIN_ADJUSTMENT_MEMBER_ID}
            )
        else:
            self._deduct(self._availableRows(userId), abs(delta))

        logger.info(f"Network earnings adjusted for user {userId}: {current} → {targetAmountCents}")
        return delta
