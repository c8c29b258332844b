# purvita/multilevel/repositories/payment_repository.py
"""
Payment persistence. gatewayRef uniqueness is the idempotency key.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import Config
from models.payment import Payment

logger = logging.getLogger(__name__)


class PaymentRepository:

    def __init__(self, session: Session):
        self.session = session

    def findByGatewayRef(self, gatewayRef: str) -> Optional[Payment]:
        return self.session.query(Payment).filter_by(gatewayRef=gatewayRef).first()

    def insert(
            self,
            userId: str,
            amountCents: int,
            gateway: str,
            gatewayRef: str,
            kind: str = 'subscription',
            status: str = 'paid',
            periodEnd: Optional[datetime] = None,
            currency: Optional[str] = None,
            meta: Optional[Dict[str, Any]] = None
    ) -> Payment:
        payment = Payment(
            userID=userId,
            amountCents=int(amountCents),
            currency=(currency or Config.get(Config.CURRENCY, 'USD')).upper(),
            status=status,
            kind=kind,
            gateway=gateway,
            gatewayRef=gatewayRef,
            periodEnd=periodEnd,
            meta=meta or {}
        )
        self.session.add(payment)
        self.session.flush()
        logger.info(f"Payment recorded: user={userId}, {amountCents} cents via {gateway} ({gatewayRef})")
        return payment

    def sumPaidByKind(self, kind: str) -> int:
        total = self.session.query(func.coalesce(func.sum(Payment.amountCents), 0)).filter(
            Payment.kind == kind,
            Payment.status == 'paid'
        ).scalar()
        return int(total or 0)
