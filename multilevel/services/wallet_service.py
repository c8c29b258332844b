# purvita/multilevel/services/wallet_service.py
"""
Wallet service - credits, recharges and debits.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Config
from core.utils import iso, utcnow
from models.wallet import WalletTransaction
from multilevel.errors import (
    InsufficientBalanceError,
    InvalidAmountError,
    MissingGatewayReferenceError,
    WalletNotFoundError,
)
from multilevel.repositories.wallet_repository import WalletRepository
from services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)


class WalletService:
    """Service for wallet balance operations."""

    def __init__(self, session: Session):
        self.session = session
        self.repository = WalletRepository(session)
        self.audit = AuditLogService(session)

    async def getBalance(self, userId: str) -> int:
        return self.repository.getBalanceCents(userId)

    async def listTransactions(self, userId: str, limit: int = 50) -> List[WalletTransaction]:
        return self.repository.listTransactions(userId, limit)

    async def getWithdrawalStats(self, userId: str) -> Dict[str, int]:
        return self.repository.getWithdrawalStats(userId)

    async def addFunds(
            self,
            userId: str,
            amountCents: int,
            reason: str,
            adminId: Optional[str] = None,
            note: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None
    ) -> WalletTransaction:
        """
        Credit (or, for admin adjustments, debit) a wallet.

        Metadata always carries a timestamp; admin_id and note are added when given.
        """
        meta: Dict[str, Any] = {"timestamp": iso(utcnow())}
        if adminId:
            meta["admin_id"] = adminId
        if note:
            meta["note"] = note
        if metadata:
            meta.update(metadata)

        txn = self.repository.addTransaction(userId, amountCents, reason, meta)

        logger.info(f"Wallet funds added: user={userId}, {amountCents} cents ({reason})")
        return txn

    async def recordRecharge(
            self,
            userId: str,
            amountCents: int,
            gateway: str,
            gatewayRef: str,
            currency: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Record a gateway-confirmed wallet recharge exactly once.

        Returns:
            {"alreadyProcessed": True} for non-positive amounts or known references,
            otherwise {"alreadyProcessed": False, "transaction": txn}

        Raises:
            MissingGatewayReferenceError: Empty gatewayRef
        """
        if not gatewayRef:
            raise MissingGatewayReferenceError()

        if amountCents <= 0:
            logger.warning(f"Ignoring recharge with non-positive amount for user {userId}")
            return {"alreadyProcessed": True}

        if self.repository.hasTransactionWithReference(userId, gatewayRef):
            logger.info(f"Recharge {gatewayRef} already processed for user {userId}")
            return {"alreadyProcessed": True}

        meta = {
            "gateway": gateway,
            "gateway_ref": gatewayRef,
            "currency": (currency or Config.get(Config.CURRENCY, 'USD')).upper(),
            **(metadata or {}),
        }

        try:
            # Only the savepoint is rolled back, the caller's transaction survives
            with self.session.begin_nested():
                txn = self.repository.addTransaction(
                    userId,
                    amountCents,
                    'recharge',
                    meta,
                    externalReference=gatewayRef
                )
        except IntegrityError:
            # Concurrent callback stored the same reference first
            logger.info(f"Recharge {gatewayRef} stored concurrently for user {userId}")
            return {"alreadyProcessed": True}

        self.audit.logUserAction(
            'WALLET_RECHARGED',
            'wallet',
            userId,
            {"amount_cents": amountCents, "gateway": gateway, "gateway_ref": gatewayRef},
            userId=userId
        )

        return {"alreadyProcessed": False, "transaction": txn}

    async def spendFunds(
            self,
            userId: str,
            amountCents: int,
            reason: str = 'purchase',
            metadata: Optional[Dict[str, Any]] = None
    ) -> WalletTransaction:
        """
        Debit a wallet atomically.

        Raises:
            InvalidAmountError: amountCents <= 0
            InsufficientBalanceError: No wallet or balance too low
        """
        if amountCents <= 0:
            raise InvalidAmountError()

        meta = {"timestamp": iso(utcnow()), **(metadata or {})}

        try:
            txn = self.repository.debitWithCheck(userId, amountCents, reason, meta)
        except WalletNotFoundError:
            raise InsufficientBalanceError()

        logger.info(f"Wallet debit: user={userId}, {amountCents} cents ({reason})")
        return txn
