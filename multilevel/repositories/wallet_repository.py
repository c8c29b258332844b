# purvita/multilevel/repositories/wallet_repository.py
"""
Wallet persistence - balance reads and journal writes.

Balances are never written directly: every change is a WalletTransaction row
and the wallet listener recalculates Wallet.balanceCents.
"""
import logging
from datetime import timedelta
from typing import Dict, List, Optional, Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import Config
from core.utils import utcnow
from models.wallet import Wallet, WalletTransaction
from multilevel.errors import InsufficientBalanceError, WalletNotFoundError

logger = logging.getLogger(__name__)


class WalletRepository:
    """Wallet and wallet_txns access."""

    def __init__(self, session: Session):
        self.session = session

    def findByUserId(self, userId: str) -> Optional[Wallet]:
        return self.session.query(Wallet).filter_by(userID=userId).populate_existing().first()

    def getBalanceCents(self, userId: str) -> int:
        """Current balance straight from the database, 0 without a wallet."""
        balance = self.session.query(Wallet.balanceCents).filter(
            Wallet.userID == userId
        ).scalar()
        return int(balance or 0)

    def ensureWalletExists(self, userId: str) -> Wallet:
        wallet = self.session.query(Wallet).filter_by(userID=userId).first()
        if wallet:
            return wallet

        wallet = Wallet(userID=userId, balanceCents=0)
        self.session.add(wallet)
        self.session.flush()
        logger.info(f"Wallet created for user {userId}")
        return wallet

    def listTransactions(self, userId: str, limit: int = 50) -> List[WalletTransaction]:
        """Newest first."""
        return (
            self.session.query(WalletTransaction)
            .filter(WalletTransaction.userID == userId)
            .order_by(WalletTransaction.createdAt.desc())
            .limit(limit)
            .all()
        )

    def addTransaction(
            self,
            userId: str,
            deltaCents: int,
            reason: str,
            meta: Optional[Dict[str, Any]] = None,
            externalReference: Optional[str] = None
    ) -> WalletTransaction:
        """
        Append a journal row. The listener recalculates the balance on flush.

        Raises:
            IntegrityError: If externalReference was already used for this user
        """
        self.ensureWalletExists(userId)

        txn = WalletTransaction(
            userID=userId,
            deltaCents=int(deltaCents),
            reason=reason,
            meta=meta or {},
            externalReference=externalReference
        )
        self.session.add(txn)
        self.session.flush()
        return txn

    def debitWithCheck(
            self,
            userId: str,
            amountCents: int,
            reason: str,
            meta: Optional[Dict[str, Any]] = None
    ) -> WalletTransaction:
        """
        Atomically debit a wallet.

        The wallet row is locked (SELECT ... FOR UPDATE where supported) so the
        balance check and the journal insert cannot interleave with another debit.

        Raises:
            WalletNotFoundError: No wallet row for the user
            InsufficientBalanceError: Balance lower than amountCents
        """
        wallet = (
            self.session.query(Wallet)
            .filter(Wallet.userID == userId)
            .with_for_update()
            .populate_existing()
            .first()
        )

        if wallet is None:
            raise WalletNotFoundError(userId)

        if (wallet.balanceCents or 0) < amountCents:
            logger.warning(
                f"Debit rejected: user={userId}, balance={wallet.balanceCents}, "
                f"requested={amountCents}"
            )
            raise InsufficientBalanceError()

        txn = WalletTransaction(
            userID=userId,
            deltaCents=-int(amountCents),
            reason=reason,
            meta=meta or {}
        )
        self.session.add(txn)
        self.session.flush()
        return txn

    def hasTransactionWithReference(self, userId: str, reference: str) -> bool:
        return self.session.query(WalletTransaction.txnID).filter(
            WalletTransaction.userID == userId,
            WalletTransaction.externalReference == reference
        ).first() is not None

    def getWithdrawalStats(self, userId: str, dailyLimitCents: Optional[int] = None) -> Dict[str, int]:
        """
        Withdrawals in the last 24 hours against the daily limit.

        Returns:
            {"withdrawnTodayCents", "dailyLimitCents", "remainingCents"}
        """
        if dailyLimitCents is None:
            dailyLimitCents = Config.get(Config.WITHDRAWAL_DAILY_LIMIT_CENTS, 50000000)

        since = utcnow() - timedelta(hours=24)
        withdrawn = self.session.query(
            func.coalesce(func.sum(WalletTransaction.deltaCents), 0)
        ).filter(
            WalletTransaction.userID == userId,
            WalletTransaction.reason == 'withdrawal',
            WalletTransaction.createdAt >= since
        ).scalar()

        withdrawn_today = abs(int(withdrawn or 0))
        return {
            "withdrawnTodayCents": withdrawn_today,
            "dailyLimitCents": int(dailyLimitCents),
            "remainingCents": max(0, int(dailyLimitCents) - withdrawn_today),
        }

    def sumTotalBalance(self) -> int:
        total = self.session.query(func.coalesce(func.sum(Wallet.balanceCents), 0)).scalar()
        return int(total or 0)
