# purvita/models/wallet.py
"""
Wallet models - cached balance plus the transaction journal it derives from.

Wallet.balanceCents is maintained by models/listeners/wallet_listeners.py
and always equals SUM(WalletTransaction.deltaCents) for the user.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, JSON, UniqueConstraint

from core.utils import new_id
from models.base import Base, AuditMixin


class Wallet(Base, AuditMixin):
    __tablename__ = 'wallets'

    userID = Column(String(36), ForeignKey('profiles.userID'), primary_key=True)
    balanceCents = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Wallet(userID={self.userID}, balanceCents={self.balanceCents})>"


class WalletTransaction(Base, AuditMixin):
    __tablename__ = 'wallet_txns'
    __table_args__ = (
        UniqueConstraint('userID', 'externalReference', name='uq_wallet_txn_reference'),
    )

    txnID = Column(String(36), primary_key=True, default=new_id)
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)

    # Positive = credit, negative = debit
    deltaCents = Column(Integer, nullable=False)

    # recharge, purchase, sale_commission, admin_adjustment, withdrawal, subscription_renewal
    reason = Column(String, nullable=False)
    meta = Column(JSON, nullable=True)

    # Gateway reference for recharges (nullable; unique per user when present)
    externalReference = Column(String, nullable=True)

    def __repr__(self):
        return f"<WalletTransaction(txnID={self.txnID}, deltaCents={self.deltaCents}, reason={self.reason})>"
