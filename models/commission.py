# purvita/models/commission.py
"""
NetworkCommission model - earnings credited to uplines and affiliates.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, JSON

from core.utils import new_id
from models.base import Base, AuditMixin


class NetworkCommission(Base, AuditMixin):
    __tablename__ = 'network_commissions'

    commissionID = Column(String(36), primary_key=True, default=new_id)

    # Receiver and the member whose activity generated it
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)
    memberID = Column(String(36), ForeignKey('profiles.userID'), nullable=True)

    orderID = Column(String(36), nullable=True, index=True)
    amountCents = Column(Integer, nullable=False)
    availableCents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default='USD')
    level = Column(Integer, nullable=False, default=1)
    meta = Column(JSON, nullable=True)

    def __repr__(self):
        return (
            f"<NetworkCommission(commissionID={self.commissionID}, userID={self.userID}, "
            f"amountCents={self.amountCents}, level={self.level})>"
        )
