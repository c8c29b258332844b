# purvita/models/phase.py
"""
Phase models - compensation plan tier per member and tier configuration.
"""
from decimal import Decimal

from sqlalchemy import Column, Integer, String, Boolean, Numeric, ForeignKey

from core.utils import new_id
from models.base import Base, AuditMixin


class Phase(Base, AuditMixin):
    __tablename__ = 'phases'

    userID = Column(String(36), ForeignKey('profiles.userID'), primary_key=True)

    phase = Column(Integer, nullable=False, default=0)
    highestPhase = Column(Integer, nullable=False, default=0)

    # Admin-set phase that wins over recalculation
    manualPhaseOverride = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<Phase(userID={self.userID}, phase={self.phase})>"


class PhaseLevel(Base, AuditMixin):
    __tablename__ = 'phase_levels'

    phaseLevelID = Column(String(36), primary_key=True, default=new_id)
    level = Column(Integer, nullable=False, unique=True)
    name = Column(String, nullable=False)

    # Fractions, e.g. 0.15 = 15%
    commissionRate = Column(Numeric(6, 4), nullable=False, default=Decimal("0"))
    subscriptionDiscountRate = Column(Numeric(6, 4), nullable=False, default=Decimal("0"))

    creditCents = Column(Integer, nullable=False, default=0)
    isActive = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<PhaseLevel(level={self.level}, commissionRate={self.commissionRate})>"
