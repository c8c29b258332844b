# purvita/models/plan.py
"""
Plan model - subscription plans with bilingual copy.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DECIMAL, JSON

from core.utils import new_id
from models.base import Base, AuditMixin


class Plan(Base, AuditMixin):
    __tablename__ = 'plans'

    planID = Column(String(36), primary_key=True, default=new_id)
    slug = Column(String, nullable=False, unique=True)

    # Legacy single-language columns kept in sync with the _en variants
    name = Column(String, nullable=False)
    nameEn = Column(String, nullable=True)
    nameEs = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    descriptionEn = Column(Text, nullable=True)
    descriptionEs = Column(Text, nullable=True)
    features = Column(JSON, nullable=True)
    featuresEn = Column(JSON, nullable=True)
    featuresEs = Column(JSON, nullable=True)

    price = Column(DECIMAL(10, 2), nullable=False)

    isActive = Column(Boolean, nullable=False, default=True)
    isMlmPlan = Column(Boolean, nullable=False, default=True)
    isAffiliatePlan = Column(Boolean, nullable=False, default=False)
    displayOrder = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<Plan(planID={self.planID}, slug={self.slug}, price={self.price})>"
