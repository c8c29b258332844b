# purvita/models/email_template.py
"""
EmailTemplate model - editable bilingual email copy.
"""
from sqlalchemy import Column, String, Text, Boolean, JSON

from models.base import Base, AuditMixin


class EmailTemplate(Base, AuditMixin):
    __tablename__ = 'email_templates'

    # Stable identifiers, e.g. 'subscription_canceled'
    templateID = Column(String, primary_key=True)

    name = Column(String, nullable=False)
    category = Column(String, nullable=False, default='general')

    subjectEn = Column(String, nullable=False)
    subjectEs = Column(String, nullable=True)
    bodyEn = Column(Text, nullable=False)
    bodyEs = Column(Text, nullable=True)

    # Documented placeholder names, e.g. ["userName", "planName"]
    variables = Column(JSON, nullable=True)
    isActive = Column(Boolean, nullable=False, default=True)
