# purvita/models/base.py
"""
Base model and mixins for all database tables.
"""
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime

from core.utils import utcnow

Base = declarative_base()


class AuditMixin:
    createdAt = Column(DateTime, default=utcnow, index=True)
    updatedAt = Column(DateTime, default=utcnow, onupdate=utcnow)
