# purvita/models/coming_soon.py
"""
ComingSoonSubscriber model - emails collected before launch.
"""
from sqlalchemy import Column, String

from core.utils import new_id
from models.base import Base, AuditMixin


class ComingSoonSubscriber(Base, AuditMixin):
    __tablename__ = 'coming_soon_subscribers'

    subscriberID = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, nullable=False, unique=True)
