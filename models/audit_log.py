# purvita/models/audit_log.py
"""
AuditLog model - append-only record of admin and system actions.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON

from core.utils import new_id, utcnow
from models.base import Base


class AuditLog(Base):
    __tablename__ = 'audit_logs'

    logID = Column(String(36), primary_key=True, default=new_id)

    action = Column(String, nullable=False, index=True)
    entityType = Column(String, nullable=False, index=True)
    entityID = Column(String, nullable=True)

    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=True, index=True)
    ipAddress = Column(String, nullable=True)
    userAgent = Column(String, nullable=True)

    meta = Column(JSON, nullable=True)
    createdAt = Column(DateTime, default=utcnow, index=True)

    def __repr__(self):
        return f"<AuditLog(action={self.action}, entityType={self.entityType}, entityID={self.entityID})>"
