# purvita/models/admin_note.py
"""
AdminNote model - short notes left on the admin dashboard.
"""
from sqlalchemy import Column, String, Text, ForeignKey, JSON

from core.utils import new_id
from models.base import Base, AuditMixin


class AdminNote(Base, AuditMixin):
    __tablename__ = 'admin_notes'

    noteID = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)  # stored HTML-escaped
    attachments = Column(JSON, nullable=True)
    createdBy = Column(String(36), ForeignKey('profiles.userID'), nullable=True)
