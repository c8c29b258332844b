# purvita/models/profile.py
"""
Profile model - platform members and admins.
"""
from sqlalchemy import Column, String, ForeignKey, JSON
from sqlalchemy.orm import relationship

from core.utils import new_id
from models.base import Base, AuditMixin


class Profile(Base, AuditMixin):
    __tablename__ = 'profiles'

    userID = Column(String(36), primary_key=True, default=new_id)

    name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    role = Column(String, nullable=False, default='member')  # member, admin
    status = Column(String, nullable=False, default='active')  # active, inactive, suspended

    # Referral tree (single parent pointer)
    referralCode = Column(String, nullable=True, unique=True)
    sponsorID = Column(String(36), ForeignKey('profiles.userID'), nullable=True, index=True)

    # Admin permissions, e.g. ["manage_products", "view_dashboard"]
    permissions = Column(JSON, nullable=True)

    sponsor = relationship('Profile', remote_side=[userID], backref='referrals')

    @property
    def isAdmin(self) -> bool:
        return self.role == 'admin'

    def hasPermission(self, permission: str) -> bool:
        """Admins without an explicit list hold every permission."""
        if not self.isAdmin:
            return False
        if not self.permissions:
            return True
        return permission in self.permissions

    def __repr__(self):
        return f"<Profile(userID={self.userID}, email={self.email}, role={self.role})>"
