# purvita/models/subscription.py
"""
Subscription model - one row per member and subscription type.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey

from core.utils import new_id
from models.base import Base, AuditMixin


class Subscription(Base, AuditMixin):
    __tablename__ = 'subscriptions'

    subscriptionID = Column(String(36), primary_key=True, default=new_id)
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)
    planID = Column(String(36), ForeignKey('plans.planID'), nullable=True)

    subscriptionType = Column(String, nullable=False, default='mlm')  # mlm, affiliate
    status = Column(String, nullable=False, default='unpaid')  # active, past_due, canceled, unpaid
    gateway = Column(String, nullable=True)  # stripe, paypal, wallet

    currentPeriodEnd = Column(DateTime, nullable=True, index=True)
    cancelAtPeriodEnd = Column(Boolean, nullable=False, default=False)

    # Stripe payment method used for off-session renewals
    defaultPaymentMethodID = Column(String, nullable=True)

    waitlisted = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return (
            f"<Subscription(subscriptionID={self.subscriptionID}, userID={self.userID}, "
            f"status={self.status}, gateway={self.gateway})>"
        )


class NotificationPreference(Base, AuditMixin):
    __tablename__ = 'notification_preferences'

    userID = Column(String(36), ForeignKey('profiles.userID'), primary_key=True)
    subscriptionNotifications = Column(Boolean, nullable=False, default=True)
    promotionalOffers = Column(Boolean, nullable=False, default=False)
