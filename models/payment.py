# purvita/models/payment.py
"""
Payment models - recorded charges, stored cards and PayPal agreements.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON

from core.utils import new_id
from models.base import Base, AuditMixin


class Payment(Base, AuditMixin):
    __tablename__ = 'payments'

    paymentID = Column(String(36), primary_key=True, default=new_id)
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)

    amountCents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default='USD')
    status = Column(String, nullable=False, default='paid')  # paid, failed, refunded
    kind = Column(String, nullable=False, default='subscription')  # subscription, order, wallet_recharge
    gateway = Column(String, nullable=False)  # stripe, paypal, wallet

    # Uniqueness is the only idempotency guard for gateway callbacks
    gatewayRef = Column(String, nullable=False, unique=True)

    periodEnd = Column(DateTime, nullable=True)
    meta = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<Payment(paymentID={self.paymentID}, amountCents={self.amountCents}, gateway={self.gateway})>"


class PaymentMethod(Base, AuditMixin):
    __tablename__ = 'payment_methods'

    methodID = Column(String(36), primary_key=True, default=new_id)
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)

    stripePaymentMethodID = Column(String, nullable=False)
    stripeCustomerID = Column(String, nullable=True)
    brand = Column(String, nullable=True)
    lastFour = Column(String(4), nullable=True)
    isDefault = Column(Boolean, nullable=False, default=False)


class BillingAgreement(Base, AuditMixin):
    __tablename__ = 'paypal_billing_agreements'

    agreementID = Column(String(36), primary_key=True, default=new_id)
    userID = Column(String(36), ForeignKey('profiles.userID'), nullable=False, index=True)

    paypalSubscriptionID = Column(String, nullable=False, unique=True)
    status = Column(String, nullable=False, default='active')  # active, cancelled, suspended
