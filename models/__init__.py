# purvita/models/__init__.py
"""
Database models for the admin backend.
Import all models here so Base.metadata knows every table.
"""

# Base and mixins
from models.base import Base, AuditMixin

# Members & compensation plan
from models.profile import Profile
from models.phase import Phase, PhaseLevel
from models.subscription import Subscription, NotificationPreference
from models.payment import Payment, PaymentMethod, BillingAgreement
from models.wallet import Wallet, WalletTransaction
from models.commission import NetworkCommission

# Catalog & orders
from models.product import Product
from models.plan import Plan
from models.order import Order, OrderItem

# Admin & content
from models.audit_log import AuditLog
from models.admin_note import AdminNote
from models.site_content import LandingPageContent, SiteBranding
from models.email_template import EmailTemplate
from models.coming_soon import ComingSoonSubscriber

# Event listeners
from models.listeners import register_all_listeners

__all__ = [
    # Base
    'Base',
    'AuditMixin',

    # Members
    'Profile',
    'Phase',
    'PhaseLevel',
    'Subscription',
    'NotificationPreference',
    'Payment',
    'PaymentMethod',
    'BillingAgreement',
    'Wallet',
    'WalletTransaction',
    'NetworkCommission',

    # Catalog
    'Product',
    'Plan',
    'Order',
    'OrderItem',

    # Admin & content
    'AuditLog',
    'AdminNote',
    'LandingPageContent',
    'SiteBranding',
    'EmailTemplate',
    'ComingSoonSubscriber',

    # Listeners
    'register_all_listeners',
]
