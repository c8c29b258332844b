# purvita/multilevel/__init__.py
"""
Multilevel system - wallets, phase commissions and subscriptions.
"""

# Services
from multilevel.services.wallet_service import WalletService
from multilevel.services.seller_commission_service import SellerCommissionService
from multilevel.services.commission_calculator_service import CommissionCalculatorService
from multilevel.services.subscription_commission_service import SubscriptionCommissionService
from multilevel.services.subscription_lifecycle_service import SubscriptionLifecycleService
from multilevel.services.subscription_renewal_service import SubscriptionRenewalService
from multilevel.services.subscription_notification_service import SubscriptionNotificationService
from multilevel.services.dashboard_summary_service import DashboardSummaryService

# Configuration
from multilevel.config.phases import PhaseTier, MAX_UPLINE_DEPTH, get_phase_commission_rate

# Events
from multilevel.events.event_bus import subscriptionEventBus, SubscriptionEvents

__all__ = [
    # Services
    'WalletService',
    'SellerCommissionService',
    'CommissionCalculatorService',
    'SubscriptionCommissionService',
    'SubscriptionLifecycleService',
    'SubscriptionRenewalService',
    'SubscriptionNotificationService',
    'DashboardSummaryService',

    # Config
    'PhaseTier',
    'MAX_UPLINE_DEPTH',
    'get_phase_commission_rate',

    # Events
    'subscriptionEventBus',
    'SubscriptionEvents',
]
