# tests/conftest.py
"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database bound through
core.db.use_engine, so code opening its own sessions (API handlers,
event handlers, the scheduler) sees the same data as the test.

Run:
    pytest tests -v
"""
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine, func
from sqlalchemy.pool import StaticPool

from config import Config
from core import db
from core.di import clear_services, register_service
from core.utils import utcnow
from email_system.services.email_service import EmailService
from models import Base, Phase, Product, Profile, Subscription, WalletTransaction
from models.listeners import register_all_listeners
from multilevel.config.phases import reset_phase_levels_cache
from multilevel.events.setup import teardown_subscription_event_handlers
from multilevel.repositories.wallet_repository import WalletRepository

# =============================================================================
# INITIALIZE CONFIG
# =============================================================================

Config.initialize_from_env()

# =============================================================================
# CONSTANTS
# =============================================================================

ADMIN_USER_ID = 'a0000000-0000-0000-0000-00000000000a'
ADMIN_TOKEN = 'test-admin-token'
CSRF_SECRET = 'test-csrf-secret'
WEBHOOK_SECRET = 'whsec_test'

TEST_CONFIG = {
    Config.ADMIN_API_TOKENS: {ADMIN_TOKEN: ADMIN_USER_ID},
    Config.CSRF_SECRET: CSRF_SECRET,
    Config.CSRF_TOKEN_TTL: 3600,
    Config.STRIPE_SECRET_KEY: None,
    Config.STRIPE_WEBHOOK_SECRET: WEBHOOK_SECRET,
    Config.APP_NAME: 'PūrVita',
    Config.APP_URL: 'http://localhost:3000',
    Config.CURRENCY: 'USD',
    Config.STORAGE_PUBLIC_URL: 'https://storage.purvita.local/public/',
    Config.DEFAULT_SUBSCRIPTION_PRICE_CENTS: 3499,
    Config.SUBSCRIPTION_PERIOD_DAYS: 30,
    Config.RENEWAL_DAYS_BEFORE_EXPIRY: 1,
    Config.RENEWAL_CRON_HOUR: 3,
    Config.WITHDRAWAL_DAILY_LIMIT_CENTS: 50000000,
    Config.SUBSCRIPTION_COMMISSIONS_ENABLED: False,
}


# =============================================================================
# CONFIG & DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="session", autouse=True)
def setup_listeners():
    """Register listeners once at test session start."""
    register_all_listeners()


@pytest.fixture(autouse=True)
def test_config():
    """Known configuration for every test, restored afterwards."""
    saved = Config.get_all()
    for key, value in TEST_CONFIG.items():
        Config.set(key, value)
    yield
    Config._config.clear()
    Config._config.update(saved)


@pytest.fixture(autouse=True)
def engine():
    """Fresh in-memory database per test, shared by every session."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    db.use_engine(engine)
    Base.metadata.create_all(engine)
    reset_phase_levels_cache()

    yield engine

    teardown_subscription_event_handlers()
    clear_services()
    reset_phase_levels_cache()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create database session for each test."""
    session = db.get_session()
    yield session
    session.close()


# =============================================================================
# DATA FIXTURES
# =============================================================================

@pytest.fixture
def unique_ref():
    """Generate unique gateway reference for test isolation."""
    def _generate(prefix="test"):
        return f"{prefix}_{uuid.uuid4().hex[:8]}"
    return _generate


@pytest.fixture
def make_profile(session):
    """Create and commit a profile."""
    def _generate(name="Member", sponsor=None, email=None, role='member', permissions=None, status='active'):
        profile = Profile(
            name=name,
            email=email if email is not None else f"{uuid.uuid4().hex[:8]}@purvita.test",
            role=role,
            status=status,
            permissions=permissions,
            sponsorID=sponsor.userID if sponsor is not None else None
        )
        session.add(profile)
        session.commit()
        return profile
    return _generate


@pytest.fixture
def make_subscription(session):
    """Create and commit a subscription for a profile."""
    def _generate(profile, status='active', gateway='wallet', subscriptionType='mlm',
                  periodEnd=None, defaultPaymentMethodId=None, planId=None,
                  waitlisted=False, cancelAtPeriodEnd=False):
        subscription = Subscription(
            userID=profile.userID,
            status=status,
            gateway=gateway,
            subscriptionType=subscriptionType,
            currentPeriodEnd=periodEnd if periodEnd is not None else utcnow() + timedelta(days=20),
            defaultPaymentMethodID=defaultPaymentMethodId,
            planID=planId,
            waitlisted=waitlisted,
            cancelAtPeriodEnd=cancelAtPeriodEnd
        )
        session.add(subscription)
        session.commit()
        return subscription
    return _generate


@pytest.fixture
def make_member(make_profile, make_subscription):
    """Profile with an active subscription."""
    def _generate(name="Member", sponsor=None, active=True):
        profile = make_profile(name=name, sponsor=sponsor)
        if active:
            make_subscription(profile)
        return profile
    return _generate


@pytest.fixture
def set_phase(session):
    """Store a phase row for a member."""
    def _generate(profile, phase, override=None):
        row = session.query(Phase).filter_by(userID=profile.userID).first()
        if row is None:
            row = Phase(userID=profile.userID)
            session.add(row)
        row.phase = phase
        row.highestPhase = max(row.highestPhase or 0, phase)
        row.manualPhaseOverride = override
        session.commit()
        return row
    return _generate


@pytest.fixture
def fund_wallet(session):
    """Credit a wallet through the journal."""
    def _generate(profile, amountCents, reason='recharge'):
        txn = WalletRepository(session).addTransaction(profile.userID, amountCents, reason, {"source": "test"})
        session.commit()
        return txn
    return _generate


@pytest.fixture
def make_product(session):
    """Create and commit a product."""
    def _generate(name="Green Tea", priceCents=2500, stockQuantity=10, slug=None, **fields):
        product = Product(
            slug=slug or f"{name.lower().replace(' ', '-')}-{uuid.uuid4().hex[:6]}",
            name=name,
            priceCents=priceCents,
            stockQuantity=stockQuantity,
            **fields
        )
        session.add(product)
        session.commit()
        return product
    return _generate


@pytest.fixture
def admin_profile(session):
    """Admin whose id matches the configured API token."""
    profile = Profile(
        userID=ADMIN_USER_ID,
        name='Admin',
        email='admin@purvita.test',
        role='admin'
    )
    session.add(profile)
    session.commit()
    return profile


@pytest.fixture
def email_service():
    """Registered EmailService double that records sent emails."""
    service = MagicMock(spec=EmailService)
    service.send_email = AsyncMock(return_value=True)
    register_service(EmailService, service)
    return service


@pytest.fixture
def calc_journal_sum(session):
    """Calculate the wallet balance from the journal."""
    def _calc(user_id):
        result = session.query(
            func.coalesce(func.sum(WalletTransaction.deltaCents), 0)
        ).filter(WalletTransaction.userID == user_id).scalar()
        return int(result or 0)
    return _calc
