# purvita/multilevel/config/phases.py
"""
Compensation plan phases and their rates.

Rates live in the phase_levels table so admins can tune them; the defaults
below are used for any level without a row.
"""
from decimal import Decimal
from enum import IntEnum
from typing import Dict, Any, Optional
import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class PhaseTier(IntEnum):
    """Compensation plan phase."""
    PHASE_0 = 0
    PHASE_1 = 1
    PHASE_2 = 2
    PHASE_3 = 3


MAX_PHASE = PhaseTier.PHASE_3

# Upline walk bound
MAX_UPLINE_DEPTH = 10

# Requirements for automatic promotion
PHASE_1_DIRECT_REFERRALS = 2
PHASE_2_SECOND_LEVEL_TOTAL = 4
PHASE_2_SECOND_LEVEL_PER_DIRECT = 2
PHASE_3_PHASE_2_DIRECTS = 2

DEFAULT_PHASE_LEVELS: Dict[int, Dict[str, Any]] = {
    0: {
        "name": "Registration",
        "commissionRate": Decimal("0.08"),
        "subscriptionDiscountRate": Decimal("0.05"),
        "creditCents": 0,
    },
    1: {
        "name": "First Partners",
        "commissionRate": Decimal("0.15"),
        "subscriptionDiscountRate": Decimal("0.10"),
        "creditCents": 0,
    },
    2: {
        "name": "Duplicate Team",
        "commissionRate": Decimal("0.30"),
        "subscriptionDiscountRate": Decimal("0.15"),
        "creditCents": 0,
    },
    3: {
        "name": "Network Expansion",
        "commissionRate": Decimal("0.40"),
        "subscriptionDiscountRate": Decimal("0.20"),
        "creditCents": 0,
    },
}


# Lazy-loaded configuration cache
_PHASE_LEVELS_CACHE: Dict[int, Dict[str, Any]] = {}


def load_phase_levels(session: Session) -> Dict[int, Dict[str, Any]]:
    """
    Read active phase levels from the database, merged over the defaults.

    Returns:
        Dictionary mapping level number to its configuration dict
    """
    from models.phase import PhaseLevel

    levels = {level: dict(data) for level, data in DEFAULT_PHASE_LEVELS.items()}

    rows = session.query(PhaseLevel).filter(PhaseLevel.isActive.is_(True)).all()
    for row in rows:
        levels[row.level] = {
            "name": row.name,
            "commissionRate": Decimal(str(row.commissionRate or 0)),
            "subscriptionDiscountRate": Decimal(str(row.subscriptionDiscountRate or 0)),
            "creditCents": row.creditCents or 0,
        }

    return levels


def get_phase_levels_cached(session: Session) -> Dict[int, Dict[str, Any]]:
    """
    Get phase levels with caching.
    Loads from the database on first access, then returns cached version.
    """
    global _PHASE_LEVELS_CACHE

    if not _PHASE_LEVELS_CACHE:
        try:
            _PHASE_LEVELS_CACHE = load_phase_levels(session)
            logger.info(f"Loaded phase levels: {len(_PHASE_LEVELS_CACHE)} levels")
        except Exception as e:
            logger.error(f"Failed to load phase levels, using defaults: {e}")
            return {level: dict(data) for level, data in DEFAULT_PHASE_LEVELS.items()}

    return _PHASE_LEVELS_CACHE


def reset_phase_levels_cache() -> None:
    """Drop the cache after phase levels are edited."""
    global _PHASE_LEVELS_CACHE
    _PHASE_LEVELS_CACHE = {}
    logger.debug("Phase levels cache cleared")


def get_phase_commission_rate(session: Session, phase: Optional[int]) -> Decimal:
    """
    Seller commission rate for a phase.

    Examples:
        phase 0 → 0.08, phase 2 → 0.30, unknown → 0
    """
    if phase is None:
        return Decimal("0")
    level = get_phase_levels_cached(session).get(int(phase))
    return level["commissionRate"] if level else Decimal("0")


def get_subscription_discount_rate(session: Session, phase: Optional[int]) -> Decimal:
    """Retail (group gain) rate paid to the sponsor of an affiliate at this phase."""
    if phase is None:
        return Decimal("0")
    level = get_phase_levels_cached(session).get(int(phase))
    return level["subscriptionDiscountRate"] if level else Decimal("0")
