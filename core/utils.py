# purvita/core/utils.py
"""
Utility functions shared across services.
"""
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union, Any

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# TIME & IDENTIFIERS
# ═══════════════════════════════════════════════════════════════════════════

def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    """Random UUID4 string used for primary keys."""
    return str(uuid.uuid4())


def iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string with explicit UTC suffix, or None."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.isoformat() + 'Z'
    return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO date/datetime string into naive UTC.

    Examples:
        >>> parse_datetime("2025-01-15")
        datetime.datetime(2025, 1, 15, 0, 0)
        >>> parse_datetime("2025-01-15T10:30:00Z")
        datetime.datetime(2025, 1, 15, 10, 30)
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


# ═══════════════════════════════════════════════════════════════════════════
# MONEY
# ═══════════════════════════════════════════════════════════════════════════

def safe_decimal(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """
    Safely convert any value to Decimal.

    Examples:
        >>> safe_decimal(0.15)
        Decimal('0.15')
        >>> safe_decimal(None)
        Decimal('0')
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (ValueError, TypeError, InvalidOperation):
        logger.warning(f"Failed to convert {value} to Decimal, returning 0")
        return Decimal("0")


def safe_int(value: Union[int, float, str, None]) -> int:
    """Safely convert value to integer, 0 on failure."""
    if value is None:
        return 0
    try:
        return int(value)
    except (ValueError, TypeError):
        logger.warning(f"Failed to convert {value} to int, returning 0")
        return 0


def cents_from_rate(amount_cents: int, rate: Union[Decimal, float, str]) -> int:
    """
    Multiply an amount in cents by a rate, rounding half up to whole cents.

    Examples:
        >>> cents_from_rate(10000, "0.15")
        1500
        >>> cents_from_rate(3499, "0.08")
        280
    """
    result = Decimal(int(amount_cents)) * safe_decimal(rate)
    return int(result.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def decimal_to_cents(amount: Union[Decimal, float, int, str, None]) -> int:
    """Decimal('34.99') -> 3499"""
    value = safe_decimal(amount) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ═══════════════════════════════════════════════════════════════════════════
# EXPORT
# ═══════════════════════════════════════════════════════════════════════════

__all__ = [
    'utcnow',
    'new_id',
    'iso',
    'parse_datetime',
    'safe_decimal',
    'safe_int',
    'cents_from_rate',
    'decimal_to_cents',
]
