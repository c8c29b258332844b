# purvita/schemas/admin.py
"""
Smaller admin API payloads: wallets, subscriptions, phase levels, email templates.
"""
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.common import empty_to_none


class WalletAdjustPayload(BaseModel):
    """
    targetBalanceCents is the balance the admin wants to see afterwards,
    either the wallet balance or the available network earnings total.
    """

    target: Literal['wallet', 'network_earnings'] = 'wallet'
    targetBalanceCents: int = Field(ge=0)
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator('note', mode='before')
    @classmethod
    def _note(cls, value: Any):
        return empty_to_none(value)


class SubscriptionCancelPayload(BaseModel):
    reason: str = Field(default='admin_requested', min_length=1, max_length=120)
    locale: Optional[str] = Field(default=None, max_length=10)


class RenewalRunPayload(BaseModel):
    daysBeforeExpiry: Optional[int] = Field(default=None, ge=0, le=30)


class PhaseLevelUpdatePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    commissionRate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    subscriptionDiscountRate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    creditCents: Optional[int] = Field(default=None, ge=0)
    isActive: Optional[bool] = None


class EmailTemplateUpdatePayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = Field(default=None, min_length=1)
    subjectEn: Optional[str] = Field(default=None, min_length=1)
    subjectEs: Optional[str] = None
    bodyEn: Optional[str] = Field(default=None, min_length=1)
    bodyEs: Optional[str] = None
    variables: Optional[List[str]] = None
    isActive: Optional[bool] = None


class EmailTemplatePreviewPayload(BaseModel):
    locale: Literal['en', 'es'] = 'en'
    variables: Dict[str, Any] = Field(default_factory=dict)
