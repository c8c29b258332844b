# purvita/schemas/plan.py
"""
Subscription plan payloads.

Bilingual copy: name/description/features each exist as a legacy column
plus _en and _es variants. Resolution happens in services/plan_service.py.
"""
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from schemas.common import coerce_bool, normalize_string_array


class PlanUpdatePayload(BaseModel):
    """Partial plan update; only fields present in the request are applied."""

    model_config = ConfigDict(extra='ignore')

    slug: Optional[str] = Field(default=None, min_length=1)

    name: Optional[str] = None
    name_en: Optional[str] = None
    name_es: Optional[str] = None
    description: Optional[str] = None
    description_en: Optional[str] = None
    description_es: Optional[str] = None
    features: Optional[List[str]] = None
    features_en: Optional[List[str]] = None
    features_es: Optional[List[str]] = None

    price: Optional[Decimal] = Field(default=None, gt=0)

    is_active: Optional[bool] = None
    is_affiliate_plan: Optional[bool] = None
    is_mlm_plan: Optional[bool] = None
    display_order: Optional[int] = Field(default=None, ge=0)

    @field_validator('features', 'features_en', 'features_es', mode='before')
    @classmethod
    def _normalize_features(cls, value: Any):
        if value is None:
            return None
        return normalize_string_array(value)

    @field_validator('is_active', 'is_affiliate_plan', 'is_mlm_plan', mode='before')
    @classmethod
    def _coerce_flags(cls, value: Any):
        if value is None:
            return None
        return coerce_bool(value, False)


class PlanPayload(PlanUpdatePayload):
    """Plan creation: slug and price are required."""

    slug: str = Field(min_length=1)
    price: Decimal = Field(gt=0)

    is_active: bool = True
    is_affiliate_plan: bool = False
    is_mlm_plan: bool = True

    @field_validator('is_active', 'is_affiliate_plan', 'is_mlm_plan', mode='before')
    @classmethod
    def _coerce_flags(cls, value: Any, info: ValidationInfo):
        return coerce_bool(value, info.field_name != 'is_affiliate_plan')
