# purvita/schemas/product.py
"""
Product payloads for the admin catalog API.

price is in currency units (19.99); the service stores cents.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.common import coerce_bool, normalize_string_array

DISCOUNT_TYPES = ('amount', 'percentage')


class ProductImage(BaseModel):
    id: str
    url: str = Field(pattern=r'^https?://')
    hint: str = ''
    isFeatured: bool = False

    @field_validator('hint', mode='before')
    @classmethod
    def _hint_text(cls, value: Any):
        return value if isinstance(value, str) else ''

    @field_validator('isFeatured', mode='before')
    @classmethod
    def _featured_flag(cls, value: Any):
        return coerce_bool(value, False)


class ProductUpdatePayload(BaseModel):
    """Partial product update."""

    model_config = ConfigDict(extra='ignore')

    slug: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, gt=0)

    discount_type: Optional[str] = None
    discount_value: Optional[Decimal] = Field(default=None, ge=0)
    discount_label: Optional[str] = None

    stock_quantity: Optional[int] = Field(default=None, ge=0)
    images: Optional[List[ProductImage]] = None
    is_featured: Optional[bool] = None
    cart_visibility_countries: Optional[List[str]] = None
    related_product_ids: Optional[List[str]] = None

    @field_validator('discount_type', mode='before')
    @classmethod
    def _discount_type(cls, value: Any):
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        return normalized if normalized in DISCOUNT_TYPES else None

    @field_validator('discount_value', mode='before')
    @classmethod
    def _discount_value(cls, value: Any):
        if value is None or value == '':
            return None
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            return None
        if not parsed.is_finite():
            return None
        return max(Decimal('0'), parsed)

    @field_validator('discount_label', mode='before')
    @classmethod
    def _discount_label(cls, value: Any):
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator('stock_quantity', mode='before')
    @classmethod
    def _stock(cls, value: Any):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        if isinstance(value, str):
            try:
                return int(Decimal(value.strip()))
            except InvalidOperation:
                return 0
        return value

    @field_validator('images', mode='before')
    @classmethod
    def _images(cls, value: Any):
        if value is None:
            return None
        return value if isinstance(value, list) else []

    @field_validator('is_featured', mode='before')
    @classmethod
    def _featured(cls, value: Any):
        if value is None:
            return None
        return coerce_bool(value, False)

    @field_validator('cart_visibility_countries', mode='before')
    @classmethod
    def _countries(cls, value: Any):
        if value is None:
            return None
        codes = [code.upper() for code in normalize_string_array(value)]
        return list(dict.fromkeys(codes))

    @field_validator('related_product_ids', mode='before')
    @classmethod
    def _related(cls, value: Any):
        if value is None:
            return None
        return list(dict.fromkeys(normalize_string_array(value)))


class ProductPayload(ProductUpdatePayload):
    """Product creation."""

    slug: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ''
    price: Decimal = Field(gt=0)

    stock_quantity: int = Field(default=0, ge=0)
    images: List[ProductImage] = Field(default_factory=list)
    is_featured: bool = False
    cart_visibility_countries: List[str] = Field(default_factory=list)
    related_product_ids: List[str] = Field(default_factory=list)

    @field_validator('images', mode='before')
    @classmethod
    def _images(cls, value: Any):
        return value if isinstance(value, list) else []

    @field_validator('is_featured', mode='before')
    @classmethod
    def _featured(cls, value: Any):
        return coerce_bool(value, False)

    @field_validator('cart_visibility_countries', mode='before')
    @classmethod
    def _countries(cls, value: Any):
        codes = [code.upper() for code in normalize_string_array(value)]
        return list(dict.fromkeys(codes))

    @field_validator('related_product_ids', mode='before')
    @classmethod
    def _related(cls, value: Any):
        return list(dict.fromkeys(normalize_string_array(value)))
