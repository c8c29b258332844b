# purvita/schemas/metrics.py
"""
Admin dashboard metrics payload, as served by GET /api/admin/dashboard/metrics.
"""
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


class TopProductSale(BaseModel):
    productId: str = Field(min_length=1)
    name: str = ''
    unitsSold: int = Field(ge=0)
    revenueCents: int = Field(ge=0)

    @field_validator('name', mode='before')
    @classmethod
    def _name(cls, value: Any):
        return value if isinstance(value, str) else ''


class DashboardUser(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    status: Optional[str] = None
    created_at: str
    referral_code: Optional[str] = None
    referred_by: Optional[str] = None


class DashboardProduct(BaseModel):
    id: str
    slug: str
    name: str
    price_cents: Optional[int] = None
    stock_quantity: Optional[int] = None
    created_at: str


class ProductStock(BaseModel):
    id: str
    name: str
    stockQuantity: int


class DashboardAuditLog(BaseModel):
    id: str
    entity_type: str
    entity_id: Optional[str] = None
    action: str
    actor_id: Optional[str] = None
    changes: Any = None
    created_at: str
    actor_name: Optional[str] = None
    actor_email: Optional[str] = None


class AdminDashboardMetrics(BaseModel):
    totalSubscriptionRevenueCents: int = Field(ge=0)
    totalOrderRevenueCents: int = Field(ge=0)
    totalWalletBalanceCents: int
    activeSubscriptions: int = Field(ge=0)
    waitlistedSubscriptions: int = Field(default=0, ge=0)
    totalUsers: Optional[int] = 0
    totalProducts: int = Field(default=0, ge=0)
    totalStock: int = Field(default=0, ge=0)
    comingSoonSubscribers: int = Field(default=0, ge=0)
    topProductSales: List[TopProductSale] = Field(default_factory=list)
    recentUsers: List[DashboardUser] = Field(default_factory=list)
    recentProducts: List[DashboardProduct] = Field(default_factory=list)
    productStock: List[ProductStock] = Field(default_factory=list)
    recentAuditLogs: List[DashboardAuditLog] = Field(default_factory=list)
