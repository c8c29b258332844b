# purvita/schemas/audit_log.py
"""
Audit log query parameters (GET /api/admin/audit-logs).
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from core.utils import parse_datetime
from schemas.common import empty_to_none


class AuditLogQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
    action: Optional[str] = None
    entity_type: Optional[str] = None
    user_id: Optional[str] = None
    search: Optional[str] = Field(default=None, max_length=100, pattern=r'^[a-zA-Z0-9_\-\s@.]*$')
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator('action', 'entity_type', 'user_id', 'search', mode='before')
    @classmethod
    def _blank_is_missing(cls, value: Any):
        return empty_to_none(value)

    @field_validator('page', 'limit', mode='before')
    @classmethod
    def _default_numbers(cls, value: Any, info):
        if empty_to_none(value) is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator('start_date', 'end_date', mode='before')
    @classmethod
    def _naive_utc(cls, value: Any):
        """Dates are compared against naive UTC columns."""
        if empty_to_none(value) is None:
            return None
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValueError('Invalid date')
        return parsed
