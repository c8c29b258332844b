# purvita/schemas/__init__.py
"""
Request and payload schemas (pydantic) validated at the API boundary.
"""
from schemas.plan import PlanPayload, PlanUpdatePayload
from schemas.product import ProductPayload, ProductUpdatePayload, ProductImage
from schemas.admin_note import AdminNotePayload, AdminNoteUpdatePayload, NoteAttachment
from schemas.audit_log import AuditLogQuery
from schemas.metrics import AdminDashboardMetrics
from schemas.admin import (
    WalletAdjustPayload,
    SubscriptionCancelPayload,
    RenewalRunPayload,
    PhaseLevelUpdatePayload,
    EmailTemplateUpdatePayload,
    EmailTemplatePreviewPayload,
)

__all__ = [
    'PlanPayload',
    'PlanUpdatePayload',
    'ProductPayload',
    'ProductUpdatePayload',
    'ProductImage',
    'AdminNotePayload',
    'AdminNoteUpdatePayload',
    'NoteAttachment',
    'AuditLogQuery',
    'AdminDashboardMetrics',
    'WalletAdjustPayload',
    'SubscriptionCancelPayload',
    'RenewalRunPayload',
    'PhaseLevelUpdatePayload',
    'EmailTemplateUpdatePayload',
    'EmailTemplatePreviewPayload',
]
