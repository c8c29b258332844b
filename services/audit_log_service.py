# purvita/services/audit_log_service.py
"""
Audit trail for critical admin and system actions.

Writing an audit entry never fails the calling operation: errors are logged
and the entry falls back to a log line.
"""
import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, cast, String
from sqlalchemy.orm import Session

from core.utils import iso
from models.audit_log import AuditLog
from models.profile import Profile

logger = logging.getLogger(__name__)


class SECURITY_EVENTS:
    """Security event constants for audit logging."""

    # Payments
    PAYMENT_CREATED = 'PAYMENT_CREATED'
    PAYMENT_COMPLETED = 'PAYMENT_COMPLETED'
    PAYMENT_FAILED = 'PAYMENT_FAILED'
    PAYMENT_REFUNDED = 'PAYMENT_REFUNDED'
    WEBHOOK_RECEIVED = 'WEBHOOK_RECEIVED'
    WEBHOOK_SIGNATURE_FAILED = 'WEBHOOK_SIGNATURE_FAILED'

    # Wallet
    WALLET_RECHARGE = 'WALLET_RECHARGE'
    WALLET_SPEND = 'WALLET_SPEND'
    WALLET_WITHDRAWAL_REQUESTED = 'WALLET_WITHDRAWAL_REQUESTED'

    # Admin
    ADMIN_ACCESS = 'ADMIN_ACCESS'
    USER_ROLE_CHANGED = 'USER_ROLE_CHANGED'
    USER_SUSPENDED = 'USER_SUSPENDED'
    SETTINGS_CHANGED = 'SETTINGS_CHANGED'

    # Security
    RATE_LIMIT_EXCEEDED = 'RATE_LIMIT_EXCEEDED'
    UNAUTHORIZED_ACCESS_ATTEMPT = 'UNAUTHORIZED_ACCESS_ATTEMPT'
    CSRF_VALIDATION_FAILED = 'CSRF_VALIDATION_FAILED'


class AuditLogService:
    """Audit log writes and admin queries."""

    def __init__(self, session: Session):
        self.session = session

    def logUserAction(
            self,
            action: str,
            entityType: str,
            entityId: Optional[str] = None,
            metadata: Optional[Dict[str, Any]] = None,
            ipAddress: Optional[str] = None,
            userAgent: Optional[str] = None,
            userId: Optional[str] = None
    ) -> Optional[AuditLog]:
        """
        Record an action in the caller's transaction.

        Returns:
            The stored entry, or None when it could only be logged
        """
        entry = None
        try:
            entry = AuditLog(
                action=action,
                entityType=entityType,
                entityID=str(entityId) if entityId is not None else None,
                userID=userId,
                ipAddress=ipAddress,
                userAgent=userAgent,
                meta=metadata or {}
            )
            self.session.add(entry)
            self.session.flush()

            logger.info(f"[AUDIT] {action} | {entityType} | {entityId} | user={userId}")
            return entry

        except Exception as e:
            logger.error(f"Failed to write audit log: {e}")
            if entry is not None and entry in self.session:
                self.session.expunge(entry)
            logger.warning(
                f"[AUDIT FALLBACK] {action} | {entityType} | {entityId} | "
                f"user={userId} | metadata={metadata}"
            )
            return None

    def getRecentAuditLogs(self, entityType: Optional[str] = None, limit: int = 10) -> List[AuditLog]:
        query = self.session.query(AuditLog)
        if entityType:
            query = query.filter(AuditLog.entityType == entityType)
        return query.order_by(AuditLog.createdAt.desc()).limit(limit).all()

    def queryAuditLogs(
            self,
            page: int = 1,
            limit: int = 50,
            action: Optional[str] = None,
            entityType: Optional[str] = None,
            userId: Optional[str] = None,
            search: Optional[str] = None,
            startDate=None,
            endDate=None
    ) -> Dict[str, Any]:
        """
        Paginated audit logs, newest first, with actor profiles merged in.

        endDate is inclusive: a bare date covers the whole day.

        Returns:
            {"logs": [...], "pagination": {"page", "limit", "total", "totalPages"}}
        """
        query = self.session.query(AuditLog)

        if action:
            query = query.filter(AuditLog.action == action)
        if entityType:
            query = query.filter(AuditLog.entityType == entityType)
        if userId:
            query = query.filter(AuditLog.userID == userId)
        if startDate:
            query = query.filter(AuditLog.createdAt >= startDate)
        if endDate:
            if endDate.hour == 0 and endDate.minute == 0 and endDate.second == 0:
                endDate = endDate + timedelta(days=1)
                query = query.filter(AuditLog.createdAt < endDate)
            else:
                query = query.filter(AuditLog.createdAt <= endDate)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                AuditLog.action.ilike(pattern),
                AuditLog.entityType.ilike(pattern),
                AuditLog.entityID.ilike(pattern),
                cast(AuditLog.meta, String).ilike(pattern)
            ))

        total = query.count()
        logs = (
            query.order_by(AuditLog.createdAt.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

        user_ids = {log.userID for log in logs if log.userID}
        profiles = {}
        if user_ids:
            for profile in self.session.query(Profile).filter(Profile.userID.in_(user_ids)).all():
                profiles[profile.userID] = {
                    "id": profile.userID,
                    "name": profile.name,
                    "email": profile.email,
                }

        return {
            "logs": [self.serialize(log, profiles.get(log.userID)) for log in logs],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": (total + limit - 1) // limit if total else 0,
            },
        }

    @staticmethod
    def serialize(log: AuditLog, profile: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {
            "id": log.logID,
            "action": log.action,
            "entity_type": log.entityType,
            "entity_id": log.entityID,
            "user_id": log.userID,
            "ip_address": log.ipAddress,
            "user_agent": log.userAgent,
            "metadata": log.meta or {},
            "created_at": iso(log.createdAt),
            "profiles": profile,
        }
