# purvita/services/phase_level_service.py
"""Admin editing of compensation plan phase levels."""
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from core.utils import iso
from models.phase import PhaseLevel
from multilevel.config.phases import DEFAULT_PHASE_LEVELS, reset_phase_levels_cache
from schemas.admin import PhaseLevelUpdatePayload
from services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)


class PhaseLevelNotFoundError(Exception):
    pass


class PhaseLevelService:

    def __init__(self, session: Session):
        self.session = session
        self.audit = AuditLogService(session)

    async def listPhaseLevels(self) -> List[PhaseLevel]:
        return self.session.query(PhaseLevel).order_by(PhaseLevel.level.asc()).all()

    async def updatePhaseLevel(
            self,
            level: int,
            payload: Union[PhaseLevelUpdatePayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> PhaseLevel:
        """
        Update a phase level row. Levels known to the default plan are
        created on first edit.

        Raises:
            PhaseLevelNotFoundError: Level is neither stored nor a default level
        """
        if not isinstance(payload, PhaseLevelUpdatePayload):
            payload = PhaseLevelUpdatePayload.model_validate(payload)

        row = self.session.query(PhaseLevel).filter_by(level=level).first()
        if row is None:
            defaults = DEFAULT_PHASE_LEVELS.get(level)
            if defaults is None:
                raise PhaseLevelNotFoundError(f"Phase level {level} not found")
            row = PhaseLevel(level=level, **defaults)
            self.session.add(row)

        changes = payload.model_dump(exclude_unset=True)
        for key, value in changes.items():
            setattr(row, key, value)
        self.session.flush()

        reset_phase_levels_cache()

        self.audit.logUserAction(
            'SETTINGS_CHANGED',
            'phase_level',
            str(level),
            {key: str(value) for key, value in changes.items()},
            userId=adminId
        )
        logger.info(f"✓ Phase level {level} updated: {sorted(changes.keys())}")
        return row

    @staticmethod
    def serialize(row: PhaseLevel) -> Dict[str, Any]:
        return {
            "id": row.phaseLevelID,
            "level": row.level,
            "name": row.name,
            "commission_rate": float(row.commissionRate or 0),
            "subscription_discount_rate": float(row.subscriptionDiscountRate or 0),
            "credit_cents": row.creditCents or 0,
            "is_active": bool(row.isActive),
            "updated_at": iso(row.updatedAt),
        }
