# purvita/services/plan_service.py
"""
Subscription plan management.

Plans carry bilingual copy. Writes resolve name/description/features from
the _en variant first, then the legacy column, then _es, and keep the legacy
column in sync with the resolved value.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.utils import iso
from models.plan import Plan
from schemas.plan import PlanPayload, PlanUpdatePayload
from services.audit_log_service import AuditLogService

logger = logging.getLogger(__name__)

# Payload key -> Plan column
_SIMPLE_FIELDS = {
    'slug': 'slug',
    'price': 'price',
    'is_active': 'isActive',
    'is_affiliate_plan': 'isAffiliatePlan',
    'is_mlm_plan': 'isMlmPlan',
    'display_order': 'displayOrder',
}


class PlanServiceError(Exception):
    """Database failure while reading or writing plans."""
    pass


class PlanNotFoundError(PlanServiceError):
    pass


def normalize_plan_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an API payload (only the keys that were sent) onto Plan columns.

    Examples:
        >>> normalize_plan_payload({"name_es": "Básico"})
        {'name': 'Básico', 'nameEn': 'Básico', 'nameEs': 'Básico'}
    """
    columns: Dict[str, Any] = {}

    for key, column in _SIMPLE_FIELDS.items():
        if data.get(key) is not None:
            columns[column] = data[key]

    for field, column in (('name', 'name'), ('description', 'description')):
        en_value = data.get(f'{field}_en')
        es_value = data.get(f'{field}_es')
        resolved = en_value if en_value is not None else data.get(field)
        if resolved is None:
            resolved = es_value

        if resolved is not None:
            columns[column] = resolved
            columns[f'{column}En'] = en_value if en_value is not None else resolved
            if es_value is not None:
                columns[f'{column}Es'] = es_value

    features_en = data.get('features_en')
    features_legacy = data.get('features')
    features_es = data.get('features_es')

    if features_en:
        resolved_features = features_en
    elif features_legacy:
        resolved_features = features_legacy
    else:
        resolved_features = features_es

    if resolved_features is not None:
        columns['features'] = resolved_features
        columns['featuresEn'] = features_en if features_en is not None else resolved_features
        if features_es is not None:
            columns['featuresEs'] = features_es

    return columns


class PlanService:
    """CRUD for subscription plans."""

    def __init__(self, session: Session):
        self.session = session
        self.audit = AuditLogService(session)

    def _ordered(self):
        return self.session.query(Plan).order_by(Plan.displayOrder.asc(), Plan.createdAt.desc())

    async def getPlans(self) -> List[Plan]:
        """Active plans in display order."""
        try:
            return self._ordered().filter(Plan.isActive == True).all()  # noqa: E712
        except SQLAlchemyError as e:
            raise PlanServiceError(f"Error fetching plans: {e}") from e

    async def getAllPlans(self) -> List[Plan]:
        """Every plan including inactive ones (admin)."""
        try:
            return self._ordered().all()
        except SQLAlchemyError as e:
            raise PlanServiceError(f"Error fetching plans: {e}") from e

    async def getPlanBySlug(self, slug: str) -> Optional[Plan]:
        return self.session.query(Plan).filter(Plan.slug == slug, Plan.isActive == True).first()  # noqa: E712

    async def getPlanById(self, planId: str) -> Optional[Plan]:
        return self.session.query(Plan).filter_by(planID=planId).first()

    async def createPlan(
            self,
            payload: Union[PlanPayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> Plan:
        data = payload.model_dump() if isinstance(payload, PlanPayload) else dict(payload)
        columns = normalize_plan_payload(data)

        if 'name' not in columns:
            raise PlanServiceError("Error creating plan: name is required")

        try:
            plan = Plan(**columns)
            self.session.add(plan)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PlanServiceError(f"Error creating plan: {e}") from e

        self.audit.logUserAction(
            'PLAN_CREATED',
            'plan',
            plan.planID,
            {"name": plan.name, "slug": plan.slug, "price": str(plan.price)},
            userId=adminId
        )

        logger.info(f"✓ Plan created: {plan.slug} ({plan.planID})")
        return plan

    async def updatePlan(
            self,
            planId: str,
            payload: Union[PlanUpdatePayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> Plan:
        plan = await self.getPlanById(planId)
        if plan is None:
            raise PlanNotFoundError(f"Plan {planId} not found")

        if isinstance(payload, PlanUpdatePayload):
            data = payload.model_dump(exclude_unset=True)
        else:
            data = dict(payload)

        columns = normalize_plan_payload(data)

        try:
            for column, value in columns.items():
                setattr(plan, column, value)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PlanServiceError(f"Error updating plan: {e}") from e

        self.audit.logUserAction(
            'PLAN_UPDATED',
            'plan',
            plan.planID,
            {"name": plan.name, "fields": sorted(columns.keys())},
            userId=adminId
        )

        logger.info(f"✓ Plan updated: {plan.slug}")
        return plan

    async def deletePlan(self, planId: str, adminId: Optional[str] = None) -> None:
        plan = await self.getPlanById(planId)
        if plan is None:
            raise PlanNotFoundError(f"Plan {planId} not found")

        name = plan.name
        try:
            self.session.delete(plan)
            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PlanServiceError(f"Error deleting plan: {e}") from e

        self.audit.logUserAction('PLAN_DELETED', 'plan', planId, {"name": name}, userId=adminId)
        logger.info(f"Plan deleted: {planId}")

    @staticmethod
    def serialize(plan: Plan) -> Dict[str, Any]:
        return {
            "id": plan.planID,
            "slug": plan.slug,
            "name": plan.name,
            "name_en": plan.nameEn,
            "name_es": plan.nameEs,
            "description": plan.description,
            "description_en": plan.descriptionEn,
            "description_es": plan.descriptionEs,
            "features": plan.features or [],
            "features_en": plan.featuresEn or [],
            "features_es": plan.featuresEs or [],
            "price": float(plan.price) if plan.price is not None else None,
            "is_active": bool(plan.isActive),
            "is_mlm_plan": bool(plan.isMlmPlan),
            "is_affiliate_plan": bool(plan.isAffiliatePlan),
            "display_order": plan.displayOrder,
            "created_at": iso(plan.createdAt),
            "updated_at": iso(plan.updatedAt),
        }
