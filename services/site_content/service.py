# purvita/services/site_content/service.py
"""
Site content service: global branding and localized landing page copy.
"""
import logging
from typing import Any, Dict, Optional, Union

from sqlalchemy.orm import Session

from config import Config
from core.utils import iso
from services.audit_log_service import AuditLogService
from services.site_content.content_merger import mergeLandingContent, normalize_optional
from services.site_content.repository import SiteContentRepository
from services.site_content.schemas import (
    SUPPORTED_LOCALES,
    LandingContent,
    LandingContentPayload,
    SiteBrandingModel,
    SiteBrandingPayload,
)

logger = logging.getLogger(__name__)


class UnsupportedLocaleError(ValueError):
    pass


def _check_locale(locale: str) -> str:
    locale = (locale or '').lower()
    if locale not in SUPPORTED_LOCALES:
        raise UnsupportedLocaleError(f"Unsupported locale: {locale}")
    return locale


def default_branding() -> SiteBrandingModel:
    return SiteBrandingModel(appName=Config.get(Config.APP_NAME) or 'PūrVita')


class SiteContentService:

    def __init__(self, session: Session, repository: Optional[SiteContentRepository] = None):
        self.session = session
        self.repository = repository or SiteContentRepository(session)
        self.audit = AuditLogService(session)

    async def getBranding(self) -> SiteBrandingModel:
        """Stored branding, or defaults built from APP_NAME."""
        record = self.repository.getBranding()
        if record is None:
            return default_branding()

        return SiteBrandingModel(
            appName=record.appName,
            logoUrl=record.logoUrl,
            faviconUrl=record.faviconUrl,
            description=record.description,
            showLogo=record.showLogo if record.showLogo is not None else True,
            logoPosition=record.logoPosition or 'beside',
            showAppName=record.showAppName if record.showAppName is not None else True,
            updatedAt=iso(record.updatedAt),
        )

    async def updateBranding(
            self,
            payload: Union[SiteBrandingPayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> SiteBrandingModel:
        if not isinstance(payload, SiteBrandingPayload):
            payload = SiteBrandingPayload.model_validate(payload)

        self.repository.upsertBranding({
            'appName': payload.appName,
            'logoUrl': normalize_optional(payload.logoUrl),
            'faviconUrl': normalize_optional(payload.faviconUrl),
            'description': normalize_optional(payload.description),
            'showLogo': payload.showLogo,
            'logoPosition': payload.logoPosition,
            'showAppName': payload.showAppName,
        })

        self.audit.logUserAction(
            'SETTINGS_CHANGED', 'site_branding', 'global', {"appName": payload.appName}, userId=adminId
        )
        logger.info(f"✓ Branding updated: {payload.appName}")

        return await self.getBranding()

    async def getLandingContent(self, locale: str) -> LandingContent:
        locale = _check_locale(locale)
        branding = await self.getBranding()
        record = self.repository.getLandingContent(locale)
        return mergeLandingContent(locale, branding.appName, record)

    async def updateLandingContent(
            self,
            locale: str,
            payload: Union[LandingContentPayload, Dict[str, Any]],
            adminId: Optional[str] = None
    ) -> LandingContent:
        """
        Replace the sections present in payload, then return the merged content.

        Raises:
            UnsupportedLocaleError: locale other than en/es
        """
        locale = _check_locale(locale)
        if not isinstance(payload, LandingContentPayload):
            payload = LandingContentPayload.model_validate(payload)

        sections = payload.model_dump(exclude_unset=True)
        self.repository.upsertLandingContent(locale, sections)

        self.audit.logUserAction(
            'SETTINGS_CHANGED',
            'landing_content',
            locale,
            {"sections": sorted(sections.keys())},
            userId=adminId
        )

        return await self.getLandingContent(locale)
