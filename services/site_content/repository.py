# purvita/services/site_content/repository.py
"""Storage for the branding row and per-locale landing sections."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from models.site_content import LandingPageContent, SiteBranding

logger = logging.getLogger(__name__)

BRANDING_ID = 'global'


class SiteContentRepository:

    def __init__(self, session: Session):
        self.session = session

    def getBranding(self) -> Optional[SiteBranding]:
        return self.session.query(SiteBranding).filter_by(id=BRANDING_ID).first()

    def upsertBranding(self, values: Dict[str, Any]) -> SiteBranding:
        branding = self.getBranding()
        if branding is None:
            branding = SiteBranding(id=BRANDING_ID, **values)
            self.session.add(branding)
        else:
            for key, value in values.items():
                setattr(branding, key, value)

        self.session.flush()
        return branding

    def getLandingContent(self, locale: str) -> Optional[LandingPageContent]:
        return self.session.query(LandingPageContent).filter_by(locale=locale).first()

    def upsertLandingContent(self, locale: str, sections: Dict[str, Any]) -> LandingPageContent:
        """
        Store landing sections for a locale.

        Args:
            sections: Subset of hero / about / howItWorks / faqs to replace
        """
        record = self.getLandingContent(locale)
        if record is None:
            record = LandingPageContent(locale=locale)
            self.session.add(record)

        for key in ('hero', 'about', 'howItWorks', 'faqs'):
            if key in sections:
                setattr(record, key, sections[key])

        self.session.flush()
        logger.debug(f"Landing content stored for {locale}: {sorted(sections.keys())}")
        return record
