# purvita/models/site_content.py
"""
Site content models - landing page blocks per locale and global branding.
"""
from sqlalchemy import Column, String, Text, Boolean, JSON

from models.base import Base, AuditMixin


class LandingPageContent(Base, AuditMixin):
    __tablename__ = 'landing_page_content'

    locale = Column(String(5), primary_key=True)

    hero = Column(JSON, nullable=True)
    about = Column(JSON, nullable=True)
    howItWorks = Column(JSON, nullable=True)
    faqs = Column(JSON, nullable=True)


class SiteBranding(Base, AuditMixin):
    __tablename__ = 'site_branding'

    id = Column(String, primary_key=True, default='global')

    appName = Column(String, nullable=False)
    logoUrl = Column(String, nullable=True)
    faviconUrl = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    showLogo = Column(Boolean, nullable=False, default=True)
    logoPosition = Column(String, nullable=False, default='beside')  # beside, above, below
    showAppName = Column(Boolean, nullable=False, default=True)
