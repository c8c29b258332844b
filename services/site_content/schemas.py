# purvita/services/site_content/schemas.py
"""
Landing page and branding schemas.

Full models (LandingContent, SiteBrandingModel) describe what the storefront
renders; the *Payload models describe partial admin edits.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUPPORTED_LOCALES = ('en', 'es')


class LandingHero(BaseModel):
    title: str = Field(min_length=1, max_length=180)
    subtitle: str = Field(min_length=1, max_length=500)
    backgroundImageUrl: Optional[str] = Field(default=None, max_length=500)
    backgroundColor: Optional[str] = Field(default=None, max_length=50)
    style: Literal['default', 'modern', 'minimal'] = 'default'


class LandingAbout(BaseModel):
    title: str = Field(min_length=1, max_length=180)
    description: str = Field(min_length=1, max_length=1200)
    secondaryDescription: Optional[str] = Field(default=None, max_length=1200)
    imageUrl: Optional[str] = Field(default=None, max_length=500)


class LandingStep(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=180)
    description: str = Field(min_length=1, max_length=600)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    order: int = Field(default=0, ge=0, le=100)


class LandingHowItWorks(BaseModel):
    title: str = Field(min_length=1, max_length=180)
    subtitle: str = Field(min_length=1, max_length=600)
    steps: List[LandingStep] = Field(min_length=1, max_length=6)


class LandingFaq(BaseModel):
    id: str = Field(min_length=1)
    question: str = Field(min_length=1, max_length=240)
    answer: str = Field(min_length=1, max_length=1200)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    order: int = Field(default=0, ge=0, le=100)


class LandingContent(BaseModel):
    locale: Literal['en', 'es']
    hero: LandingHero
    about: LandingAbout
    howItWorks: LandingHowItWorks
    faqs: List[LandingFaq] = Field(default_factory=list)
    updatedAt: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════
# PARTIAL PAYLOADS
# ═══════════════════════════════════════════════════════════════════════════

class _Partial(BaseModel):
    model_config = ConfigDict(extra='ignore')


class LandingHeroPayload(_Partial):
    title: Optional[str] = Field(default=None, max_length=180)
    subtitle: Optional[str] = Field(default=None, max_length=500)
    backgroundImageUrl: Optional[str] = Field(default=None, max_length=500)
    backgroundColor: Optional[str] = Field(default=None, max_length=50)
    style: Optional[Literal['default', 'modern', 'minimal']] = None


class LandingAboutPayload(_Partial):
    title: Optional[str] = Field(default=None, max_length=180)
    description: Optional[str] = Field(default=None, max_length=1200)
    secondaryDescription: Optional[str] = Field(default=None, max_length=1200)
    imageUrl: Optional[str] = Field(default=None, max_length=500)


class LandingStepPayload(_Partial):
    id: Optional[str] = None
    title: Optional[str] = Field(default=None, max_length=180)
    description: Optional[str] = Field(default=None, max_length=600)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    order: Optional[int] = Field(default=None, ge=0, le=100)


class LandingHowItWorksPayload(_Partial):
    title: Optional[str] = None
    subtitle: Optional[str] = None
    steps: Optional[List[LandingStepPayload]] = Field(default=None, max_length=6)


class LandingFaqPayload(_Partial):
    id: Optional[str] = None
    question: Optional[str] = Field(default=None, max_length=240)
    answer: Optional[str] = Field(default=None, max_length=1200)
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    order: Optional[int] = Field(default=None, ge=0, le=100)


class LandingContentPayload(_Partial):
    hero: Optional[LandingHeroPayload] = None
    about: Optional[LandingAboutPayload] = None
    howItWorks: Optional[LandingHowItWorksPayload] = None
    faqs: Optional[List[LandingFaqPayload]] = None


# ═══════════════════════════════════════════════════════════════════════════
# BRANDING
# ═══════════════════════════════════════════════════════════════════════════

class SiteBrandingModel(BaseModel):
    appName: str = Field(min_length=1, max_length=120)
    logoUrl: Optional[str] = Field(default=None, max_length=500)
    faviconUrl: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=500)
    showLogo: bool = True
    logoPosition: Literal['beside', 'above', 'below'] = 'beside'
    showAppName: bool = True
    updatedAt: Optional[str] = None


class SiteBrandingPayload(_Partial):
    appName: str = Field(min_length=1, max_length=120)
    logoUrl: Optional[str] = Field(default=None, max_length=500)
    faviconUrl: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=500)
    showLogo: bool = True
    logoPosition: Literal['beside', 'above', 'below'] = 'beside'
    showAppName: bool = True

    @field_validator('appName')
    @classmethod
    def _trim_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('App name is required')
        return value
