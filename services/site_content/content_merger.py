# purvita/services/site_content/content_merger.py
"""
Merge stored landing page sections over the localized defaults.

A stored section only overrides the fields it actually carries; empty
optional strings fall back to the default value.
"""
from typing import Any, Dict, List, Optional

from core.utils import iso
from services.site_content.schemas import (
    LandingContent,
    LandingContentPayload,
    LandingFaq,
    LandingStep,
)

DEFAULT_HERO_IMAGE = (
    'https://images.unsplash.com/photo-1464639351491-a172c2aa2911?auto=format&fit=crop&w=1400&q=80'
)
DEFAULT_ABOUT_IMAGE = (
    'https://images.unsplash.com/photo-1522202176988-66273c2fd55f?auto=format&fit=crop&w=1200&q=80'
)

_DEFAULT_COPY = {
    'en': {
        'heroTitle': "Empowering Health, Enriching Lives",
        'heroSubtitle': (
            "Join {app} and start a journey toward better health and financial freedom. "
            "Our health plans and supportive community help you reach your wellness goals "
            "and build a thriving business."
        ),
        'aboutTitle': "About {app}",
        'aboutText1': (
            "At {app}, we believe true wealth is health. We are a community dedicated to "
            "holistic wellness through premium health products and a unique business opportunity."
        ),
        'aboutText2': (
            "Founded on integrity, quality and community, {app} offers a path to a healthier, "
            "more prosperous life."
        ),
        'howItWorksTitle': "How It Works",
        'howItWorksSubtitle': (
            "Our multilevel model is designed for your success. Here is how you can get "
            "started and grow with {app}."
        ),
        'steps': [
            ("Join Our Community",
             "Sign up as a {app} distributor and get access to our products, training and support network."),
            ("Share the Products",
             "Introduce {app} products to others and earn commissions on your sales."),
            ("Build Your Team",
             "Invite others to your team. As you mentor them you earn additional income from their sales."),
        ],
    },
    'es': {
        'heroTitle': "Potenciando la Salud, Enriqueciendo Vidas",
        'heroSubtitle': (
            "Únete a {app} y emprende un viaje hacia una mejor salud y libertad financiera. "
            "Nuestros planes de salud y comunidad de apoyo te ayudan a lograr tus objetivos "
            "de bienestar y construir un negocio próspero."
        ),
        'aboutTitle': "Acerca de {app}",
        'aboutText1': (
            "En {app}, creemos que la verdadera riqueza es la salud. Somos una comunidad dedicada "
            "al bienestar holístico a través de productos premium y una oportunidad de negocio única."
        ),
        'aboutText2': (
            "Fundada en los principios de integridad, calidad y comunidad, {app} ofrece un camino "
            "hacia una vida más saludable y próspera."
        ),
        'howItWorksTitle': "Cómo Funciona",
        'howItWorksSubtitle': (
            "Nuestro modelo multinivel está diseñado para tu éxito. Así puedes comenzar y "
            "prosperar con {app}."
        ),
        'steps': [
            ("Únete a Nuestra Comunidad",
             "Regístrate como distribuidor de {app} y accede a productos, capacitación y una red de apoyo."),
            ("Comparte los Productos",
             "Presenta los productos de {app} a otros y gana comisiones por tus ventas."),
            ("Construye tu Equipo",
             "Invita a otros a tu equipo. Mientras los apoyas, ganas ingresos adicionales de sus ventas."),
        ],
    },
}


def normalize_optional(value: Optional[str]) -> Optional[str]:
    """Trim a string; blank becomes None."""
    if not value:
        return None
    value = value.strip()
    return value or None


def _copy(locale: str) -> Dict[str, Any]:
    return _DEFAULT_COPY.get(locale, _DEFAULT_COPY['en'])


def createDefaultLandingContent(locale: str, appName: str) -> LandingContent:
    copy = _copy(locale)

    steps = [
        LandingStep(
            id=f'step-{index + 1}',
            title=title.format(app=appName),
            description=description.format(app=appName),
            order=index,
        )
        for index, (title, description) in enumerate(copy['steps'])
    ]

    return LandingContent(
        locale=locale if locale in _DEFAULT_COPY else 'en',
        hero={
            'title': copy['heroTitle'].format(app=appName),
            'subtitle': copy['heroSubtitle'].format(app=appName),
            'backgroundImageUrl': DEFAULT_HERO_IMAGE,
        },
        about={
            'title': copy['aboutTitle'].format(app=appName),
            'description': copy['aboutText1'].format(app=appName),
            'secondaryDescription': copy['aboutText2'].format(app=appName),
            'imageUrl': DEFAULT_ABOUT_IMAGE,
        },
        howItWorks={
            'title': copy['howItWorksTitle'],
            'subtitle': copy['howItWorksSubtitle'].format(app=appName),
            'steps': steps,
        },
        faqs=[],
    )


def _merge_hero(payload: LandingContentPayload, defaults: LandingContent) -> Dict[str, Any]:
    base = defaults.hero
    if payload.hero is None:
        return base.model_dump()

    hero = payload.hero
    return {
        'title': hero.title or base.title,
        'subtitle': hero.subtitle or base.subtitle,
        'backgroundImageUrl': normalize_optional(hero.backgroundImageUrl) or base.backgroundImageUrl,
        'backgroundColor': normalize_optional(hero.backgroundColor) or base.backgroundColor,
        'style': hero.style or base.style,
    }


def _merge_about(payload: LandingContentPayload, defaults: LandingContent) -> Dict[str, Any]:
    base = defaults.about
    if payload.about is None:
        return base.model_dump()

    about = payload.about
    return {
        'title': about.title or base.title,
        'description': about.description or base.description,
        'secondaryDescription': normalize_optional(about.secondaryDescription) or base.secondaryDescription,
        'imageUrl': normalize_optional(about.imageUrl) or base.imageUrl,
    }


def _merge_how_it_works(payload: LandingContentPayload, defaults: LandingContent) -> Dict[str, Any]:
    base = defaults.howItWorks
    section = payload.howItWorks

    if section is not None and section.steps:
        steps: List[LandingStep] = []
        for index, step in enumerate(section.steps):
            default_step = base.steps[index] if index < len(base.steps) else None
            steps.append(LandingStep(
                id=step.id or f'step-{index + 1}',
                title=step.title or (default_step.title if default_step else f'Step {index + 1}'),
                description=step.description or (
                    default_step.description if default_step else 'Add a description for this step.'
                ),
                imageUrl=normalize_optional(step.imageUrl),
                order=step.order if step.order is not None else index,
            ))
        steps.sort(key=lambda item: item.order)
    else:
        steps = list(base.steps)

    return {
        'title': (section.title if section else None) or base.title,
        'subtitle': (section.subtitle if section else None) or base.subtitle,
        'steps': [step.model_dump() for step in steps],
    }


def _merge_faqs(payload: LandingContentPayload, defaults: LandingContent) -> List[Dict[str, Any]]:
    if not payload.faqs:
        return [faq.model_dump() for faq in defaults.faqs]

    faqs = [
        LandingFaq(
            id=faq.id or f'faq-{index + 1}',
            question=faq.question or 'New question',
            answer=faq.answer or 'Add the answer for this question.',
            imageUrl=normalize_optional(faq.imageUrl),
            order=faq.order if faq.order is not None else index,
        )
        for index, faq in enumerate(payload.faqs)
    ]
    faqs.sort(key=lambda item: item.order)
    return [faq.model_dump() for faq in faqs]


def mergeLandingContent(locale: str, appName: str, record: Optional[Any]) -> LandingContent:
    """
    Build the landing content for a locale from a stored LandingPageContent row.

    Args:
        locale: 'en' or 'es'
        appName: Brand name substituted into the default copy
        record: LandingPageContent row or None
    """
    defaults = createDefaultLandingContent(locale, appName)
    if record is None:
        return defaults

    payload = LandingContentPayload.model_validate({
        'hero': record.hero,
        'about': record.about,
        'howItWorks': record.howItWorks,
        'faqs': record.faqs,
    })

    return LandingContent(
        locale=defaults.locale,
        hero=_merge_hero(payload, defaults),
        about=_merge_about(payload, defaults),
        howItWorks=_merge_how_it_works(payload, defaults),
        faqs=_merge_faqs(payload, defaults),
        updatedAt=iso(record.updatedAt),
    )
