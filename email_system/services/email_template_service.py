# purvita/email_system/services/email_template_service.py
"""
Email templates stored in the email_templates table.

Placeholders use {{ name }} syntax and are matched case-insensitively.
Placeholders without a supplied value are left in place.
"""
import logging
import os
import re
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape
from sqlalchemy.orm import Session

from config import Config
from models.email_template import EmailTemplate

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'templates')

SUPPORTED_LOCALES = ('en', 'es')

_UPDATABLE_FIELDS = ('name', 'category', 'subjectEn', 'subjectEs', 'bodyEn', 'bodyEs', 'variables', 'isActive')

_jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(['html'])
)


def replace_variables(template: str, variables: Dict[str, Any], escape_html: bool = False) -> str:
    """
    Replace {{ key }} tokens for every supplied key.

    With escape_html, values are HTML-escaped unless already Markup.

    Examples:
        >>> replace_variables("Hi {{ Name }}", {"name": "Ana"})
        'Hi Ana'
        >>> replace_variables("Hi {{name}} {{other}}", {"name": "Ana"})
        'Hi Ana {{other}}'
        >>> replace_variables("<p>{{name}}</p>", {"name": "<b>Ana</b>"}, escape_html=True)
        '<p>&lt;b&gt;Ana&lt;/b&gt;</p>'
    """
    result = template or ''
    for key, value in (variables or {}).items():
        if value is None:
            string_value = ''
        elif escape_html:
            string_value = str(escape(value))
        else:
            string_value = str(value)
        pattern = re.compile(r'{{\s*' + re.escape(str(key)) + r'\s*}}', re.IGNORECASE)
        result = pattern.sub(lambda _match: string_value, result)
    return result


def render_email_html(body: str, locale: str = 'en', title: Optional[str] = None) -> str:
    """Wrap an HTML body in the branded email layout."""
    app_name = Config.get(Config.APP_NAME, 'PūrVita')
    template = _jinja_env.get_template('email_layout.html')
    return template.render(
        locale=locale,
        title=title or app_name,
        body=Markup(body),
        footer=f"This email was sent by {app_name}. If you have any questions, please contact our support team."
    ).strip()


class EmailTemplateService:
    """Lookup, rendering and admin editing of email templates."""

    def __init__(self, session: Session):
        self.session = session

    def _getById(self, templateId: str) -> Optional[EmailTemplate]:
        return self.session.query(EmailTemplate).filter_by(templateID=templateId).first()

    async def getProcessedTemplate(
            self,
            templateId: str,
            variables: Dict[str, Any],
            locale: str = 'en'
    ) -> Optional[Dict[str, str]]:
        """
        Render a template for a locale.

        Spanish falls back to English copy when no translation is stored.

        Returns:
            {"subject", "body", "html"} or None when the template does not exist
        """
        template = self._getById(templateId)
        if template is None:
            logger.warning(f"Email template not found: {templateId}")
            return None

        if locale == 'es':
            subject = template.subjectEs or template.subjectEn
            body = template.bodyEs or template.bodyEn
        else:
            subject = template.subjectEn
            body = template.bodyEn

        processed_subject = replace_variables(subject, variables)
        processed_body = replace_variables(body, variables, escape_html=True)

        return {
            "subject": processed_subject,
            "body": processed_body,
            "html": render_email_html(processed_body, locale, processed_subject),
        }

    async def isTemplateAvailable(self, templateId: str) -> bool:
        template = self._getById(templateId)
        return bool(template and template.isActive)

    async def getAllTemplates(self) -> List[EmailTemplate]:
        return self.session.query(EmailTemplate).order_by(
            EmailTemplate.category.asc(),
            EmailTemplate.name.asc()
        ).all()

    async def getTemplatesByCategory(self, category: str) -> List[EmailTemplate]:
        return self.session.query(EmailTemplate).filter_by(category=category).order_by(
            EmailTemplate.name.asc()
        ).all()

    async def getTemplate(self, templateId: str) -> Optional[EmailTemplate]:
        return self._getById(templateId)

    async def updateTemplate(self, templateId: str, fields: Dict[str, Any]) -> Optional[EmailTemplate]:
        """
        Apply admin edits to a template.

        Returns:
            Updated template, None when it does not exist
        """
        template = self._getById(templateId)
        if template is None:
            return None

        for field in _UPDATABLE_FIELDS:
            if field in fields and fields[field] is not None:
                setattr(template, field, fields[field])

        self.session.flush()
        logger.info(f"Email template {templateId} updated: {sorted(k for k in fields if k in _UPDATABLE_FIELDS)}")
        return template

    @staticmethod
    def serialize(template: EmailTemplate) -> Dict[str, Any]:
        return {
            "id": template.templateID,
            "name": template.name,
            "category": template.category,
            "subjectEn": template.subjectEn,
            "subjectEs": template.subjectEs,
            "bodyEn": template.bodyEn,
            "bodyEs": template.bodyEs,
            "variables": template.variables or [],
            "isActive": bool(template.isActive),
        }
