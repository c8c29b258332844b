# purvita/email_system/__init__.py
"""
Email system: provider routing and stored templates.
"""
import logging

from email_system.services.email_service import EmailService
from email_system.services.email_template_service import EmailTemplateService

logger = logging.getLogger(__name__)

__all__ = ['EmailService', 'EmailTemplateService']
