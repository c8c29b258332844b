# purvita/email_system/services/email_service.py
"""
Email service for transactional emails.
Manages multiple providers with smart routing based on domain.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from config import Config
from core.db import get_db_session_ctx
from email_system.providers import SMTPProvider, MailgunProvider
from email_system.services.email_template_service import EmailTemplateService

logger = logging.getLogger(__name__)


class EmailService:
    """
    Service for sending emails via multiple providers.

    Features:
    - Smart provider selection based on domain
    - Secure domains routing (Mailgun for problematic domains)
    - Fallback between providers
    - Connection testing
    - Templates from the email_templates table

    Usage:
        email_service = EmailService()
        await email_service.initialize()
        success = await email_service.send_email(
            to='user@example.com',
            subject='Welcome',
            html_body='<p>Hello</p>'
        )
    """

    def __init__(self):
        self.providers: Dict[str, Union[SMTPProvider, MailgunProvider]] = {}
        self.secure_domains: List[str] = []
        self._initialized = False

    async def initialize(self) -> None:
        """
        Initialize providers and load configuration.
        Called during application startup.
        """
        if self._initialized:
            logger.warning("EmailService already initialized")
            return

        logger.info("Initializing EmailService...")

        from_name = Config.get(Config.EMAIL_FROM_NAME) or Config.get(Config.APP_NAME, 'PūrVita')

        smtp_host = Config.get(Config.SMTP_HOST)
        smtp_username = Config.get(Config.SMTP_USERNAME)
        smtp_password = Config.get(Config.SMTP_PASSWORD)

        if smtp_host and smtp_username and smtp_password:
            smtp_port = Config.get(Config.SMTP_PORT, 587)
            self.providers['smtp'] = SMTPProvider(
                host=smtp_host,
                port=smtp_port,
                username=smtp_username,
                password=smtp_password,
                use_tls=Config.get(Config.SMTP_USE_TLS, True),
                from_name=from_name,
                from_email=Config.get(Config.SMTP_FROM_EMAIL)
            )
            logger.info(f"✓ SMTP provider added: {smtp_host}:{smtp_port}")
        else:
            logger.warning("SMTP provider not configured (missing credentials)")

        mailgun_api_key = Config.get(Config.MAILGUN_API_KEY)
        mailgun_domain = Config.get(Config.MAILGUN_DOMAIN)

        if mailgun_api_key and mailgun_domain:
            mailgun_region = Config.get(Config.MAILGUN_REGION, 'us')
            self.providers['mailgun'] = MailgunProvider(
                api_key=mailgun_api_key,
                domain=mailgun_domain,
                region=mailgun_region,
                from_name=from_name,
                from_email=Config.get(Config.MAILGUN_FROM_EMAIL)
            )
            logger.info(f"✓ Mailgun provider added: {mailgun_domain} ({mailgun_region})")
        else:
            logger.warning("Mailgun provider not configured (missing credentials)")

        self._load_secure_domains()

        if not self.providers:
            logger.error("❌ No email providers configured!")
        else:
            logger.info(f"✓ EmailService initialized with {len(self.providers)} provider(s)")

        self._initialized = True

    def _load_secure_domains(self) -> None:
        """
        Load list of secure email domains from Config.
        These domains will use Mailgun instead of SMTP.
        """
        try:
            self.secure_domains = Config.get_secure_domains()
            if self.secure_domains:
                logger.info(f"Loaded {len(self.secure_domains)} secure domains: {self.secure_domains}")
            else:
                logger.info("No secure domains configured")
        except Exception as e:
            logger.warning(f"Could not load secure domains: {e}")
            self.secure_domains = []

    def reload_secure_domains(self) -> None:
        logger.info("Reloading secure email domains configuration...")
        self._load_secure_domains()

    @staticmethod
    def _get_email_domain(email: str) -> str:
        """'user@GMX.de' -> '@gmx.de'"""
        if '@' in email:
            return '@' + email.split('@')[1].lower()
        return ''

    def _select_provider_for_email(self, email: str) -> List[str]:
        """
        Select provider order based on recipient email domain.

        Logic:
        - Secure domains → Mailgun first, SMTP fallback
        - Regular domains → SMTP first, Mailgun fallback
        """
        domain = self._get_email_domain(email)

        if domain in self.secure_domains:
            provider_order = ['mailgun', 'smtp']
        else:
            provider_order = ['smtp', 'mailgun']

        available_order = [p for p in provider_order if p in self.providers]
        logger.debug(f"Provider order for {email}: {available_order}")

        return available_order

    async def get_providers_status(self) -> Dict[str, bool]:
        """
        Get status of all providers.

        Returns:
            Dict mapping provider name to status (True if working)
        """
        status = {}

        for provider_name, provider in self.providers.items():
            try:
                status[provider_name] = await provider.test_connection()
            except Exception as e:
                logger.error(f"Error testing {provider_name}: {e}")
                status[provider_name] = False

        return status

    async def send_email(
            self,
            to: str,
            subject: str,
            html_body: Optional[str] = None,
            text_body: Optional[str] = None
    ) -> bool:
        """
        Send an email, trying providers in routing order.

        Returns:
            True if email sent successfully
        """
        if not self.providers:
            logger.error("No email providers configured")
            return False

        if not to:
            logger.error("Recipient email not provided")
            return False

        if not html_body and not text_body:
            logger.error(f"Email to {to} has no body")
            return False

        try:
            provider_order = self._select_provider_for_email(to)

            for provider_name in provider_order:
                provider = self.providers[provider_name]

                logger.info(f"Attempting to send via {provider_name}...")

                success = await provider.send_email(
                    to=to,
                    subject=subject,
                    html_body=html_body,
                    text_body=text_body
                )

                if success:
                    logger.info(f"✅ Email sent successfully to {to} via {provider_name}")
                    return True

                logger.warning(f"Failed to send via {provider_name}, trying next provider...")

            logger.error(f"❌ Failed to send email to {to} via all providers")
            return False

        except Exception as e:
            logger.error(f"Error sending email to {to}: {e}", exc_info=True)
            return False

    async def send_template(
            self,
            to: str,
            template_id: str,
            variables: Dict[str, Any],
            locale: str = 'en'
    ) -> bool:
        """
        Send a stored template.

        Returns:
            False when the template is missing, inactive or sending failed
        """
        try:
            with get_db_session_ctx() as session:
                template_service = EmailTemplateService(session)
                if not await template_service.isTemplateAvailable(template_id):
                    logger.warning(f"Template {template_id} unavailable, email to {to} not sent")
                    return False

                processed = await template_service.getProcessedTemplate(template_id, variables, locale)

        except Exception as e:
            logger.error(f"Error loading template {template_id}: {e}", exc_info=True)
            return False

        if processed is None:
            return False

        return await self.send_email(
            to=to,
            subject=processed["subject"],
            html_body=processed["html"]
        )

    def get_config_info(self) -> Dict[str, Any]:
        """Email configuration summary for the admin API."""
        return {
            'smtp': {
                'configured': 'smtp' in self.providers,
                'host': Config.get(Config.SMTP_HOST) or 'Not configured',
                'port': Config.get(Config.SMTP_PORT, 587),
            },
            'mailgun': {
                'configured': 'mailgun' in self.providers,
                'domain': Config.get(Config.MAILGUN_DOMAIN) or 'Not configured',
                'region': Config.get(Config.MAILGUN_REGION, 'us'),
            },
            'secure_domains': self.secure_domains,
            'providers_count': len(self.providers)
        }
