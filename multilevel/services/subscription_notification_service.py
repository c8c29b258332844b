# purvita/multilevel/services/subscription_notification_service.py
"""
Subscription emails: cancellation, payment method update, renewal result.

Stored templates (email_templates) are used when active; otherwise the
built-in copy below is sent as plain text. Sending never raises.
"""
import logging
from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from config import Config
from core.di import get_service
from core.utils import parse_datetime
from email_system.services.email_service import EmailService
from email_system.services.email_template_service import EmailTemplateService, replace_variables
from models.profile import Profile
from models.subscription import NotificationPreference

logger = logging.getLogger(__name__)

SUPPORTED_LOCALES = ('en', 'es')

GATEWAY_NAMES = {
    'stripe': 'Credit Card',
    'paypal': 'PayPal',
    'wallet': 'Wallet',
}

MONTHS = {
    'en': ['January', 'February', 'March', 'April', 'May', 'June', 'July',
           'August', 'September', 'October', 'November', 'December'],
    'es': ['enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio', 'julio',
           'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre'],
}

CURRENCY_SYMBOLS = {'USD': '$', 'EUR': '€', 'GBP': '£', 'MXN': 'MX$'}

# Template ids looked up in email_templates
TEMPLATE_CANCELLATION = 'subscription_cancellation'
TEMPLATE_PAYMENT_METHOD_UPDATED = 'subscription_payment_method_updated'
TEMPLATE_RENEWAL_SUCCESS = 'subscription_renewal_success'
TEMPLATE_RENEWAL_FAILURE = 'subscription_renewal_failure'

CANCELLATION_COPY = {
    'en': {
        'user_requested': {
            'subject': "Your {{appName}} subscription has been cancelled",
            'lines': [
                "Hi {{name}}",
                "",
                "We processed your cancellation request and stopped future charges.",
                "Sign back in whenever you want to reactivate your membership.",
                "",
                "Thank you for being part of {{appName}}.",
            ],
        },
        'payment_failure': {
            'subject': "Your {{appName}} subscription was cancelled after a failed payment",
            'lines': [
                "Hi {{name}}",
                "",
                "We could not collect your subscription payment, so your membership was cancelled.",
                "Update your payment method and subscribe again to restore access.",
                "",
                "Thank you for being part of {{appName}}.",
            ],
        },
    },
    'es': {
        'user_requested': {
            'subject': "Tu suscripción a {{appName}} ha sido cancelada",
            'lines': [
                "Hola {{name}}",
                "",
                "Procesamos tu solicitud de cancelación y detuvimos los cargos futuros.",
                "Inicia sesión cuando quieras para reactivar tu membresía.",
                "",
                "Gracias por ser parte de {{appName}}.",
            ],
        },
        'payment_failure': {
            'subject': "Tu suscripción a {{appName}} fue cancelada por un pago fallido",
            'lines': [
                "Hola {{name}}",
                "",
                "No pudimos cobrar tu suscripción, por lo que tu membresía fue cancelada.",
                "Actualiza tu método de pago y suscríbete de nuevo para recuperar el acceso.",
                "",
                "Gracias por ser parte de {{appName}}.",
            ],
        },
    },
}


def resolve_locale(locale: Optional[str]) -> str:
    """'es-MX' -> 'es', unknown or missing -> 'en'"""
    if not locale:
        return 'en'
    if locale in SUPPORTED_LOCALES:
        return locale
    base = locale.split('-')[0].lower()
    return base if base in SUPPORTED_LOCALES else 'en'


def format_amount(amount_cents: int, currency: str) -> str:
    """
    Examples:
        >>> format_amount(3499, 'usd')
        '$34.99'
        >>> format_amount(150000, 'CHF')
        '1,500.00 CHF'
    """
    code = (currency or 'USD').upper()
    amount = f"{(amount_cents or 0) / 100:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(code)
    return f"{symbol}{amount}" if symbol else f"{amount} {code}"


def format_date(value, locale: str = 'en') -> str:
    """'2026-02-01T00:00:00Z' -> 'February 1, 2026' / '1 de febrero de 2026'"""
    parsed = value if isinstance(value, datetime) else parse_datetime(value)
    if parsed is None:
        return str(value or '')
    if locale == 'es':
        return f"{parsed.day} de {MONTHS['es'][parsed.month - 1]} de {parsed.year}"
    return f"{MONTHS['en'][parsed.month - 1]} {parsed.day}, {parsed.year}"


class SubscriptionNotificationService:

    def __init__(self, session: Session, emailService: Optional[EmailService] = None):
        self.session = session
        self.emailService = emailService or get_service(EmailService)
        self.templates = EmailTemplateService(session)

    # ═══════════════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════════════

    def _hasSubscriptionNotificationsEnabled(self, userId: str) -> bool:
        """Enabled by default and whenever the preference cannot be read."""
        try:
            preference = self.session.query(NotificationPreference).filter_by(userID=userId).first()
            if preference is None or preference.subscriptionNotifications is None:
                return True
            return bool(preference.subscriptionNotifications)
        except Exception as e:
            logger.error(f"Error checking notification preferences for {userId}: {e}")
            return True

    def _getRecipient(self, userId: str) -> Tuple[Optional[str], str]:
        """(email, friendly name)"""
        try:
            profile = self.session.query(Profile).filter_by(userID=userId).first()
        except Exception as e:
            logger.error(f"Failed to fetch profile {userId} for email: {e}")
            return None, 'there'

        if profile is None:
            return None, 'there'

        name = (profile.name or '').strip() or 'there'
        return profile.email, name

    async def _send(
            self,
            userId: str,
            templateId: str,
            variables: Dict[str, str],
            fallbackSubject: str,
            fallbackText: str,
            locale: str
    ) -> bool:
        email, _name = self._getRecipient(userId)
        if not email:
            logger.warning(f"Skipping {templateId} email: missing recipient email for user {userId}")
            return False

        if self.emailService is None:
            logger.warning(f"EmailService not available, {templateId} email to {email} not sent")
            return False

        try:
            if await self.templates.isTemplateAvailable(templateId):
                processed = await self.templates.getProcessedTemplate(templateId, variables, locale)
                if processed:
                    return await self.emailService.send_email(
                        to=email,
                        subject=processed["subject"],
                        html_body=processed["html"]
                    )

            return await self.emailService.send_email(
                to=email,
                subject=replace_variables(fallbackSubject, variables),
                text_body=replace_variables(fallbackText, variables)
            )

        except Exception as e:
            logger.error(f"Failed to send {templateId} email to {email}: {e}", exc_info=True)
            return False

    # ═══════════════════════════════════════════════════════════════════
    # EMAILS
    # ═══════════════════════════════════════════════════════════════════

    async def sendCancellationEmail(self, userId: str, reason: str, locale: Optional[str] = None) -> bool:
        """Sent regardless of preferences: it confirms an account change."""
        app_name = Config.get(Config.APP_NAME, 'PūrVita')
        lang = resolve_locale(locale)
        _email, name = self._getRecipient(userId)

        copy_key = 'payment_failure' if reason == 'payment_failure' else 'user_requested'
        copy = CANCELLATION_COPY[lang][copy_key]

        return await self._send(
            userId,
            TEMPLATE_CANCELLATION,
            {"name": name, "appName": app_name, "reason": reason},
            copy['subject'],
            "\n".join(copy['lines']),
            lang
        )

    async def sendPaymentMethodUpdateEmail(
            self,
            userId: str,
            gateway: str,
            lastFour: Optional[str] = None,
            locale: Optional[str] = None
    ) -> bool:
        if not self._hasSubscriptionNotificationsEnabled(userId):
            logger.info(f"Payment method update email skipped for user {userId}: notifications disabled")
            return False

        app_name = Config.get(Config.APP_NAME, 'PūrVita')
        _email, name = self._getRecipient(userId)
        card_line = f"Card ending in: {lastFour}\n" if lastFour else ""

        text = (
            "Hi {{name}},\n\n"
            "Your payment method for your {{appName}} subscription has been successfully updated.\n\n"
            "Updated Payment Method: {{gatewayName}}\n"
            f"{card_line}"
            "Status: Active\n\n"
            "Important: This payment method will be used for your next automatic renewal. "
            "You were not charged at this time.\n\n"
            "If you did not make this change, please contact support immediately.\n\n"
            "Thank you for being part of {{appName}}."
        )

        return await self._send(
            userId,
            TEMPLATE_PAYMENT_METHOD_UPDATED,
            {
                "name": name,
                "appName": app_name,
                "gatewayName": GATEWAY_NAMES.get(gateway, 'Wallet'),
                "lastFour": lastFour or '',
            },
            "Payment Method Updated - {{appName}}",
            text,
            resolve_locale(locale)
        )

    async def sendRenewalSuccessEmail(
            self,
            userId: str,
            amountCents: int,
            currency: str,
            nextBillingDate,
            gateway: str,
            locale: Optional[str] = None
    ) -> bool:
        if not self._hasSubscriptionNotificationsEnabled(userId):
            logger.info(f"Renewal success email skipped for user {userId}: notifications disabled")
            return False

        lang = resolve_locale(locale)
        app_name = Config.get(Config.APP_NAME, 'PūrVita')
        _email, name = self._getRecipient(userId)

        text = (
            "Hi {{name}},\n\n"
            "Your {{appName}} subscription has been successfully renewed!\n\n"
            "Renewal Details:\n"
            "- Amount Charged: {{amount}}\n"
            "- Payment Method: {{gatewayName}}\n"
            "- Next Billing Date: {{nextBillingDate}}\n\n"
            "If you have any questions about this charge, please contact our support team.\n\n"
            "Thank you for being part of {{appName}}."
        )

        return await self._send(
            userId,
            TEMPLATE_RENEWAL_SUCCESS,
            {
                "name": name,
                "appName": app_name,
                "amount": format_amount(amountCents, currency),
                "gatewayName": GATEWAY_NAMES.get(gateway, 'Wallet'),
                "nextBillingDate": format_date(nextBillingDate, lang),
            },
            "Subscription Renewed Successfully - {{appName}}",
            text,
            lang
        )

    async def sendRenewalFailureEmail(
            self,
            userId: str,
            amountCents: int,
            currency: str,
            reason: str,
            gateway: str,
            locale: Optional[str] = None
    ) -> bool:
        if not self._hasSubscriptionNotificationsEnabled(userId):
            logger.info(f"Renewal failure email skipped for user {userId}: notifications disabled")
            return False

        app_name = Config.get(Config.APP_NAME, 'PūrVita')
        _email, name = self._getRecipient(userId)

        text = (
            "Hi {{name}},\n\n"
            "We were unable to process your automatic subscription renewal for {{appName}}.\n\n"
            "Renewal Attempt Details:\n"
            "- Amount: {{amount}}\n"
            "- Payment Method: {{gatewayName}}\n"
            "- Reason: {{reason}}\n\n"
            "Your subscription is now past due. Please update your payment method "
            "to avoid service interruption: {{subscriptionUrl}}\n\n"
            "Thank you for being part of {{appName}}."
        )

        return await self._send(
            userId,
            TEMPLATE_RENEWAL_FAILURE,
            {
                "name": name,
                "appName": app_name,
                "amount": format_amount(amountCents, currency),
                "gatewayName": GATEWAY_NAMES.get(gateway, 'Wallet'),
                "reason": reason,
                "subscriptionUrl": f"{Config.get(Config.APP_URL, '')}/subscription",
            },
            "Action Required: Subscription Renewal Failed - {{appName}}",
            text,
            resolve_locale(locale)
        )
