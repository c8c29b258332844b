# tests/test_email.py
"""
Tests for email templates, provider routing and subscription emails.

Run:
    pytest tests/test_email.py -v
"""
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from markupsafe import Markup

from config import Config
from email_system.services.email_service import EmailService
from email_system.services.email_template_service import (
    EmailTemplateService,
    render_email_html,
    replace_variables,
)
from models import EmailTemplate, NotificationPreference
from multilevel.services.subscription_notification_service import (
    SubscriptionNotificationService,
    format_amount,
    format_date,
    resolve_locale,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def make_template(session):
    def _generate(templateId, subjectEn="Hello {{name}}", bodyEn="<p>Hi {{name}}</p>", **fields):
        template = EmailTemplate(
            templateID=templateId,
            name=fields.pop('name', templateId.replace('_', ' ').title()),
            subjectEn=subjectEn,
            bodyEn=bodyEn,
            **fields
        )
        session.add(template)
        session.commit()
        return template
    return _generate


@pytest.fixture
def provider():
    """Provider double that accepts every email."""
    def _generate(result=True):
        double = MagicMock()
        double.send_email = AsyncMock(return_value=result)
        return double
    return _generate


# =============================================================================
# TEMPLATE RENDERING
# =============================================================================

class TestReplaceVariables:

    def test_case_insensitive_with_spaces(self):
        assert replace_variables("Hi {{ Name }}", {"name": "Ana"}) == 'Hi Ana'

    def test_unknown_placeholders_kept(self):
        assert replace_variables("Hi {{name}} {{other}}", {"name": "Ana"}) == 'Hi Ana {{other}}'

    def test_none_becomes_empty(self):
        assert replace_variables("[{{lastFour}}]", {"lastFour": None}) == '[]'

    def test_value_with_backslashes(self):
        assert replace_variables("Path {{p}}", {"p": r"C:\new"}) == r'Path C:\new'

    def test_escape_html(self):
        template = "<p>{{name}} {{link}}</p>"
        variables = {"name": "<script>x</script>", "link": Markup('<a href="/w">wallet</a>')}

        assert replace_variables(template, variables, escape_html=True) == (
            '<p>&lt;script&gt;x&lt;/script&gt; <a href="/w">wallet</a></p>'
        )

    def test_layout_wraps_body(self):
        html = render_email_html("<p>Body</p>", 'es', 'Asunto')

        assert '<html lang="es">' in html
        assert '<title>Asunto</title>' in html
        assert '<p>Body</p>' in html
        assert 'This email was sent by PūrVita.' in html


class TestEmailTemplateService:

    async def test_processed_template(self, session, make_template):
        make_template('welcome', subjectEn="Welcome {{name}}", bodyEn="<p>{{name}} joined</p>")

        processed = await EmailTemplateService(session).getProcessedTemplate('welcome', {"name": "Ana"})

        assert processed["subject"] == 'Welcome Ana'
        assert processed["body"] == '<p>Ana joined</p>'
        assert '<p>Ana joined</p>' in processed["html"]

    async def test_member_name_escaped_in_body(self, session, make_template):
        """
        TEST: Member name containing markup.

        Verify: Body and layout get the escaped name, the subject stays plain text.
        """
        make_template('welcome', subjectEn="Welcome {{name}}", bodyEn="<p>{{name}} joined</p>")

        processed = await EmailTemplateService(session).getProcessedTemplate('welcome', {"name": "Ana <img src=x>"})

        assert processed["subject"] == 'Welcome Ana <img src=x>'
        assert processed["body"] == '<p>Ana &lt;img src=x&gt; joined</p>'
        assert '<img src=x>' not in processed["html"]

    async def test_spanish_falls_back_to_english(self, session, make_template):
        make_template('welcome', subjectEn="Welcome", bodyEn="<p>EN</p>", subjectEs="Bienvenida")

        processed = await EmailTemplateService(session).getProcessedTemplate('welcome', {}, 'es')

        assert processed["subject"] == 'Bienvenida'
        assert processed["body"] == '<p>EN</p>'

    async def test_missing_template(self, session):
        service = EmailTemplateService(session)

        assert await service.getProcessedTemplate('missing', {}) is None
        assert await service.isTemplateAvailable('missing') is False

    async def test_inactive_template_unavailable(self, session, make_template):
        make_template('old', isActive=False)

        assert await EmailTemplateService(session).isTemplateAvailable('old') is False

    async def test_listing_and_update(self, session, make_template):
        make_template('b_template', name='B', category='subscription')
        make_template('a_template', name='A', category='subscription')
        make_template('news', name='News', category='marketing')
        service = EmailTemplateService(session)

        assert [t.templateID for t in await service.getTemplatesByCategory('subscription')] == [
            'a_template', 'b_template'
        ]
        assert [t.category for t in await service.getAllTemplates()] == ['marketing', 'subscription', 'subscription']

        updated = await service.updateTemplate('news', {"subjectEs": "Noticias", "templateID": "hijack"})
        assert updated.subjectEs == 'Noticias'
        assert updated.templateID == 'news'
        assert await service.updateTemplate('missing', {"name": "X"}) is None

        serialized = EmailTemplateService.serialize(updated)
        assert serialized["id"] == 'news'
        assert serialized["variables"] == []
        assert serialized["isActive"] is True


# =============================================================================
# EMAIL SERVICE
# =============================================================================

class TestEmailService:

    async def test_no_providers(self):
        service = EmailService()

        assert await service.send_email('a@b.com', 'Subject', text_body='Body') is False

    async def test_initialize_without_credentials(self):
        Config.set(Config.SMTP_HOST, None)
        Config.set(Config.MAILGUN_API_KEY, None)
        service = EmailService()

        await service.initialize()

        assert service.providers == {}
        assert service.get_config_info()["providers_count"] == 0

    async def test_providers_status(self, provider):
        healthy = provider()
        healthy.test_connection = AsyncMock(return_value=True)
        broken = provider()
        broken.test_connection = AsyncMock(side_effect=ConnectionError("refused"))
        service = EmailService()
        service.providers = {'smtp': broken, 'mailgun': healthy}

        assert await service.get_providers_status() == {'smtp': False, 'mailgun': True}

    async def test_secure_domain_routing(self, provider):
        """
        TEST: Recipient on a secure domain.

        Verify: Mailgun tried first, SMTP first for everyone else.
        """
        Config.set(Config.SECURE_EMAIL_DOMAINS, 'gmx.de, @Web.de')
        service = EmailService()
        service.providers = {'smtp': provider(), 'mailgun': provider()}
        service.reload_secure_domains()

        assert service._select_provider_for_email('user@GMX.de') == ['mailgun', 'smtp']
        assert service._select_provider_for_email('user@web.de') == ['mailgun', 'smtp']
        assert service._select_provider_for_email('user@example.com') == ['smtp', 'mailgun']

    async def test_fallback_to_next_provider(self, provider):
        service = EmailService()
        smtp, mailgun = provider(result=False), provider()
        service.providers = {'smtp': smtp, 'mailgun': mailgun}

        assert await service.send_email('user@example.com', 'Hi', html_body='<p>Hi</p>') is True
        smtp.send_email.assert_awaited_once()
        mailgun.send_email.assert_awaited_once()

    async def test_rejects_empty_message(self, provider):
        service = EmailService()
        service.providers = {'smtp': provider()}

        assert await service.send_email('user@example.com', 'Hi') is False
        assert await service.send_email('', 'Hi', text_body='x') is False

    async def test_send_template(self, make_template, provider):
        make_template('welcome', subjectEn="Welcome {{name}}")
        service = EmailService()
        smtp = provider()
        service.providers = {'smtp': smtp}

        assert await service.send_template('ana@example.com', 'welcome', {"name": "Ana"}) is True
        assert smtp.send_email.await_args.kwargs["subject"] == 'Welcome Ana'
        assert await service.send_template('ana@example.com', 'missing', {}) is False


# =============================================================================
# SUBSCRIPTION EMAILS
# =============================================================================

class TestNotificationFormatting:

    @pytest.mark.parametrize("locale, expected", [
        (None, 'en'), ('es', 'es'), ('es-MX', 'es'), ('fr', 'en'), ('EN-us', 'en'),
    ])
    def test_resolve_locale(self, locale, expected):
        assert resolve_locale(locale) == expected

    def test_format_amount(self):
        assert format_amount(3499, 'usd') == '$34.99'
        assert format_amount(150000, 'CHF') == '1,500.00 CHF'

    def test_format_date(self):
        assert format_date('2026-02-01T00:00:00Z') == 'February 1, 2026'
        assert format_date(datetime(2026, 2, 1), 'es') == '1 de febrero de 2026'
        assert format_date(None) == ''


class TestSubscriptionNotificationService:

    async def test_renewal_success_fallback_copy(self, session, make_profile, email_service):
        user = make_profile("Ana")

        sent = await SubscriptionNotificationService(session).sendRenewalSuccessEmail(
            user.userID, 3499, 'USD', datetime(2026, 2, 1), 'stripe'
        )

        assert sent is True
        kwargs = email_service.send_email.await_args.kwargs
        assert kwargs["to"] == user.email
        assert kwargs["subject"] == 'Subscription Renewed Successfully - PūrVita'
        assert 'Hi Ana,' in kwargs["text_body"]
        assert '- Amount Charged: $34.99' in kwargs["text_body"]
        assert '- Payment Method: Credit Card' in kwargs["text_body"]
        assert '- Next Billing Date: February 1, 2026' in kwargs["text_body"]

    async def test_stored_template_used(self, session, make_profile, make_template, email_service):
        """
        TEST: Active template for renewal failures.

        Verify: Template subject and HTML body sent instead of the built-in copy.
        """
        user = make_profile("Ana")
        make_template('subscription_renewal_failure',
                      subjectEn="Renewal failed for {{name}}", bodyEn="<p>{{reason}}</p>")

        await SubscriptionNotificationService(session).sendRenewalFailureEmail(
            user.userID, 3499, 'USD', 'Card declined', 'stripe'
        )

        kwargs = email_service.send_email.await_args.kwargs
        assert kwargs["subject"] == 'Renewal failed for Ana'
        assert '<p>Card declined</p>' in kwargs["html_body"]

    async def test_inactive_template_uses_fallback(self, session, make_profile, make_template, email_service):
        user = make_profile("Ana")
        make_template('subscription_renewal_failure', isActive=False)

        await SubscriptionNotificationService(session).sendRenewalFailureEmail(
            user.userID, 3499, 'USD', 'Card declined', 'wallet'
        )

        kwargs = email_service.send_email.await_args.kwargs
        assert kwargs["subject"] == 'Action Required: Subscription Renewal Failed - PūrVita'
        assert 'http://localhost:3000/subscription' in kwargs["text_body"]

    async def test_preferences_respected(self, session, make_profile, email_service):
        user = make_profile("Ana")
        session.add(NotificationPreference(userID=user.userID, subscriptionNotifications=False))
        session.commit()
        service = SubscriptionNotificationService(session)

        assert await service.sendRenewalSuccessEmail(user.userID, 3499, 'USD', datetime(2026, 2, 1), 'wallet') is False
        assert await service.sendPaymentMethodUpdateEmail(user.userID, 'stripe', '4242') is False
        email_service.send_email.assert_not_awaited()

        assert await service.sendCancellationEmail(user.userID, 'user_requested') is True
        email_service.send_email.assert_awaited_once()

    async def test_spanish_cancellation(self, session, make_profile, email_service):
        user = make_profile("Lucía")

        await SubscriptionNotificationService(session).sendCancellationEmail(user.userID, 'user_requested', 'es-MX')

        kwargs = email_service.send_email.await_args.kwargs
        assert kwargs["subject"] == 'Tu suscripción a PūrVita ha sido cancelada'
        assert kwargs["text_body"].startswith('Hola Lucía')

    async def test_payment_failure_cancellation_copy(self, session, make_profile, email_service):
        user = make_profile("Ana")

        await SubscriptionNotificationService(session).sendCancellationEmail(user.userID, 'payment_failure')

        assert 'failed payment' in email_service.send_email.await_args.kwargs["subject"]

    async def test_payment_method_update(self, session, make_profile, email_service):
        user = make_profile("Ana")

        await SubscriptionNotificationService(session).sendPaymentMethodUpdateEmail(user.userID, 'stripe', '4242')

        text = email_service.send_email.await_args.kwargs["text_body"]
        assert 'Updated Payment Method: Credit Card' in text
        assert 'Card ending in: 4242' in text

    async def test_missing_email(self, session, make_profile, email_service):
        user = make_profile("No mail", email='')

        assert await SubscriptionNotificationService(session).sendCancellationEmail(user.userID, 'user_requested') is False
        email_service.send_email.assert_not_awaited()

    async def test_no_email_service(self, session, make_profile):
        user = make_profile("Ana")

        assert await SubscriptionNotificationService(session).sendCancellationEmail(user.userID, 'x') is False

    async def test_send_errors_swallowed(self, session, make_profile, email_service):
        user = make_profile("Ana")
        email_service.send_email.side_effect = RuntimeError("SMTP down")

        assert await SubscriptionNotificationService(session).sendCancellationEmail(user.userID, 'x') is False

    async def test_preference_lookup_failure_means_enabled(self, session, make_profile, email_service):
        user = make_profile("Ana")
        service = SubscriptionNotificationService(session)

        with patch.object(service.session, 'query', side_effect=RuntimeError("db down")):
            assert service._hasSubscriptionNotificationsEnabled(user.userID) is True
