# tests/test_admin_api.py
"""
End-to-end tests for the admin API: middleware chain, route groups and
the Stripe webhook, against an aiohttp test server.

Run:
    pytest tests/test_admin_api.py -v
"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from admin_api.security import CsrfProtector, RateLimiter
from admin_api.server import create_app
from config import Config
from conftest import ADMIN_TOKEN, ADMIN_USER_ID, CSRF_SECRET
from models import AuditLog, Payment, Subscription
from multilevel.services.dashboard_summary_service import DashboardSummaryService
from payments.stripe_gateway import StripeGateway, StripeGatewayError


def _client(rate_limiter=None, gateway=None):
    app = create_app(
        rate_limiter or RateLimiter(max_requests=1000, time_window=60),
        CsrfProtector(CSRF_SECRET),
        stripe_gateway=gateway or MagicMock(spec=StripeGateway)
    )
    return TestClient(TestServer(app))


def _audit(session, action):
    session.expire_all()
    return session.query(AuditLog).filter_by(action=action).all()


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def stripe_gateway():
    return MagicMock(spec=StripeGateway)


@pytest.fixture
async def client(admin_profile, stripe_gateway):
    async with _client(gateway=stripe_gateway) as test_client:
        yield test_client


@pytest.fixture
def headers():
    """Bearer token plus a fresh CSRF token for the configured admin."""
    return {
        'Authorization': f'Bearer {ADMIN_TOKEN}',
        'X-CSRF-Token': CsrfProtector(CSRF_SECRET).generate_token(ADMIN_USER_ID),
    }


@pytest.fixture
def stripe_event(stripe_gateway):
    """Make the gateway accept any signature and return the given event."""
    def _generate(event_type, intent_id, metadata, amount=2500, **fields):
        intent = {"id": intent_id, "amount_received": amount, "currency": "usd", "metadata": metadata}
        intent.update(fields)
        event = {"id": f"evt_{intent_id}", "type": event_type, "data": {"object": intent}}
        stripe_gateway.constructWebhookEvent.return_value = event
        stripe_gateway.constructWebhookEvent.side_effect = None
        return event
    return _generate


# =============================================================================
# MIDDLEWARE
# =============================================================================

class TestSecurityMiddleware:

    async def test_health_is_public(self, client):
        resp = await client.get('/api/health')

        assert resp.status == 200
        body = await resp.json()
        assert body['status'] == 'ok'
        assert body['requests_total'] == 1
        assert body['errors_total'] == 0

    @pytest.mark.parametrize("auth", [None, 'Bearer wrong-token', 'Basic abc'])
    async def test_unauthorized(self, client, session, auth):
        """
        TEST: Admin route without a valid bearer token.

        Verify: 401, attempt recorded with reason 'token'.
        """
        request_headers = {'Authorization': auth} if auth else {}

        resp = await client.get('/api/admin/products', headers=request_headers)

        assert resp.status == 401
        assert await resp.json() == {'error': 'Unauthorized'}

        logs = _audit(session, 'UNAUTHORIZED_ACCESS_ATTEMPT')
        assert len(logs) == 1
        assert logs[0].entityType == 'security'
        assert logs[0].meta == {"path": "/api/admin/products", "reason": "token"}
        assert logs[0].ipAddress == '127.0.0.1'

    async def test_non_admin_forbidden(self, client, session, make_profile):
        member = make_profile("Member")
        Config.set(Config.ADMIN_API_TOKENS, {ADMIN_TOKEN: ADMIN_USER_ID, 'member-token': member.userID})

        resp = await client.get('/api/admin/products', headers={'Authorization': 'Bearer member-token'})

        assert resp.status == 403
        assert await resp.json() == {'error': 'Forbidden'}
        assert _audit(session, 'UNAUTHORIZED_ACCESS_ATTEMPT')[0].meta["reason"] == 'role'

    async def test_missing_csrf_token(self, client, session, headers):
        del headers['X-CSRF-Token']

        resp = await client.post('/api/admin/notes', json={"content": "Hi"}, headers=headers)

        assert resp.status == 403
        assert await resp.json() == {'error': 'Invalid CSRF token'}
        assert len(_audit(session, 'CSRF_VALIDATION_FAILED')) == 1

    async def test_csrf_token_endpoint(self, client, headers):
        del headers['X-CSRF-Token']

        resp = await client.get('/api/admin/csrf-token', headers=headers)

        body = await resp.json()
        assert body['expiresIn'] == 3600
        assert CsrfProtector(CSRF_SECRET).validate_token(body['csrfToken'], ADMIN_USER_ID) is True

    async def test_rate_limited(self, admin_profile, session, headers):
        async with _client(rate_limiter=RateLimiter(max_requests=1, time_window=60)) as client:
            first = await client.get('/api/admin/products', headers=headers)
            second = await client.get('/api/admin/products', headers=headers)
            health = await client.get('/api/health')

            assert first.status == 200
            assert second.status == 429
            assert await second.json() == {'error': 'Too Many Requests'}
            assert health.status == 200

        assert _audit(session, 'RATE_LIMIT_EXCEEDED')[0].meta == {"path": "/api/admin/products"}

    async def test_permission_list_enforced(self, client, session, admin_profile, headers):
        admin_profile.permissions = ['view_dashboard']
        session.commit()

        products = await client.get('/api/admin/products', headers=headers)
        metrics = await client.get('/api/admin/dashboard/metrics', headers=headers)

        assert products.status == 403
        assert metrics.status == 200


class TestErrorMiddleware:

    async def test_invalid_json(self, client, headers):
        resp = await client.post('/api/admin/products', data='{not json', headers=headers)

        assert resp.status == 400
        assert await resp.json() == {'error': 'Invalid JSON'}

    async def test_json_object_expected(self, client, headers):
        resp = await client.post('/api/admin/products', data='[1, 2]', headers=headers)

        assert resp.status == 400
        assert await resp.json() == {'error': 'JSON object expected'}

    async def test_validation_error_details(self, client, headers):
        resp = await client.post('/api/admin/products', json={"slug": "tea"}, headers=headers)

        assert resp.status == 400
        body = await resp.json()
        assert body['error'] == 'Invalid request'
        assert {detail['field'] for detail in body['details']} == {'name', 'price'}

    async def test_unexpected_error(self, client, headers):
        """
        TEST: Handler raises an unexpected exception.

        Verify: 500 with a generic message, error counter incremented.
        """
        with patch.object(DashboardSummaryService, 'getSummary', AsyncMock(side_effect=RuntimeError("boom"))):
            resp = await client.get(f'/api/admin/users/{ADMIN_USER_ID}/summary', headers=headers)

        assert resp.status == 500
        assert await resp.json() == {'error': 'Internal Server Error'}

        health = await (await client.get('/api/health')).json()
        assert health['errors_total'] == 1


# =============================================================================
# CATALOG
# =============================================================================

class TestCatalogRoutes:

    async def test_plan_crud(self, client, session, headers):
        created = await client.post('/api/admin/plans', json={
            "slug": "basic", "name_en": "Basic", "price": "34.99"
        }, headers=headers)
        assert created.status == 201
        plan = (await created.json())['plan']
        assert plan['price'] == 34.99

        updated = await client.put(f"/api/admin/plans/{plan['id']}", json={"display_order": 3}, headers=headers)
        assert (await updated.json())['plan']['display_order'] == 3

        listed = await (await client.get('/api/admin/plans', headers=headers)).json()
        assert [p['slug'] for p in listed['plans']] == ['basic']

        deleted = await client.delete(f"/api/admin/plans/{plan['id']}", headers=headers)
        assert await deleted.json() == {'success': True}
        assert len(_audit(session, 'PLAN_DELETED')) == 1

    async def test_plan_error_bodies(self, client, headers):
        invalid = await client.post('/api/admin/plans', json={"slug": "basic"}, headers=headers)
        body = await invalid.json()
        assert invalid.status == 400
        assert body['error'] == 'Invalid plan payload'
        assert body['path'] == '/api/admin/plans'
        assert body['details'][0]['field'] == 'price'
        assert body['timestamp'].endswith('Z')

        missing = await client.put('/api/admin/plans/missing', json={"price": 10}, headers=headers)
        assert missing.status == 404
        assert (await missing.json())['error'] == 'Plan missing not found'

        nameless = await client.post('/api/admin/plans', json={"slug": "x", "price": 10}, headers=headers)
        assert nameless.status == 500
        assert (await nameless.json())['error'] == 'Error creating plan: name is required'

    async def test_product_lifecycle(self, client, headers):
        created = await client.post('/api/admin/products', json={
            "slug": "green-tea", "name": "Green Tea", "price": 19.99, "stock_quantity": 4
        }, headers=headers)
        assert created.status == 201
        product = (await created.json())['product']
        assert product['price_cents'] == 1999

        duplicate = await client.post('/api/admin/products', json={
            "slug": "green-tea", "name": "Again", "price": 1
        }, headers=headers)
        assert duplicate.status == 400

        updated = await client.put(f"/api/admin/products/{product['id']}",
                                   json={"stock_quantity": 9}, headers=headers)
        assert (await updated.json())['product']['stock_quantity'] == 9

        stock = await (await client.get('/api/admin/products/stock', headers=headers)).json()
        assert stock['totalStock'] == 9

        missing = await client.put('/api/admin/products/ghost', json={"name": "Ghost"}, headers=headers)
        assert missing.status == 404

        deleted = await client.delete(f"/api/admin/products/{product['id']}", headers=headers)
        assert await deleted.json() == {'success': True}

        listed = await (await client.get('/api/admin/products', headers=headers)).json()
        assert listed['products'] == []


# =============================================================================
# CONTENT
# =============================================================================

class TestContentRoutes:

    async def test_notes(self, client, headers):
        created = await client.post('/api/admin/notes', json={"content": "<b>Restock</b>"}, headers=headers)
        assert created.status == 201
        note = (await created.json())['note']
        assert note['content'] == '&lt;b&gt;Restock&lt;/b&gt;'

        notes = (await (await client.get('/api/admin/notes', headers=headers)).json())['notes']
        assert notes[0]['profiles'] == {"name": "Admin", "email": "admin@purvita.test"}

        blank = await client.post('/api/admin/notes', json={"content": "  "}, headers=headers)
        assert blank.status == 400

        missing = await client.delete('/api/admin/notes?id=missing', headers=headers)
        assert missing.status == 404
        assert await missing.json() == {'error': 'Note not found'}

        deleted = await client.delete(f"/api/admin/notes?id={note['id']}", headers=headers)
        assert await deleted.json() == {'success': True}

    async def test_branding_and_landing(self, client, headers):
        branding = await client.put('/api/admin/site-content/branding', json={"appName": "Vida"}, headers=headers)
        assert (await branding.json())['branding']['appName'] == 'Vida'

        landing = await client.get('/api/admin/site-content/landing/en', headers=headers)
        assert (await landing.json())['content']['about']['title'] == 'About Vida'

        updated = await client.put('/api/admin/site-content/landing/es', json={
            "hero": {"title": "Siéntete mejor"}
        }, headers=headers)
        assert (await updated.json())['content']['hero']['title'] == 'Siéntete mejor'

        unsupported = await client.get('/api/admin/site-content/landing/fr', headers=headers)
        assert unsupported.status == 400

    async def test_email_template_not_found(self, client, headers):
        resp = await client.get('/api/admin/email-templates/missing', headers=headers)

        assert resp.status == 404
        assert await resp.json() == {'error': 'Template not found'}

    async def test_phase_levels(self, client, headers):
        invalid = await client.put('/api/admin/phase-levels/abc', json={}, headers=headers)
        assert invalid.status == 400
        assert await invalid.json() == {'error': 'Invalid phase level'}

        updated = await client.put('/api/admin/phase-levels/2', json={"commissionRate": "0.35"}, headers=headers)
        assert (await updated.json())['phaseLevel']['commission_rate'] == 0.35

        unknown = await client.put('/api/admin/phase-levels/9', json={"name": "Nine"}, headers=headers)
        assert unknown.status == 404

        levels = (await (await client.get('/api/admin/phase-levels', headers=headers)).json())['phaseLevels']
        assert [level['level'] for level in levels] == [2]


# =============================================================================
# MONITORING
# =============================================================================

class TestMonitoringRoutes:

    async def test_dashboard_metrics(self, client, session, headers):
        resp = await client.get('/api/admin/dashboard/metrics?productsPeriod=weekly&recentLimit=500',
                                headers=headers)

        assert resp.status == 200
        body = await resp.json()
        assert body['totalUsers'] == 1
        assert body['recentUsers'][0]['name'] == 'Admin'

        log = _audit(session, 'ADMIN_ACCESS')[0]
        assert log.meta["productsPeriod"] == 'weekly'
        assert log.meta["activityPeriod"] == 'all'

    async def test_invalid_period(self, client, headers):
        resp = await client.get('/api/admin/dashboard/metrics?productsPeriod=yearly', headers=headers)

        assert resp.status == 400
        assert await resp.json() == {'error': 'Invalid productsPeriod: yearly'}

    async def test_audit_logs(self, client, headers):
        await client.get('/api/admin/products')
        resp = await client.get('/api/admin/audit-logs?action=UNAUTHORIZED_ACCESS_ATTEMPT', headers=headers)

        body = await resp.json()
        assert body['pagination'] == {"page": 1, "limit": 50, "total": 1, "totalPages": 1}
        assert body['logs'][0]['metadata']['reason'] == 'token'

    async def test_audit_logs_rejects_bad_search(self, client, headers):
        resp = await client.get('/api/admin/audit-logs', params={"search": "<script>"}, headers=headers)

        assert resp.status == 400
        assert (await resp.json())['error'] == 'Invalid request'


# =============================================================================
# FINANCE
# =============================================================================

class TestFinanceRoutes:

    async def test_wallet_adjust_and_read(self, client, session, make_profile, headers):
        member = make_profile("Member")

        resp = await client.post(f'/api/admin/wallets/{member.userID}/adjust',
                                 json={"targetBalanceCents": 1500, "note": "Goodwill"}, headers=headers)

        body = await resp.json()
        assert body['balanceCents'] == 1500
        assert body['deltaCents'] == 1500
        assert body['transaction']['reason'] == 'admin_adjustment'
        assert body['transaction']['metadata']['admin_id'] == ADMIN_USER_ID

        log = _audit(session, 'WALLET_ADJUSTED')[0]
        assert log.entityID == member.userID
        assert log.meta["delta_cents"] == 1500

        wallet = await (await client.get(f'/api/admin/wallets/{member.userID}', headers=headers)).json()
        assert wallet['balanceCents'] == 1500
        assert len(wallet['transactions']) == 1

    async def test_wallet_set_below_balance(self, client, make_profile, fund_wallet, headers):
        """
        TEST: Balance 1000, admin sets the wallet to 500.

        Verify: Debit of 500 recorded, target and source kept in the metadata.
        """
        member = make_profile("Member")
        fund_wallet(member, 1000)

        resp = await client.post(f'/api/admin/wallets/{member.userID}/adjust',
                                 json={"targetBalanceCents": 500}, headers=headers)

        body = await resp.json()
        assert body['balanceCents'] == 500
        assert body['deltaCents'] == -500
        assert body['transaction']['delta_cents'] == -500
        assert body['transaction']['metadata']['target_balance_cents'] == 500
        assert body['transaction']['metadata']['source'] == 'admin_panel'

    async def test_wallet_already_at_target(self, client, session, make_profile, fund_wallet, headers):
        member = make_profile("Member")
        fund_wallet(member, 700)

        resp = await client.post(f'/api/admin/wallets/{member.userID}/adjust',
                                 json={"targetBalanceCents": 700}, headers=headers)

        assert await resp.json() == {"transaction": None, "deltaCents": 0, "balanceCents": 700}
        assert _audit(session, 'WALLET_ADJUSTED') == []

        wallet = await (await client.get(f'/api/admin/wallets/{member.userID}', headers=headers)).json()
        assert len(wallet['transactions']) == 1

    async def test_network_earnings_target(self, client, session, make_profile, headers):
        member = make_profile("Member")

        resp = await client.post(f'/api/admin/wallets/{member.userID}/adjust',
                                 json={"target": "network_earnings", "targetBalanceCents": 900}, headers=headers)

        body = await resp.json()
        assert body['deltaCents'] == 900
        assert body['transaction'] is None
        assert body['balanceCents'] == 0
        assert _audit(session, 'WALLET_ADJUSTED')[0].meta["target"] == 'network_earnings'

    async def test_negative_target_rejected(self, client, make_profile, headers):
        member = make_profile("Member")

        resp = await client.post(f'/api/admin/wallets/{member.userID}/adjust',
                                 json={"targetBalanceCents": -1}, headers=headers)

        assert resp.status == 400
        assert (await resp.json())['error'] == 'Invalid request'

    async def test_cancel_subscription(self, client, make_member, headers):
        member = make_member("Member")

        resp = await client.post(f'/api/admin/subscriptions/{member.userID}/cancel', json={}, headers=headers)
        body = await resp.json()
        assert body['canceled'] is True
        assert body['subscription']['cancel_at_period_end'] is True

        again = await (await client.post(f'/api/admin/subscriptions/{member.userID}/cancel',
                                         json={}, headers=headers)).json()
        assert again['alreadyCanceled'] is True

        missing = await client.post('/api/admin/subscriptions/nobody/cancel', json={}, headers=headers)
        assert missing.status == 404

    async def test_run_renewals(self, client, session, headers):
        resp = await client.post('/api/admin/subscriptions/renewals/run', json={}, headers=headers)

        body = await resp.json()
        assert body == {"totalProcessed": 0, "successful": 0, "failed": 0, "results": []}
        assert _audit(session, 'SUBSCRIPTION_RENEWALS_RUN')[0].meta["days_before_expiry"] == 1


# =============================================================================
# STRIPE WEBHOOK
# =============================================================================

class TestStripeWebhook:

    async def test_signature_failure(self, client, session, stripe_gateway):
        stripe_gateway.constructWebhookEvent.side_effect = StripeGatewayError("Invalid signature")

        resp = await client.post('/api/webhooks/stripe', data=b'{}', headers={'Stripe-Signature': 'bad'})

        assert resp.status == 400
        assert await resp.json() == {'error': 'Invalid signature'}
        stripe_gateway.constructWebhookEvent.assert_called_once_with(b'{}', 'bad')

        log = _audit(session, 'WEBHOOK_SIGNATURE_FAILED')[0]
        assert log.meta == {"provider": "stripe", "error": "Invalid signature"}

    async def test_wallet_recharge_once(self, client, make_profile, stripe_event, calc_journal_sum):
        """
        TEST: Same recharge event delivered twice.

        Verify: Wallet credited once.
        """
        member = make_profile("Member")
        stripe_event('payment_intent.succeeded', 'pi_recharge',
                     {"intent": "wallet_recharge", "userId": member.userID})

        for _ in range(2):
            resp = await client.post('/api/webhooks/stripe', data=b'{}', headers={'Stripe-Signature': 'ok'})
            assert await resp.json() == {'received': True}

        assert calc_journal_sum(member.userID) == 2500

    async def test_subscription_payment(self, client, session, make_profile, stripe_event):
        member = make_profile("Member")
        stripe_event('payment_intent.succeeded', 'pi_sub',
                     {"intent": "subscription", "userId": member.userID}, amount=3499)

        resp = await client.post('/api/webhooks/stripe', data=b'{}', headers={'Stripe-Signature': 'ok'})

        assert resp.status == 200
        session.expire_all()
        subscription = session.query(Subscription).filter_by(userID=member.userID).one()
        assert subscription.status == 'active'
        assert subscription.gateway == 'stripe'
        assert session.query(Payment).filter_by(gatewayRef='stripe:pi_sub').one().amountCents == 3499

    async def test_renewal_intent_skipped(self, client, session, make_profile, stripe_event):
        member = make_profile("Member")
        stripe_event('payment_intent.succeeded', 'pi_renew',
                     {"intent": "subscription_renewal", "userId": member.userID})

        await client.post('/api/webhooks/stripe', data=b'{}', headers={'Stripe-Signature': 'ok'})

        session.expire_all()
        assert session.query(Payment).count() == 0

    async def test_payment_failed(self, client, session, make_profile, stripe_event):
        member = make_profile("Member")
        stripe_event('payment_intent.payment_failed', 'pi_fail',
                     {"intent": "wallet_recharge", "userId": member.userID},
                     last_payment_error={"message": "Card declined"})

        await client.post('/api/webhooks/stripe', data=json.dumps({}), headers={'Stripe-Signature': 'ok'})

        log = _audit(session, 'PAYMENT_FAILED')[0]
        assert log.entityID == 'pi_fail'
        assert log.userID == member.userID
        assert log.meta["message"] == 'Card declined'
