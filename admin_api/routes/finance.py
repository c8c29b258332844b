# purvita/admin_api/routes/finance.py
"""Wallet, subscription and commission endpoints plus the Stripe webhook."""
import logging
from datetime import timedelta
from typing import Any, Dict

from aiohttp import web

from admin_api.routes.common import read_json, require_permission
from admin_api.security import get_client_ip
from admin_api.server import STRIPE_GATEWAY
from config import Config
from core.db import get_db_session_ctx
from core.utils import iso, safe_int, utcnow
from models.subscription import Subscription
from models.wallet import WalletTransaction
from multilevel.repositories.network_earnings_repository import NetworkEarningsRepository
from multilevel.services.commission_calculator_service import CommissionCalculatorService
from multilevel.services.dashboard_summary_service import DashboardSummaryService
from multilevel.services.subscription_lifecycle_service import SubscriptionLifecycleService
from multilevel.services.subscription_renewal_service import SubscriptionRenewalService
from multilevel.services.wallet_service import WalletService
from payments.stripe_gateway import StripeGatewayError
from schemas.admin import RenewalRunPayload, SubscriptionCancelPayload, WalletAdjustPayload
from services.audit_log_service import SECURITY_EVENTS, AuditLogService

logger = logging.getLogger(__name__)


def _transaction(txn: WalletTransaction) -> Dict[str, Any]:
    return {
        "id": txn.txnID,
        "user_id": txn.userID,
        "delta_cents": txn.deltaCents,
        "reason": txn.reason,
        "metadata": txn.meta or {},
        "external_reference": txn.externalReference,
        "created_at": iso(txn.createdAt),
    }


def _subscription(subscription: Subscription) -> Dict[str, Any]:
    return {
        "id": subscription.subscriptionID,
        "user_id": subscription.userID,
        "plan_id": subscription.planID,
        "subscription_type": subscription.subscriptionType,
        "status": subscription.status,
        "gateway": subscription.gateway,
        "current_period_end": iso(subscription.currentPeriodEnd),
        "cancel_at_period_end": bool(subscription.cancelAtPeriodEnd),
        "waitlisted": bool(subscription.waitlisted),
    }


# ═══════════════════════════════════════════════════════════════════════════
# WALLETS
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_payments')
async def get_wallet(request: web.Request) -> web.Response:
    user_id = request.match_info['userId']
    limit = max(1, min(safe_int(request.query.get('limit')) or 50, 200))

    with get_db_session_ctx() as session:
        wallet = WalletService(session)
        body = {
            "userId": user_id,
            "balanceCents": await wallet.getBalance(user_id),
            "transactions": [_transaction(t) for t in await wallet.listTransactions(user_id, limit)],
            "withdrawals": await wallet.getWithdrawalStats(user_id),
            "networkEarnings": NetworkEarningsRepository(session).fetchAvailableSummary(user_id),
        }

    return web.json_response(body)


@require_permission('manage_payments')
async def adjust_wallet(request: web.Request) -> web.Response:
    user_id = request.match_info['userId']
    admin_id = request['admin_id']
    payload = WalletAdjustPayload.model_validate(await read_json(request))

    target_cents = payload.targetBalanceCents

    with get_db_session_ctx() as session:
        wallet = WalletService(session)
        body: Dict[str, Any] = {"transaction": None}

        if payload.target == 'wallet':
            delta = target_cents - await wallet.getBalance(user_id)
            if delta != 0:
                txn = await wallet.addFunds(
                    user_id,
                    delta,
                    'admin_adjustment',
                    adminId=admin_id,
                    note=payload.note,
                    metadata={"target_balance_cents": target_cents, "source": "admin_panel"}
                )
                body["transaction"] = _transaction(txn)
        else:
            delta = NetworkEarningsRepository(session).adminAdjustEarnings(
                user_id, target_cents, payload.note
            )

        if delta != 0:
            AuditLogService(session).logUserAction(
                'WALLET_ADJUSTED',
                'wallet',
                user_id,
                {"target": payload.target, "target_balance_cents": target_cents, "delta_cents": delta,
                 "note": payload.note},
                userId=admin_id
            )

        body["deltaCents"] = delta
        body["balanceCents"] = await wallet.getBalance(user_id)

    if delta == 0:
        logger.info(f"Admin {admin_id}: {payload.target} of {user_id} already at {target_cents} cents")
    else:
        logger.info(f"✓ Admin {admin_id} set {payload.target} of {user_id} to {target_cents} cents ({delta:+d})")
    return web.json_response(body)


# ═══════════════════════════════════════════════════════════════════════════
# SUBSCRIPTIONS
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_payments')
async def run_renewals(request: web.Request) -> web.Response:
    payload = RenewalRunPayload.model_validate(await read_json(request))
    days = payload.daysBeforeExpiry
    if days is None:
        days = int(Config.get(Config.RENEWAL_DAYS_BEFORE_EXPIRY, 1))

    with get_db_session_ctx() as session:
        service = SubscriptionRenewalService(session, stripeGateway=request.app[STRIPE_GATEWAY])
        summary = await service.processRenewals(days)

        AuditLogService(session).logUserAction(
            'SUBSCRIPTION_RENEWALS_RUN',
            'subscription',
            metadata={
                "days_before_expiry": days,
                "total": summary["totalProcessed"],
                "successful": summary["successful"],
                "failed": summary["failed"],
            },
            userId=request['admin_id']
        )

    return web.json_response(summary)


@require_permission('manage_payments')
async def cancel_subscription(request: web.Request) -> web.Response:
    user_id = request.match_info['userId']
    payload = SubscriptionCancelPayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        result = await SubscriptionLifecycleService(session).cancelSubscription(
            user_id, payload.reason, payload.locale
        )
        subscription = result["subscription"]

        if subscription is None:
            return web.json_response({'error': 'Subscription not found'}, status=404)

        body = {
            "canceled": result["canceled"],
            "alreadyCanceled": result["alreadyCanceled"],
            "subscription": _subscription(subscription),
        }

    return web.json_response(body)


# ═══════════════════════════════════════════════════════════════════════════
# COMMISSIONS & SUMMARIES
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_payments')
async def recalculate_commissions(request: web.Request) -> web.Response:
    order_id = request.match_info['orderId']

    with get_db_session_ctx() as session:
        commissions = await CommissionCalculatorService(session).recalculateOrderCommissions(order_id)

        AuditLogService(session).logUserAction(
            'COMMISSIONS_RECALCULATED',
            'order',
            order_id,
            {"commissions": len(commissions)},
            userId=request['admin_id']
        )

    return web.json_response({"orderId": order_id, "commissions": commissions})


@require_permission('manage_users')
async def user_summary(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        summary = await DashboardSummaryService(session).getSummary(request.match_info['userId'])
    return web.json_response(summary)


# ═══════════════════════════════════════════════════════════════════════════
# STRIPE WEBHOOK
# ═══════════════════════════════════════════════════════════════════════════

async def _handle_payment_succeeded(session, intent) -> None:
    metadata = dict(intent.get('metadata') or {})
    purpose = metadata.get('intent')
    user_id = metadata.get('userId')
    amount = int(intent.get('amount_received') or intent.get('amount') or 0)

    if purpose == 'subscription_renewal':
        # Renewal charges are finalized by the renewal run itself
        logger.debug(f"Skipping renewal PaymentIntent {intent['id']}")
        return

    if not user_id:
        logger.warning(f"PaymentIntent {intent['id']} has no userId metadata")
        return

    if purpose == 'wallet_recharge':
        await WalletService(session).recordRecharge(
            user_id,
            amount,
            gateway='stripe',
            gatewayRef=intent['id'],
            currency=intent.get('currency'),
            metadata={"payment_intent": intent['id']}
        )
    elif purpose == 'subscription':
        period_days = int(Config.get(Config.SUBSCRIPTION_PERIOD_DAYS, 30))
        await SubscriptionLifecycleService(session).handleConfirmedPayment(
            userId=user_id,
            amountCents=amount,
            gateway='stripe',
            gatewayRef=f"stripe:{intent['id']}",
            periodEnd=utcnow() + timedelta(days=period_days),
            planId=metadata.get('planId'),
            subscriptionType=metadata.get('subscriptionType') or 'mlm'
        )
    else:
        logger.info(f"Ignoring PaymentIntent {intent['id']} with intent '{purpose}'")


async def stripe_webhook(request: web.Request) -> web.Response:
    payload = await request.read()
    signature = request.headers.get('Stripe-Signature', '')

    try:
        event = request.app[STRIPE_GATEWAY].constructWebhookEvent(payload, signature)
    except StripeGatewayError as e:
        with get_db_session_ctx() as session:
            AuditLogService(session).logUserAction(
                SECURITY_EVENTS.WEBHOOK_SIGNATURE_FAILED,
                'webhook',
                metadata={"provider": "stripe", "error": str(e)},
                ipAddress=get_client_ip(request),
                userAgent=request.headers.get('User-Agent')
            )
        return web.json_response({'error': str(e)}, status=400)

    event_type = event['type']
    intent = event['data']['object']
    logger.info(f"Stripe webhook received: {event_type} ({event['id']})")

    with get_db_session_ctx() as session:
        if event_type == 'payment_intent.succeeded':
            await _handle_payment_succeeded(session, intent)
        elif event_type == 'payment_intent.payment_failed':
            metadata = dict(intent.get('metadata') or {})
            error = intent.get('last_payment_error') or {}
            AuditLogService(session).logUserAction(
                SECURITY_EVENTS.PAYMENT_FAILED,
                'payment',
                intent['id'],
                {
                    "provider": "stripe",
                    "intent": metadata.get('intent'),
                    "message": error.get('message') if error else None,
                },
                userId=metadata.get('userId')
            )
        else:
            logger.debug(f"Unhandled Stripe event type: {event_type}")

    return web.json_response({'received': True})


def setup(app: web.Application) -> None:
    app.router.add_get('/api/admin/wallets/{userId}', get_wallet)
    app.router.add_post('/api/admin/wallets/{userId}/adjust', adjust_wallet)

    app.router.add_post('/api/admin/subscriptions/renewals/run', run_renewals)
    app.router.add_post('/api/admin/subscriptions/{userId}/cancel', cancel_subscription)

    app.router.add_post('/api/admin/orders/{orderId}/recalculate-commissions', recalculate_commissions)
    app.router.add_get('/api/admin/users/{userId}/summary', user_summary)

    app.router.add_post('/api/webhooks/stripe', stripe_webhook)
