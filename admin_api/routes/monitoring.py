# purvita/admin_api/routes/monitoring.py
"""Health, CSRF token, dashboard metrics and audit log endpoints."""
import logging

from aiohttp import web

from admin_api.routes.common import require_permission
from admin_api.server import CSRF, STATS
from admin_dashboard.metrics_repository import PERIODS, RECENT_LIMIT, AdminDashboardMetricsRepository
from core.db import get_db_session_ctx
from core.utils import iso, utcnow
from schemas.audit_log import AuditLogQuery
from services.audit_log_service import SECURITY_EVENTS, AuditLogService

logger = logging.getLogger(__name__)

MAX_RECENT_LIMIT = 50


async def health(request: web.Request) -> web.Response:
    return web.json_response({
        'status': 'ok',
        'timestamp': iso(utcnow()),
        'requests_total': request.app[STATS]['requests'],
        'errors_total': request.app[STATS]['errors'],
    })


async def csrf_token(request: web.Request) -> web.Response:
    token = request.app[CSRF].generate_token(request['admin_id'])
    return web.json_response({'csrfToken': token, 'expiresIn': request.app[CSRF].ttl})


def _period(request: web.Request, name: str) -> str:
    value = request.query.get(name) or 'all'
    if value not in PERIODS:
        raise web.HTTPBadRequest(reason=f"Invalid {name}: {value}")
    return value


@require_permission('view_dashboard')
async def dashboard_metrics(request: web.Request) -> web.Response:
    products_period = _period(request, 'productsPeriod')
    activity_period = _period(request, 'activityPeriod')

    try:
        recent_limit = int(request.query.get('recentLimit') or RECENT_LIMIT)
    except ValueError:
        raise web.HTTPBadRequest(reason='Invalid recentLimit')
    recent_limit = max(1, min(recent_limit, MAX_RECENT_LIMIT))

    with get_db_session_ctx() as session:
        metrics = await AdminDashboardMetricsRepository(session).fetchMetrics(
            productsPeriod=products_period,
            activityPeriod=activity_period,
            recentLimit=recent_limit
        )

        AuditLogService(session).logUserAction(
            SECURITY_EVENTS.ADMIN_ACCESS,
            'dashboard_metrics',
            metadata={
                "totalUsers": metrics.totalUsers,
                "totalRevenueCents": metrics.totalSubscriptionRevenueCents + metrics.totalOrderRevenueCents,
                "productsPeriod": products_period,
                "activityPeriod": activity_period,
            },
            userId=request['admin_id']
        )

    return web.json_response(metrics.model_dump())


@require_permission('view_audit_logs')
async def audit_logs(request: web.Request) -> web.Response:
    query = AuditLogQuery.model_validate(dict(request.query))

    with get_db_session_ctx() as session:
        result = AuditLogService(session).queryAuditLogs(
            page=query.page,
            limit=query.limit,
            action=query.action,
            entityType=query.entity_type,
            userId=query.user_id,
            search=query.search,
            startDate=query.start_date,
            endDate=query.end_date
        )

    return web.json_response(result)


def setup(app: web.Application) -> None:
    app.router.add_get('/api/health', health)
    app.router.add_get('/api/admin/csrf-token', csrf_token)
    app.router.add_get('/api/admin/dashboard/metrics', dashboard_metrics)
    app.router.add_get('/api/admin/audit-logs', audit_logs)
