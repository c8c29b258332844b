# purvita/admin_api/server.py
"""
Admin API server (aiohttp).

Middleware order: errors → security (rate limit, auth, CSRF) → handler.
"""
import json
import logging
from typing import Optional

from aiohttp import web
from pydantic import ValidationError

from admin_api.security import (
    CSRF_HEADER,
    UNSAFE_METHODS,
    CsrfProtector,
    RateLimiter,
    extract_bearer_token,
    get_client_ip,
    resolve_token_user,
)
from config import Config
from core.db import get_db_session_ctx
from models.profile import Profile
from multilevel.errors import CommissionError, SubscriptionError, WalletError, WalletNotFoundError
from payments.stripe_gateway import StripeGateway
from services.admin_note_service import AdminNoteError, AdminNoteNotFoundError
from services.audit_log_service import SECURITY_EVENTS, AuditLogService
from services.phase_level_service import PhaseLevelNotFoundError
from services.product_service import ProductError, ProductNotFoundError
from services.site_content.service import UnsupportedLocaleError

logger = logging.getLogger(__name__)

ADMIN_PREFIX = '/api/admin/'
PUBLIC_PATHS = frozenset({'/api/health'})
WEBHOOK_PREFIX = '/api/webhooks/'
MAX_BODY_SIZE = 1024 * 1024

RATE_LIMITER = web.AppKey('rate_limiter', RateLimiter)
CSRF = web.AppKey('csrf', CsrfProtector)
STRIPE_GATEWAY = web.AppKey('stripe_gateway', StripeGateway)
STATS = web.AppKey('stats', dict)

NOT_FOUND_ERRORS = (
    ProductNotFoundError,
    AdminNoteNotFoundError,
    PhaseLevelNotFoundError,
    WalletNotFoundError,
)
BAD_REQUEST_ERRORS = (
    ProductError,
    AdminNoteError,
    UnsupportedLocaleError,
    WalletError,
    SubscriptionError,
    CommissionError,
)


def _validation_details(error: ValidationError):
    return [
        {"field": '.'.join(str(part) for part in err.get('loc', ())), "message": err.get('msg')}
        for err in error.errors()
    ]


def _record_security_event(action: str, request: web.Request, metadata: dict) -> None:
    with get_db_session_ctx() as session:
        AuditLogService(session).logUserAction(
            action,
            'security',
            metadata=metadata,
            ipAddress=get_client_ip(request),
            userAgent=request.headers.get('User-Agent'),
            userId=request.get('admin_id')
        )


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Translate exceptions into JSON error bodies."""
    try:
        return await handler(request)

    except web.HTTPException as e:
        if e.status < 400:
            raise
        return web.json_response({'error': e.reason}, status=e.status)

    except ValidationError as e:
        return web.json_response(
            {'error': 'Invalid request', 'details': _validation_details(e)},
            status=400
        )

    except json.JSONDecodeError:
        return web.json_response({'error': 'Invalid JSON'}, status=400)

    except NOT_FOUND_ERRORS as e:
        return web.json_response({'error': str(e)}, status=404)

    except BAD_REQUEST_ERRORS as e:
        return web.json_response({'error': str(e)}, status=400)

    except Exception as e:
        logger.error(f"Error processing {request.method} {request.path}: {e}", exc_info=True)
        request.app[STATS]['errors'] += 1
        return web.json_response({'error': 'Internal Server Error'}, status=500)


@web.middleware
async def security_middleware(request: web.Request, handler):
    client_ip = get_client_ip(request)
    request.app[STATS]['requests'] += 1
    logger.info(f"Request from {client_ip}: {request.method} {request.path}")

    if request.path in PUBLIC_PATHS:
        return await handler(request)

    if not request.app[RATE_LIMITER].is_allowed(client_ip):
        logger.warning(f"Rate limit exceeded for IP: {client_ip}")
        _record_security_event(SECURITY_EVENTS.RATE_LIMIT_EXCEEDED, request, {"path": request.path})
        return web.json_response({'error': 'Too Many Requests'}, status=429)

    if request.content_length and request.content_length > MAX_BODY_SIZE:
        return web.json_response({'error': 'Request too large'}, status=413)

    if request.path.startswith(WEBHOOK_PREFIX):
        # Webhooks authenticate by signature inside the handler
        return await handler(request)

    if not request.path.startswith(ADMIN_PREFIX):
        return await handler(request)

    user_id = resolve_token_user(extract_bearer_token(request))
    if user_id is None:
        logger.warning(f"Unauthenticated admin request from {client_ip}: {request.path}")
        _record_security_event(
            SECURITY_EVENTS.UNAUTHORIZED_ACCESS_ATTEMPT, request, {"path": request.path, "reason": "token"}
        )
        return web.json_response({'error': 'Unauthorized'}, status=401)

    with get_db_session_ctx() as session:
        profile = session.query(Profile).filter_by(userID=user_id).first()

    if profile is None or not profile.isAdmin:
        _record_security_event(
            SECURITY_EVENTS.UNAUTHORIZED_ACCESS_ATTEMPT, request, {"path": request.path, "reason": "role"}
        )
        return web.json_response({'error': 'Forbidden'}, status=403)

    request['admin'] = profile
    request['admin_id'] = profile.userID

    if request.method in UNSAFE_METHODS:
        token = request.headers.get(CSRF_HEADER)
        if not request.app[CSRF].validate_token(token, profile.userID):
            logger.warning(f"CSRF validation failed for {profile.userID}: {request.method} {request.path}")
            _record_security_event(SECURITY_EVENTS.CSRF_VALIDATION_FAILED, request, {"path": request.path})
            return web.json_response({'error': 'Invalid CSRF token'}, status=403)

    return await handler(request)


def create_app(
        rate_limiter: Optional[RateLimiter] = None,
        csrf: Optional[CsrfProtector] = None,
        stripe_gateway: Optional[StripeGateway] = None
) -> web.Application:
    """Build the admin API application."""
    from admin_api.routes import setup_routes

    app = web.Application(
        middlewares=[error_middleware, security_middleware],
        client_max_size=MAX_BODY_SIZE
    )

    app[RATE_LIMITER] = rate_limiter or RateLimiter(
        max_requests=int(Config.get(Config.API_RATE_LIMIT_REQUESTS, 120)),
        time_window=int(Config.get(Config.API_RATE_LIMIT_WINDOW, 60))
    )
    app[CSRF] = csrf or CsrfProtector()
    app[STRIPE_GATEWAY] = stripe_gateway or StripeGateway()
    app[STATS] = {'requests': 0, 'errors': 0}

    setup_routes(app)
    return app


class AdminApiServer:
    """Runs the admin API application on AppRunner/TCPSite."""

    def __init__(self, app: Optional[web.Application] = None):
        self.app = app or create_app()
        self.runner: Optional[web.AppRunner] = None

    @property
    def rate_limiter(self) -> RateLimiter:
        return self.app[RATE_LIMITER]

    async def start(self, host: Optional[str] = None, port: Optional[int] = None) -> web.AppRunner:
        host = host or Config.get(Config.API_HOST, '127.0.0.1')
        port = int(port or Config.get(Config.API_PORT, 8080))

        if host == '0.0.0.0':
            logger.warning("⚠️ Admin API listening on all interfaces!")

        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, host, port)
        await site.start()

        logger.info(f"🔒 Admin API server started on {host}:{port}")
        return self.runner

    async def stop(self) -> None:
        if self.runner is not None:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Admin API server stopped")
