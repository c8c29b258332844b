# purvita/admin_api/routes/catalog.py
"""Plan and product management endpoints."""
import logging

from aiohttp import web
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from admin_api.routes.common import read_json, require_permission
from core.db import get_db_session_ctx
from core.utils import iso, utcnow
from schemas.plan import PlanPayload, PlanUpdatePayload
from schemas.product import ProductPayload, ProductUpdatePayload
from services.plan_service import PlanNotFoundError, PlanService, PlanServiceError
from services.product_service import ProductRepository

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# PLANS
# ═══════════════════════════════════════════════════════════════════════════

def _plan_error(request: web.Request, message: str, status: int, **extra) -> web.Response:
    body = {'error': message, 'timestamp': iso(utcnow()), 'path': request.path}
    body.update(extra)
    return web.json_response(body, status=status)


def plan_errors(handler):
    """Plan endpoints answer with {error, timestamp, path} bodies."""

    async def wrapper(request: web.Request) -> web.Response:
        try:
            return await handler(request)
        except ValidationError as e:
            details = [
                {"field": '.'.join(str(part) for part in err['loc']), "message": err['msg']}
                for err in e.errors()
            ]
            return _plan_error(request, 'Invalid plan payload', 400, details=details)
        except PlanNotFoundError as e:
            return _plan_error(request, str(e), 404)
        except OperationalError as e:
            logger.error(f"Plan storage unavailable: {e}")
            return _plan_error(request, 'Service temporarily unavailable', 503)
        except PlanServiceError as e:
            logger.error(f"Plan operation failed: {e}")
            return _plan_error(request, str(e), 500)

    wrapper.__name__ = handler.__name__
    return wrapper


@require_permission('manage_plans')
@plan_errors
async def list_plans(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        plans = await PlanService(session).getAllPlans()
        return web.json_response({'plans': [PlanService.serialize(plan) for plan in plans]})


@require_permission('manage_plans')
@plan_errors
async def create_plan(request: web.Request) -> web.Response:
    payload = PlanPayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        plan = await PlanService(session).createPlan(payload, adminId=request['admin_id'])
        body = {'plan': PlanService.serialize(plan)}

    return web.json_response(body, status=201)


@require_permission('manage_plans')
@plan_errors
async def update_plan(request: web.Request) -> web.Response:
    payload = PlanUpdatePayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        plan = await PlanService(session).updatePlan(
            request.match_info['planId'], payload, adminId=request['admin_id']
        )
        body = {'plan': PlanService.serialize(plan)}

    return web.json_response(body)


@require_permission('manage_plans')
@plan_errors
async def delete_plan(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        await PlanService(session).deletePlan(request.match_info['planId'], adminId=request['admin_id'])

    return web.json_response({'success': True})


# ═══════════════════════════════════════════════════════════════════════════
# PRODUCTS
# ═══════════════════════════════════════════════════════════════════════════

@require_permission('manage_products')
async def list_products(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        repository = ProductRepository(session)
        if request.query.get('featured') in ('1', 'true'):
            products = await repository.listFeatured()
        else:
            products = await repository.list()
        return web.json_response({'products': [ProductRepository.serialize(p) for p in products]})


@require_permission('manage_products')
async def product_stock(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        summary = await ProductRepository(session).getStockSummary()
    return web.json_response(summary)


@require_permission('manage_products')
async def related_products(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        products = await ProductRepository(session).listRelated(request.match_info['slug'])
        return web.json_response({'products': [ProductRepository.serialize(p) for p in products]})


@require_permission('manage_products')
async def create_product(request: web.Request) -> web.Response:
    payload = ProductPayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        product = await ProductRepository(session).create(payload, adminId=request['admin_id'])
        body = {'product': ProductRepository.serialize(product)}

    return web.json_response(body, status=201)


@require_permission('manage_products')
async def update_product(request: web.Request) -> web.Response:
    payload = ProductUpdatePayload.model_validate(await read_json(request))

    with get_db_session_ctx() as session:
        product = await ProductRepository(session).update(
            request.match_info['productId'], payload, adminId=request['admin_id']
        )
        body = {'product': ProductRepository.serialize(product)}

    return web.json_response(body)


@require_permission('manage_products')
async def delete_product(request: web.Request) -> web.Response:
    with get_db_session_ctx() as session:
        await ProductRepository(session).delete(request.match_info['productId'], adminId=request['admin_id'])

    return web.json_response({'success': True})


def setup(app: web.Application) -> None:
    app.router.add_get('/api/admin/plans', list_plans)
    app.router.add_post('/api/admin/plans', create_plan)
    app.router.add_put('/api/admin/plans/{planId}', update_plan)
    app.router.add_delete('/api/admin/plans/{planId}', delete_plan)

    app.router.add_get('/api/admin/products', list_products)
    app.router.add_post('/api/admin/products', create_product)
    app.router.add_get('/api/admin/products/stock', product_stock)
    app.router.add_get('/api/admin/products/{slug}/related', related_products)
    app.router.add_put('/api/admin/products/{productId}', update_product)
    app.router.add_delete('/api/admin/products/{productId}', delete_product)
