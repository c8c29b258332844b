# purvita/admin_api/routes/common.py
"""Shared helpers for admin API handlers."""
import functools
import json
import logging
from typing import Any, Dict

from aiohttp import web

logger = logging.getLogger(__name__)


def require_permission(permission: str):
    """
    Handler decorator: the authenticated admin must hold `permission`.

    Usage:
        @require_permission('manage_products')
        async def list_products(request): ...
    """

    def decorator(handler):
        @functools.wraps(handler)
        async def wrapper(request: web.Request):
            admin = request.get('admin')
            if admin is None or not admin.hasPermission(permission):
                logger.warning(
                    f"Permission '{permission}' denied for {request.get('admin_id')} on {request.path}"
                )
                return web.json_response({'error': 'Forbidden'}, status=403)
            return await handler(request)

        return wrapper

    return decorator


async def read_json(request: web.Request) -> Dict[str, Any]:
    """
    Request body as a JSON object.

    Raises:
        json.JSONDecodeError: Body is not valid JSON
        web.HTTPBadRequest: Body is valid JSON but not an object
    """
    body = await request.text()
    data = json.loads(body) if body.strip() else {}
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(reason='JSON object expected')
    return data
