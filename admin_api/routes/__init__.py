# purvita/admin_api/routes/__init__.py
from aiohttp import web

from admin_api.routes import catalog, content, finance, monitoring


def setup_routes(app: web.Application) -> None:
    """Register every admin API route group."""
    monitoring.setup(app)
    catalog.setup(app)
    content.setup(app)
    finance.setup(app)
