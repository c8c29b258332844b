# purvita/admin_dashboard/controller.py
"""
Admin dashboard controller.

Holds the current periods and activity page size, loads metrics through the
gateway and rebuilds the view model. A failed load still yields the empty
view model so the dashboard renders.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from admin_dashboard.event_bus import AdminDashboardEventBus, AdminDashboardEvents, adminDashboardEventBus
from admin_dashboard.gateway import AdminDashboardMetricsHttpGateway
from admin_dashboard.metrics_repository import PERIODS
from admin_dashboard.view_model import buildAdminDashboardViewModel
from services.product_service import ProductEventBus, ProductEvents, productEventBus

logger = logging.getLogger(__name__)

PAGE_SIZE = 5


class AdminDashboardController:

    def __init__(
            self,
            gateway: AdminDashboardMetricsHttpGateway,
            lang: str = 'en',
            eventBus: Optional[AdminDashboardEventBus] = None,
            productBus: Optional[ProductEventBus] = None
    ):
        self.gateway = gateway
        self.lang = lang if lang in ('en', 'es') else 'en'
        self.eventBus = eventBus or adminDashboardEventBus
        self.productBus = productBus or productEventBus

        self.productsPeriod = 'all'
        self.activityPeriod = 'all'
        self.activityLimit = PAGE_SIZE

        self.data: Optional[Dict[str, Any]] = None
        self.error: Optional[str] = None
        self.loading = False
        self.viewModel: Dict[str, Any] = buildAdminDashboardViewModel(self.lang, None)

        self._unsubscribers: List[Callable[[], None]] = []

    # ═══════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════

    def start(self) -> None:
        """Reload whenever the product catalog changes."""
        if self._unsubscribers:
            return
        self._unsubscribers.append(self.productBus.subscribe(self._onProductEvent))

    def stop(self) -> None:
        while self._unsubscribers:
            self._unsubscribers.pop()()

    async def _onProductEvent(self, event: Dict[str, Any]) -> None:
        if event.get('type') in (ProductEvents.CREATED, ProductEvents.UPDATED, ProductEvents.DELETED):
            await self.refresh()

    # ═══════════════════════════════════════════════════════════════════
    # LOADING
    # ═══════════════════════════════════════════════════════════════════

    async def load(self) -> Dict[str, Any]:
        self.loading = True
        try:
            self.data = await self.gateway.getMetrics(
                self.productsPeriod,
                self.activityPeriod,
                self.activityLimit
            )
            self.error = None
            self.viewModel = buildAdminDashboardViewModel(self.lang, self.data)
            await self.eventBus.emit(AdminDashboardEvents.LOADED, {"activityLimit": self.activityLimit})

        except Exception as e:
            logger.error(f"Failed to load admin dashboard: {e}")
            self.error = str(e)
            self.data = None
            self.viewModel = buildAdminDashboardViewModel(self.lang, None)
            await self.eventBus.emit(AdminDashboardEvents.FAILED, {"error": self.error})

        finally:
            self.loading = False

        return self.viewModel

    async def refresh(self) -> Dict[str, Any]:
        await self.eventBus.emit(AdminDashboardEvents.REFRESH_REQUESTED)
        return await self.load()

    async def setProductsPeriod(self, period: str) -> Dict[str, Any]:
        return await self._setPeriod('productsPeriod', period)

    async def setActivityPeriod(self, period: str) -> Dict[str, Any]:
        return await self._setPeriod('activityPeriod', period)

    async def _setPeriod(self, attribute: str, period: str) -> Dict[str, Any]:
        if period not in PERIODS:
            raise ValueError(f"Unknown period: {period}")

        setattr(self, attribute, period)
        await self.eventBus.emit(AdminDashboardEvents.PERIOD_CHANGED, {attribute: period})
        return await self.load()

    @property
    def canLoadMoreActivities(self) -> bool:
        if not self.data:
            return False
        return len(self.data.get('recentAuditLogs') or []) >= self.activityLimit

    async def loadMoreActivities(self) -> Dict[str, Any]:
        """Grow the activity page by PAGE_SIZE, no-op while loading or exhausted."""
        if self.loading or not self.canLoadMoreActivities:
            return self.viewModel

        self.activityLimit += PAGE_SIZE
        return await self.load()
