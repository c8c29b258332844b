# purvita/core/system_services.py
"""
System services management for the PūrVita admin backend.
Handles service lifecycle, graceful shutdown, and resource initialization.
"""
import asyncio
import logging
import signal
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ServiceManager:
    """
    Owns the admin API server and the renewal scheduler.
    Handles their lifecycle and graceful shutdown.
    """

    def __init__(self, apiServer: Optional['AdminApiServer'] = None):
        self.apiServer = apiServer
        self.renewalScheduler: Optional['RenewalScheduler'] = None
        self._shutdown_event = asyncio.Event()

    async def start_services(self) -> None:
        """
        Start the API server and background scheduler.

        Services to start:
        - Admin API server (aiohttp)
        - Renewal scheduler (APScheduler)
        """
        logger.info("=" * 60)
        logger.info("STARTING SERVICES")
        logger.info("=" * 60)

        # ═══════════════════════════════════════════════════════════════
        # SERVICE 1: Admin API server
        # ═══════════════════════════════════════════════════════════════
        from admin_api.server import STRIPE_GATEWAY, AdminApiServer

        if self.apiServer is None:
            self.apiServer = AdminApiServer()
        await self.apiServer.start()
        logger.info("✓ Admin API server started")

        # ═══════════════════════════════════════════════════════════════
        # SERVICE 2: Renewal scheduler
        # ═══════════════════════════════════════════════════════════════
        from background.renewal_scheduler import RenewalScheduler

        self.renewalScheduler = RenewalScheduler(
            rateLimiter=self.apiServer.rate_limiter,
            stripeGateway=self.apiServer.app[STRIPE_GATEWAY]
        )
        await self.renewalScheduler.start()
        logger.info("✓ Renewal scheduler started")

        logger.info("=" * 60)
        logger.info("✅ ALL SERVICES STARTED")
        logger.info("=" * 60)

    async def stop_services(self) -> None:
        """Stop all services gracefully."""
        logger.info("=" * 60)
        logger.info("STOPPING SERVICES")
        logger.info("=" * 60)

        if self.renewalScheduler:
            logger.info("Stopping renewal scheduler...")
            await self.renewalScheduler.stop()

        if self.apiServer:
            logger.info("Stopping admin API server...")
            await self.apiServer.stop()

        logger.info("=" * 60)
        logger.info("✅ ALL SERVICES STOPPED")
        logger.info("=" * 60)

    def get_status(self) -> Dict[str, Any]:
        return {
            "apiServer": bool(self.apiServer and self.apiServer.runner),
            "scheduler": self.renewalScheduler.getStats() if self.renewalScheduler else None,
        }

    def signal_shutdown(self) -> None:
        """Signal that shutdown has been requested."""
        self._shutdown_event.set()

    async def wait_for_shutdown(self) -> None:
        """Wait for shutdown signal."""
        await self._shutdown_event.wait()


# ═══════════════════════════════════════════════════════════════════════════
# GRACEFUL SHUTDOWN
# ═══════════════════════════════════════════════════════════════════════════

def setup_signal_handlers(loop: asyncio.AbstractEventLoop, service_manager: ServiceManager) -> None:
    """
    Route SIGINT/SIGTERM to the service manager's shutdown event.

    Args:
        loop: Running event loop
        service_manager: Manager to signal
    """

    def handle(sig: signal.Signals) -> None:
        logger.info(f"Received exit signal {sig.name}...")
        service_manager.signal_shutdown()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle, sig)
        except NotImplementedError:
            # Signal handlers not available on Windows
            logger.warning(f"Signal handler for {sig} not available on this platform")


__all__ = [
    'ServiceManager',
    'setup_signal_handlers',
]
