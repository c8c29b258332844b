# tests/test_renewal_scheduler.py
"""
Tests for the renewal scheduler jobs and the service manager lifecycle.
"""
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from admin_api.security import RateLimiter
from admin_api.server import STRIPE_GATEWAY, AdminApiServer
from background.renewal_scheduler import RenewalScheduler
from config import Config
from core.system_services import ServiceManager

SUMMARY = {"totalProcessed": 3, "successful": 2, "failed": 1, "results": []}


@pytest.fixture
def renewal_service():
    """Patched SubscriptionRenewalService returning a fixed summary."""
    with patch('background.renewal_scheduler.SubscriptionRenewalService') as service_cls:
        service_cls.return_value.processRenewals = AsyncMock(return_value=SUMMARY)
        yield service_cls


# =============================================================================
# SCHEDULER
# =============================================================================

class TestRenewalScheduler:

    async def test_jobs_registered(self):
        Config.set(Config.RENEWAL_CRON_HOUR, 4)
        scheduler = RenewalScheduler(rateLimiter=RateLimiter())

        await scheduler.start()
        try:
            jobs = {job.id: job for job in scheduler.scheduler.get_jobs()}
            assert set(jobs) == {'subscription_renewals', 'rate_limiter_cleanup'}
            assert jobs['subscription_renewals'].name == 'Subscription Renewals (04:00 UTC)'
            assert scheduler.getStats()["isRunning"] is True
        finally:
            await scheduler.stop()

        assert scheduler.isRunning is False

    async def test_no_cleanup_job_without_limiter(self):
        scheduler = RenewalScheduler()

        await scheduler.start()
        await scheduler.start()
        try:
            assert [job.id for job in scheduler.scheduler.get_jobs()] == ['subscription_renewals']
        finally:
            await scheduler.stop()

    async def test_run_renewals(self, renewal_service):
        """
        TEST: Renewal job runs with the configured window.

        Verify: Gateway passed through, summary counts kept in stats.
        """
        gateway = MagicMock()
        Config.set(Config.RENEWAL_DAYS_BEFORE_EXPIRY, 2)
        scheduler = RenewalScheduler(stripeGateway=gateway)

        summary = await scheduler.runRenewals()

        assert summary is SUMMARY
        assert renewal_service.call_args.kwargs == {"stripeGateway": gateway}
        renewal_service.return_value.processRenewals.assert_awaited_once_with(2)

        stats = scheduler.getStats()
        assert stats["tasksExecuted"] == 1
        assert stats["lastRenewalSummary"] == {"totalProcessed": 3, "successful": 2, "failed": 1}
        assert stats["lastExecutedAt"] is not None

    async def test_wrapper_records_errors(self, renewal_service):
        renewal_service.return_value.processRenewals.side_effect = RuntimeError("db down")
        scheduler = RenewalScheduler()

        await scheduler._safe_renewals_wrapper()

        stats = scheduler.getStats()
        assert stats["errors"] == 1
        assert stats["lastError"] == 'db down'
        assert stats["tasksExecuted"] == 0

    def test_cleanup_rate_limiter(self):
        limiter = RateLimiter(time_window=60)
        limiter.requests['idle'] = [datetime.now() - timedelta(minutes=5)]
        scheduler = RenewalScheduler(rateLimiter=limiter)

        assert scheduler.cleanupRateLimiter() == 1
        assert scheduler.cleanupRateLimiter() == 0
        assert scheduler.getStats()["rateLimiterEntriesRemoved"] == 1

    def test_cleanup_without_limiter(self):
        assert RenewalScheduler().cleanupRateLimiter() == 0

    async def test_cleanup_wrapper_records_errors(self):
        limiter = MagicMock(spec=RateLimiter)
        limiter.cleanup.side_effect = RuntimeError("broken")
        scheduler = RenewalScheduler(rateLimiter=limiter)

        await scheduler._safe_cleanup_wrapper()

        assert scheduler.getStats()["errors"] == 1


# =============================================================================
# SERVICE MANAGER
# =============================================================================

class TestServiceManager:

    @pytest.fixture
    def api_server(self):
        server = MagicMock(spec=AdminApiServer)
        server.start = AsyncMock()
        server.stop = AsyncMock()
        server.rate_limiter = RateLimiter()
        server.app = {STRIPE_GATEWAY: MagicMock()}
        server.runner = MagicMock()
        return server

    async def test_start_and_stop(self, api_server):
        with patch('background.renewal_scheduler.RenewalScheduler') as scheduler_cls:
            scheduler = scheduler_cls.return_value
            scheduler.start = AsyncMock()
            scheduler.stop = AsyncMock()
            scheduler.getStats.return_value = {"isRunning": True}

            manager = ServiceManager(apiServer=api_server)
            await manager.start_services()

            api_server.start.assert_awaited_once()
            assert scheduler_cls.call_args.kwargs == {
                "rateLimiter": api_server.rate_limiter,
                "stripeGateway": api_server.app[STRIPE_GATEWAY],
            }
            assert manager.get_status() == {"apiServer": True, "scheduler": {"isRunning": True}}

            await manager.stop_services()

        scheduler.stop.assert_awaited_once()
        api_server.stop.assert_awaited_once()

    def test_status_before_start(self):
        assert ServiceManager().get_status() == {"apiServer": False, "scheduler": None}

    async def test_shutdown_signal(self):
        manager = ServiceManager()

        manager.signal_shutdown()

        await manager.wait_for_shutdown()
