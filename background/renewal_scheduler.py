# purvita/background/renewal_scheduler.py
"""
Renewal scheduler - daily subscription renewals and API housekeeping.
Uses APScheduler for task scheduling.
"""
import logging
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from admin_api.security import RateLimiter
from config import Config
from core.db import get_db_session_ctx
from core.utils import utcnow
from multilevel.services.subscription_renewal_service import SubscriptionRenewalService
from payments.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)

RATE_LIMITER_CLEANUP_SECONDS = 300


class RenewalScheduler:
    """
    Background scheduler for subscription renewals.

    Jobs:
    - Subscription renewals: daily at RENEWAL_CRON_HOUR:00 UTC
    - Rate limiter cleanup: every 5 minutes (when a limiter is given)
    """

    def __init__(
            self,
            rateLimiter: Optional[RateLimiter] = None,
            stripeGateway: Optional[StripeGateway] = None
    ):
        self.rateLimiter = rateLimiter
        self.stripeGateway = stripeGateway
        self.isRunning = False

        self.scheduler = AsyncIOScheduler(
            timezone='UTC',
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': 3600
            }
        )

        self.stats: Dict[str, Any] = {
            "tasksExecuted": 0,
            "errors": 0,
            "lastError": None,
            "startedAt": None,
            "lastExecutedAt": None,
            "lastRenewalSummary": None,
            "rateLimiterEntriesRemoved": 0,
        }

    async def start(self) -> None:
        if self.isRunning:
            logger.warning("Renewal scheduler already running")
            return

        logger.info("=" * 60)
        logger.info("Starting renewal scheduler with APScheduler")
        logger.info("=" * 60)

        self.isRunning = True
        self.stats["startedAt"] = utcnow()

        cron_hour = int(Config.get(Config.RENEWAL_CRON_HOUR, 3))

        # ═══════════════════════════════════════════════════════════════
        # JOB 1: Subscription renewals (daily)
        # ═══════════════════════════════════════════════════════════════
        self.scheduler.add_job(
            func=self._safe_renewals_wrapper,
            trigger=CronTrigger(hour=cron_hour, minute=0),
            id='subscription_renewals',
            name=f'Subscription Renewals ({cron_hour:02d}:00 UTC)',
            replace_existing=True
        )
        logger.info(f"✓ Job registered: Subscription Renewals ({cron_hour:02d}:00 UTC)")

        # ═══════════════════════════════════════════════════════════════
        # JOB 2: Rate limiter cleanup
        # ═══════════════════════════════════════════════════════════════
        if self.rateLimiter is not None:
            self.scheduler.add_job(
                func=self._safe_cleanup_wrapper,
                trigger=IntervalTrigger(seconds=RATE_LIMITER_CLEANUP_SECONDS),
                id='rate_limiter_cleanup',
                name='Rate Limiter Cleanup',
                replace_existing=True
            )
            logger.info(f"✓ Job registered: Rate Limiter Cleanup (every {RATE_LIMITER_CLEANUP_SECONDS}s)")

        self.scheduler.start()

        logger.info(f"✅ Renewal scheduler started, active jobs: {len(self.scheduler.get_jobs())}")
        logger.info("=" * 60)

    async def stop(self) -> None:
        if not self.isRunning:
            return

        logger.info("Stopping renewal scheduler...")
        self.isRunning = False

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        logger.info("✓ Renewal scheduler stopped")

    # ═══════════════════════════════════════════════════════════════════
    # SAFE WRAPPERS
    # ═══════════════════════════════════════════════════════════════════

    def _recordError(self, job: str, error: Exception) -> None:
        logger.error(f"Error in {job} job: {error}", exc_info=True)
        self.stats["errors"] += 1
        self.stats["lastError"] = str(error)

    async def _safe_renewals_wrapper(self) -> None:
        try:
            await self.runRenewals()
        except Exception as e:
            self._recordError('subscription renewals', e)

    async def _safe_cleanup_wrapper(self) -> None:
        try:
            self.cleanupRateLimiter()
        except Exception as e:
            self._recordError('rate limiter cleanup', e)

    # ═══════════════════════════════════════════════════════════════════
    # JOBS
    # ═══════════════════════════════════════════════════════════════════

    async def runRenewals(self) -> Dict[str, Any]:
        days = int(Config.get(Config.RENEWAL_DAYS_BEFORE_EXPIRY, 1))

        with get_db_session_ctx() as session:
            service = SubscriptionRenewalService(session, stripeGateway=self.stripeGateway)
            summary = await service.processRenewals(days)

        self.stats["tasksExecuted"] += 1
        self.stats["lastExecutedAt"] = utcnow()
        self.stats["lastRenewalSummary"] = {
            "totalProcessed": summary["totalProcessed"],
            "successful": summary["successful"],
            "failed": summary["failed"],
        }
        return summary

    def cleanupRateLimiter(self) -> int:
        if self.rateLimiter is None:
            return 0

        removed = self.rateLimiter.cleanup()
        self.stats["rateLimiterEntriesRemoved"] += removed
        if removed:
            logger.debug(f"Rate limiter cleanup removed {removed} idle clients")
        return removed

    def getStats(self) -> Dict[str, Any]:
        return {**self.stats, "isRunning": self.isRunning}
