# purvita/app.py
"""
PūrVita admin backend - main entry point.
Admin API, subscription renewals and multilevel commissions.
"""
import asyncio
import logging
import sys

from config import Config
from core.db import setup_database
from core.di import register_service
from core.system_services import ServiceManager, setup_signal_handlers

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('purvita.log')
    ]
)

logger = logging.getLogger(__name__)


async def initialize_app() -> ServiceManager:
    """
    Initialize configuration, storage and services.

    Returns:
        ServiceManager: Started service manager
    """
    try:
        logger.info("=" * 60)
        logger.info("PURVITA ADMIN BACKEND INITIALIZATION")
        logger.info("=" * 60)

        # ═══════════════════════════════════════════════════════════════════════
        # STEP 1: Load configuration from .env
        # ═══════════════════════════════════════════════════════════════════════
        logger.info("📋 Loading configuration from .env...")
        Config.initialize_from_env()
        logger.info("✓ Configuration loaded")

        # ═══════════════════════════════════════════════════════════════════════
        # STEP 2: Validate critical configuration
        # ═══════════════════════════════════════════════════════════════════════
        logger.info("🔍 Validating critical configuration keys...")
        await Config.validate_critical_keys()
        logger.info("✓ Configuration validated")

        # ═══════════════════════════════════════════════════════════════════════
        # STEP 3: Setup database and model listeners
        # ═══════════════════════════════════════════════════════════════════════
        logger.info("💾 Setting up database...")
        setup_database()

        from models.listeners import register_all_listeners
        register_all_listeners()
        logger.info("✓ Database ready")

        # ═══════════════════════════════════════════════════════════════════════
        # STEP 4: Initialize EmailService
        # ═══════════════════════════════════════════════════════════════════════
        logger.info("📧 Initializing email service...")
        from email_system import EmailService
        email_service = EmailService()
        await email_service.initialize()
        register_service(EmailService, email_service)
        logger.info("✓ EmailService initialized and registered")

        # ═══════════════════════════════════════════════════════════════════════
        # STEP 5: Subscription event handlers
        # ═══════════════════════════════════════════════════════════════════════
        logger.info("🎲 Setting up subscription event handlers...")
        from multilevel.events.setup import setup_subscription_event_handlers
        setup_subscription_event_handlers()
        logger.info("✓ Subscription event handlers registered")

        # ═══════════════════════════════════════════════════════════════════════
        # STEP 6: Start services
        # ═══════════════════════════════════════════════════════════════════════
        logger.info("🚀 Starting services...")
        service_manager = ServiceManager()
        register_service(ServiceManager, service_manager)
        await service_manager.start_services()

        Config.set(Config.SYSTEM_READY, True)

        logger.info("=" * 60)
        logger.info("✅ INITIALIZATION COMPLETE")
        logger.info("=" * 60)

        return service_manager

    except Exception as e:
        logger.critical(f"❌ Initialization failed: {e}", exc_info=True)
        raise


async def main():
    """Main entry point."""
    service_manager = None
    try:
        service_manager = await initialize_app()

        setup_signal_handlers(asyncio.get_running_loop(), service_manager)
        await service_manager.wait_for_shutdown()

    except Exception as e:
        logger.critical(f"❌ Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        if service_manager is not None:
            await service_manager.stop_services()
        logger.info("👋 Shutdown complete")


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == '__main__':
    run()
