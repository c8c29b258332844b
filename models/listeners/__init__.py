# purvita/models/listeners/__init__.py
"""
SQLAlchemy Event Listeners Package.

Registers all event listeners for the application.
Import this module once during app startup to activate listeners.

Listeners:
    - wallet_listeners: Sync Wallet.balanceCents on journal changes
"""
import logging

logger = logging.getLogger(__name__)

_listeners_registered = False


def register_all_listeners():
    """
    Register all event listeners.

    Safe to call multiple times - listeners are registered only once.
    """
    global _listeners_registered

    if _listeners_registered:
        logger.debug("Listeners already registered, skipping")
        return

    from models.listeners.wallet_listeners import (
        register_wallet_listeners,
        register_wallet_protection
    )

    register_wallet_listeners()
    logger.info("Wallet sync listeners registered (WalletTransaction)")

    register_wallet_protection()
    logger.info("Wallet protection listener registered (direct modification warnings)")

    _listeners_registered = True
    logger.info("All event listeners registered successfully")
