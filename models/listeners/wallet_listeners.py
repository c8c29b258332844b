# purvita/models/listeners/wallet_listeners.py
"""
Wallet Event Listeners - keep Wallet.balanceCents equal to the journal.

Architecture:
    WalletTransaction (INSERT/UPDATE/DELETE) → Wallet.balanceCents = SUM(deltaCents)

All balance changes go through wallet_txns. Setting Wallet.balanceCents
directly is logged as a violation.
"""
import logging
import traceback

from sqlalchemy import event, func, select

logger = logging.getLogger(__name__)


def register_wallet_listeners():
    """
    Register event listeners for wallet balance synchronization.

    Called once during application startup from models/listeners/__init__.py
    """
    from models.wallet import Wallet, WalletTransaction

    txns = WalletTransaction.__table__
    wallets = Wallet.__table__

    def recalc_wallet_balance(mapper, connection, target):
        """
        Full recalculation of Wallet.balanceCents from journal.

        Formula: Wallet.balanceCents = SUM(WalletTransaction.deltaCents) WHERE userID=X
        """
        real_balance = connection.execute(
            select(func.coalesce(func.sum(txns.c.deltaCents), 0))
            .where(txns.c.userID == target.userID)
        ).scalar()

        # Overwrite, never increment
        result = connection.execute(
            wallets.update()
            .where(wallets.c.userID == target.userID)
            .values(balanceCents=real_balance)
        )

        if result.rowcount == 0:
            connection.execute(
                wallets.insert().values(userID=target.userID, balanceCents=real_balance)
            )

        logger.info(
            f"Wallet RECALC: user={target.userID}, "
            f"new_balance={real_balance}, trigger={target.reason}"
        )

    event.listen(WalletTransaction, 'after_insert', recalc_wallet_balance)
    event.listen(WalletTransaction, 'after_update', recalc_wallet_balance)
    event.listen(WalletTransaction, 'after_delete', recalc_wallet_balance)


def register_wallet_protection():
    """Log warnings when Wallet.balanceCents is modified directly."""
    from models.wallet import Wallet

    @event.listens_for(Wallet.balanceCents, 'set')
    def warn_direct_balance_set(target, value, oldvalue, initiator):
        if oldvalue is not None and isinstance(oldvalue, int) and value != oldvalue:
            stack = ''.join(traceback.format_stack()[-5:-1])

            logger.warning(
                f"DIRECT balanceCents modification detected! "
                f"user={target.userID}, {oldvalue} → {value}\n"
                f"Stack:\n{stack}"
            )
