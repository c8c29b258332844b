# purvita/multilevel/errors.py
"""
Domain errors raised by the multilevel services.
"""


class WalletError(Exception):
    """Base class for wallet failures."""
    pass


class InsufficientBalanceError(WalletError):
    def __init__(self, message: str = "Insufficient wallet balance"):
        super().__init__(message)


class WalletNotFoundError(WalletError):
    def __init__(self, user_id: str):
        super().__init__(f"Wallet not found for user {user_id}")
        self.user_id = user_id


class InvalidAmountError(WalletError):
    def __init__(self, message: str = "Amount must be greater than zero"):
        super().__init__(message)


class MissingGatewayReferenceError(WalletError):
    def __init__(self, message: str = "Missing gateway reference"):
        super().__init__(message)


class CommissionError(Exception):
    """Raised when commissions cannot be (re)calculated for an order."""
    pass


class SubscriptionError(Exception):
    """Raised on invalid subscription lifecycle requests."""
    pass
