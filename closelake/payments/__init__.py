"""Payment rail capability and the in-memory wallet implementation."""

from closelake.payments.rail import (
    InsufficientFundsError,
    PaymentError,
    PaymentRail,
    WalletRail,
)

__all__ = ["PaymentRail", "WalletRail", "PaymentError", "InsufficientFundsError"]
