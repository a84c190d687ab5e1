"""Payment rail capability — moving money into and out of the marketplace.

A purchase carries a payment, which the marketplace collects into its
custody before crediting the seller.  A withdrawal pays proceeds out of
custody.  Both report failure by raising ``PaymentError``.

``WalletRail`` keeps account balances in memory.  Payout hooks run after
funds have moved and before ``payout`` returns, which is where a receiving
contract would get control; a hook that raises reverses the payout.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

PayoutHook = Callable[[str, int], None]


class PaymentError(RuntimeError):
    """Raised when a payment cannot be collected or paid out."""


class InsufficientFundsError(PaymentError):
    """Raised when a balance does not cover the requested amount."""


@runtime_checkable
class PaymentRail(Protocol):
    """Collects payments into marketplace custody and pays them out."""

    def collect(self, account: str, amount: int) -> None:
        """Move *amount* from *account* into marketplace custody."""
        ...

    def payout(self, account: str, amount: int) -> None:
        """Move *amount* from marketplace custody to *account*."""
        ...

    def refund(self, account: str, amount: int) -> None:
        """Return a collected payment to *account* while rolling back."""
        ...


class WalletRail:
    """In-memory balances for every account plus the marketplace custody.

    Examples
    --------
    >>> rail = WalletRail()
    >>> rail.fund("bob", 500)
    >>> rail.collect("bob", 200)
    >>> rail.balance_of("bob"), rail.custody
    (300, 200)
    """

    def __init__(self) -> None:
        self._balances: dict[str, int] = {}
        self._custody = 0
        self._blocked: set[str] = set()
        self._payout_hooks: list[PayoutHook] = []

    @property
    def custody(self) -> int:
        """Funds currently held by the marketplace."""
        return self._custody

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def fund(self, account: str, amount: int) -> None:
        """Credit *account* with new money (test and demo setup)."""
        if amount < 0:
            raise ValueError(f"Cannot fund a negative amount: {amount}")
        self._balances[account] = self.balance_of(account) + amount

    def fund_custody(self, amount: int) -> None:
        """Add money already owed to sellers, e.g. after restoring a ledger."""
        if amount < 0:
            raise ValueError(f"Cannot fund a negative amount: {amount}")
        self._custody += amount

    def block(self, account: str) -> None:
        """Make every payout to *account* fail, like a rejecting receiver."""
        self._blocked.add(account)

    def unblock(self, account: str) -> None:
        self._blocked.discard(account)

    def add_payout_hook(self, hook: PayoutHook) -> None:
        """Call *hook(account, amount)* on every successful payout."""
        self._payout_hooks.append(hook)

    # -- PaymentRail --------------------------------------------------------

    def collect(self, account: str, amount: int) -> None:
        if amount < 0:
            raise PaymentError(f"Cannot collect a negative amount: {amount}")
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientFundsError(
                f"{account!r} has {balance}, needs {amount}"
            )
        self._balances[account] = balance - amount
        self._custody += amount
        logger.debug("Collected %d from %s.", amount, account)

    def payout(self, account: str, amount: int) -> None:
        if amount < 0:
            raise PaymentError(f"Cannot pay out a negative amount: {amount}")
        if account in self._blocked:
            raise PaymentError(f"Receiver {account!r} rejected the payment")
        if self._custody < amount:
            raise InsufficientFundsError(
                f"Custody holds {self._custody}, cannot pay {amount}"
            )
        self._custody -= amount
        self._balances[account] = self.balance_of(account) + amount
        try:
            for hook in self._payout_hooks:
                hook(account, amount)
        except Exception:
            self._balances[account] -= amount
            self._custody += amount
            raise
        logger.debug("Paid out %d to %s.", amount, account)

    def refund(self, account: str, amount: int) -> None:
        # No hooks and no receiver checks: a refund undoes a collect.
        if self._custody < amount:
            raise InsufficientFundsError(
                f"Custody holds {self._custody}, cannot refund {amount}"
            )
        self._custody -= amount
        self._balances[account] = self.balance_of(account) + amount
        logger.debug("Refunded %d to %s.", amount, account)
