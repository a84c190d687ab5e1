"""Re-entrancy guard for operations that call out to collaborators.

``buy_item``, ``update_listing`` and ``withdraw_proceeds`` hand control to
the asset registry or the payment rail partway through.  The guard rejects
a second guarded call made from inside that callout.  It is released on
every exit path.
"""

from __future__ import annotations

import logging
from types import TracebackType

from closelake.core.errors import ReentrancyError

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Held/not-held flag used as a context manager.

    Examples
    --------
    >>> guard = ReentrancyGuard()
    >>> with guard.enter("buy_item"):
    ...     guard.held
    True
    >>> guard.held
    False
    """

    def __init__(self) -> None:
        self._held = False
        self._operation: str | None = None

    @property
    def held(self) -> bool:
        return self._held

    @property
    def operation(self) -> str | None:
        """Name of the operation currently holding the guard, if any."""
        return self._operation

    def enter(self, operation: str) -> ReentrancyGuard:
        """Name the operation about to take the guard; use with ``with``."""
        if self._held:
            logger.warning(
                "Rejected re-entrant %s while %s holds the guard.",
                operation,
                self._operation,
            )
            raise ReentrancyError(operation)
        self._operation = operation
        return self

    def __enter__(self) -> ReentrancyGuard:
        if self._held:
            raise ReentrancyError(self._operation or "guarded operation")
        self._held = True
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._held = False
        self._operation = None
