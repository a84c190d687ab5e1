"""Undo-log transactions for the marketplace ledger.

The ledger lives in ordinary dictionaries and its collaborators (asset
registry, payment rail) are outside any database, so atomicity is provided
by compensation: every mutation registers an undo action, and a failure
runs the undo actions in reverse order.

Operations invoked from inside a callout (a registry transfer hook, a
payout hook) join the running transaction at a savepoint.  A nested
failure rolls back to its savepoint; an outer failure rolls back the nested
work too.  Events are buffered and only released when the outermost
transaction commits.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict

from closelake.core.errors import RollbackFailed
from closelake.models.events import MarketEvent

logger = logging.getLogger(__name__)


class Savepoint(BaseModel):
    """Positions in the undo log and event buffer to roll back to."""

    model_config = ConfigDict(frozen=True)

    undo_depth: int
    event_depth: int


class Transaction:
    """An undo log plus a buffer of events waiting to be published."""

    def __init__(self) -> None:
        self._undo: list[tuple[str, Callable[[], None]]] = []
        self._events: list[MarketEvent] = []

    @property
    def events(self) -> list[MarketEvent]:
        return list(self._events)

    def on_rollback(self, description: str, action: Callable[[], None]) -> None:
        """Register *action* to run if the transaction rolls back."""
        self._undo.append((description, action))

    def emit(self, event: MarketEvent) -> None:
        self._events.append(event)

    def savepoint(self) -> Savepoint:
        return Savepoint(undo_depth=len(self._undo), event_depth=len(self._events))

    def rollback_to(self, savepoint: Savepoint) -> None:
        """Undo everything recorded after *savepoint*, newest first.

        Every undo action runs even if an earlier one fails.  Raises
        ``RollbackFailed`` afterwards if any of them did.
        """
        failures: list[str] = []
        while len(self._undo) > savepoint.undo_depth:
            description, action = self._undo.pop()
            try:
                action()
            except Exception as exc:
                logger.exception("Rollback step failed: %s", description)
                failures.append(f"{description}: {exc}")
            else:
                logger.debug("Rolled back: %s", description)
        del self._events[savepoint.event_depth:]
        if failures:
            raise RollbackFailed(
                "Rollback incomplete; " + "; ".join(failures)
            )

    def rollback(self) -> None:
        self.rollback_to(Savepoint(undo_depth=0, event_depth=0))
