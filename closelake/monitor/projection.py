"""MarketProjection — read-only view of the ledger rebuilt from the journal.

The projection never keeps state of its own.  Every ``snapshot()`` replays
the journal from the first entry, applying each event through the listing
state machine.  An event that would be an illegal transition, or a
withdrawal that does not match the replayed balance, means the journal
does not describe a valid history and raises ``JournalIntegrityError``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from closelake.core.journal import EventJournal, JournalIntegrityError
from closelake.models.events import (
    ItemPurchased,
    ListingCanceled,
    ListingCreated,
    MarketEvent,
    ProceedsWithdrawn,
)
from closelake.models.listing import (
    LISTING_TRANSITIONS,
    Listing,
    ListingAction,
    ListingKey,
    ListingRecord,
    ListingState,
)

logger = logging.getLogger(__name__)


class MarketSnapshot(BaseModel):
    """A frozen, point-in-time view of the ledger derived from the journal."""

    model_config = ConfigDict(frozen=True)

    listings: list[ListingRecord] = []
    proceeds: dict[str, int] = {}
    event_count: int = 0
    sales_count: int = 0
    sales_volume: int = 0
    chain_valid: bool = True
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def outstanding_proceeds(self) -> int:
        return sum(self.proceeds.values())

    def get_listing(self, collection: str, asset_id: int) -> Listing:
        for record in self.listings:
            if record.collection == collection and record.asset_id == asset_id:
                return record.listing
        return Listing()


class MarketProjection:
    """Projects an ``EventJournal`` into ``MarketSnapshot`` objects.

    Parameters
    ----------
    journal:
        The journal to replay.
    """

    def __init__(self, journal: EventJournal) -> None:
        self._journal = journal

    def snapshot(self, verify: bool = True) -> MarketSnapshot:
        """Replay the journal and return the resulting snapshot.

        With *verify* the hash chain is checked first; a broken chain is
        reported through ``chain_valid`` rather than raised.
        """
        chain_valid = True
        if verify:
            try:
                self._journal.verify_chain()
            except JournalIntegrityError:
                logger.warning("Journal hash chain failed verification.", exc_info=True)
                chain_valid = False

        events = self._journal.events()
        listings, proceeds, sales_count, sales_volume = replay(events)
        return MarketSnapshot(
            listings=sorted(
                (
                    ListingRecord(
                        collection=key.collection,
                        asset_id=key.asset_id,
                        price=listing.price,
                        seller=listing.seller,
                    )
                    for key, listing in listings.items()
                ),
                key=lambda r: (r.collection, r.asset_id),
            ),
            proceeds=proceeds,
            event_count=len(events),
            sales_count=sales_count,
            sales_volume=sales_volume,
            chain_valid=chain_valid,
        )


def replay(
    events: list[MarketEvent],
) -> tuple[dict[ListingKey, Listing], dict[str, int], int, int]:
    """Apply *events* in order to empty stores.

    Returns ``(listings, proceeds, sales_count, sales_volume)``.
    """
    listings: dict[ListingKey, Listing] = {}
    proceeds: dict[str, int] = {}
    sales_count = 0
    sales_volume = 0

    for event in events:
        if isinstance(event, ProceedsWithdrawn):
            balance = proceeds.get(event.account, 0)
            if balance != event.amount:
                raise JournalIntegrityError(
                    f"Event {event.event_id}: {event.account!r} withdrew "
                    f"{event.amount} but the replayed balance is {balance}"
                )
            proceeds[event.account] = 0
            continue

        if event.asset_id is None:
            raise JournalIntegrityError(f"Event {event.event_id} has no asset id")
        key = ListingKey(collection=event.collection, asset_id=event.asset_id)
        current = listings.get(key, Listing())

        if isinstance(event, ListingCreated):
            action = (
                ListingAction.UPDATE
                if current.state == ListingState.LISTED
                else ListingAction.LIST
            )
        elif isinstance(event, ListingCanceled):
            action = ListingAction.CANCEL
        elif isinstance(event, ItemPurchased):
            action = ListingAction.BUY
        else:
            raise JournalIntegrityError(
                f"Event {event.event_id} has unsupported kind {event.event_kind.value}"
            )

        next_state = LISTING_TRANSITIONS[current.state].get(action)
        if next_state is None:
            raise JournalIntegrityError(
                f"Event {event.event_id}: cannot {action.value} {key} "
                f"while {current.state.value}"
            )

        if action == ListingAction.LIST:
            listings[key] = Listing(price=event.price, seller=event.seller)
        elif action == ListingAction.UPDATE:
            listings[key] = current.model_copy(update={"price": event.price})
        elif action == ListingAction.CANCEL:
            del listings[key]
        else:
            del listings[key]
            proceeds[event.seller] = proceeds.get(event.seller, 0) + event.payment
            sales_count += 1
            sales_volume += event.payment

    return listings, proceeds, sales_count, sales_volume
