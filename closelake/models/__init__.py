"""CloseLake data models — all Pydantic v2, all frozen (immutable)."""

from closelake.models.events import (
    EVENT_TYPE_MAP,
    EventKind,
    ItemPurchased,
    ListingCanceled,
    ListingCreated,
    MarketEvent,
    ProceedsWithdrawn,
)
from closelake.models.journal import JournalEntry, JournalQuery
from closelake.models.listing import (
    EMPTY_LISTING,
    LISTING_TRANSITIONS,
    Listing,
    ListingAction,
    ListingKey,
    ListingRecord,
    ListingState,
    MarketState,
)

__all__ = [
    # listings
    "Listing",
    "ListingKey",
    "ListingRecord",
    "ListingState",
    "ListingAction",
    "LISTING_TRANSITIONS",
    "EMPTY_LISTING",
    "MarketState",
    # events
    "EventKind",
    "MarketEvent",
    "ListingCreated",
    "ListingCanceled",
    "ItemPurchased",
    "ProceedsWithdrawn",
    "EVENT_TYPE_MAP",
    # journal
    "JournalEntry",
    "JournalQuery",
]
