"""Marketplace notification events.

Every successful state-changing operation publishes exactly one event.
Each event is a frozen Pydantic model; ``collection``, ``asset_id`` and the
acting account (``actor``) are the indexed fields the journal stores in
their own columns for searching.

``update_listing`` publishes ``ListingCreated`` just like ``list_item``:
a re-price is indistinguishable from a new listing in the stream.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    """The four notification kinds."""

    LISTING_CREATED = "listing_created"
    LISTING_CANCELED = "listing_canceled"
    ITEM_PURCHASED = "item_purchased"
    PROCEEDS_WITHDRAWN = "proceeds_withdrawn"


class MarketEvent(BaseModel):
    """Base fields shared by all marketplace events."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_kind: EventKind
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    collection: str = ""
    asset_id: int | None = None

    actor_field: ClassVar[str] = ""

    @property
    def actor(self) -> str:
        """The account that performed the operation, named by ``actor_field``."""
        return getattr(self, self.actor_field) if self.actor_field else ""


class ListingCreated(MarketEvent):
    """An asset was listed, or an existing listing was re-priced."""

    event_kind: EventKind = EventKind.LISTING_CREATED
    seller: str
    price: int

    actor_field: ClassVar[str] = "seller"


class ListingCanceled(MarketEvent):
    event_kind: EventKind = EventKind.LISTING_CANCELED
    seller: str

    actor_field: ClassVar[str] = "seller"


class ItemPurchased(MarketEvent):
    """An asset changed hands through the marketplace.

    ``price`` is the listed price; ``payment`` is what the buyer paid and
    what the seller was credited.  They differ on overpayment.
    """

    event_kind: EventKind = EventKind.ITEM_PURCHASED
    buyer: str
    seller: str
    price: int
    payment: int

    actor_field: ClassVar[str] = "buyer"


class ProceedsWithdrawn(MarketEvent):
    event_kind: EventKind = EventKind.PROCEEDS_WITHDRAWN
    account: str
    amount: int

    actor_field: ClassVar[str] = "account"


# Registry for deserialization by event_kind
EVENT_TYPE_MAP: dict[EventKind, type[MarketEvent]] = {
    EventKind.LISTING_CREATED: ListingCreated,
    EventKind.LISTING_CANCELED: ListingCanceled,
    EventKind.ITEM_PURCHASED: ItemPurchased,
    EventKind.PROCEEDS_WITHDRAWN: ProceedsWithdrawn,
}
