"""Listing models and the per-asset listing state machine.

A listing slot exists for every ``(collection, asset_id)`` pair.  The slot
holds the zero listing (``price == 0``) until the asset is listed, and is
reset to the zero listing by a cancel or a purchase.  "Never listed" and
"listing removed" are the same state.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ListingState(str, Enum):
    """State of a single listing slot."""

    UNLISTED = "unlisted"
    LISTED = "listed"


class ListingAction(str, Enum):
    """Operations that move a listing slot between states."""

    LIST = "list"
    CANCEL = "cancel"
    UPDATE = "update"
    BUY = "buy"


# Any (state, action) pair missing here is an illegal transition.
LISTING_TRANSITIONS: dict[ListingState, dict[ListingAction, ListingState]] = {
    ListingState.UNLISTED: {
        ListingAction.LIST: ListingState.LISTED,
    },
    ListingState.LISTED: {
        ListingAction.CANCEL: ListingState.UNLISTED,
        ListingAction.BUY: ListingState.UNLISTED,
        ListingAction.UPDATE: ListingState.LISTED,
    },
}


class ListingKey(BaseModel):
    """Identifies one asset: the collection it belongs to and its id."""

    model_config = ConfigDict(frozen=True)

    collection: str
    asset_id: int = Field(ge=0)

    def __str__(self) -> str:
        return f"{self.collection}#{self.asset_id}"


class Listing(BaseModel):
    """An offer to sell one asset at a fixed price.

    The key is implicit (it is the slot the listing lives in).  The
    default-constructed listing is the zero listing and means "not listed".

    Examples
    --------
    >>> Listing().is_listed
    False
    >>> Listing(price=100, seller="alice").state
    <ListingState.LISTED: 'listed'>
    """

    model_config = ConfigDict(frozen=True)

    price: int = Field(default=0, ge=0)  # smallest currency unit
    seller: str = ""

    @property
    def is_listed(self) -> bool:
        return self.price > 0

    @property
    def state(self) -> ListingState:
        return ListingState.LISTED if self.is_listed else ListingState.UNLISTED


EMPTY_LISTING = Listing()


class ListingRecord(BaseModel):
    """A listing together with its key, used for enumeration and persistence."""

    model_config = ConfigDict(frozen=True)

    collection: str
    asset_id: int
    price: int
    seller: str

    @property
    def key(self) -> ListingKey:
        return ListingKey(collection=self.collection, asset_id=self.asset_id)

    @property
    def listing(self) -> Listing:
        return Listing(price=self.price, seller=self.seller)


class MarketState(BaseModel):
    """Serializable snapshot of the marketplace ledger."""

    model_config = ConfigDict(frozen=True)

    schema_version: str = "1"
    marketplace_account: str = ""
    listings: list[ListingRecord] = []
    proceeds: dict[str, int] = {}
