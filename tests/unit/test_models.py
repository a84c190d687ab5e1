"""Tests for listing, event and journal models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

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


class TestListing:
    def test_zero_listing_is_unlisted(self):
        assert EMPTY_LISTING == Listing(price=0, seller="")
        assert not EMPTY_LISTING.is_listed
        assert EMPTY_LISTING.state == ListingState.UNLISTED

    def test_positive_price_is_listed(self):
        listing = Listing(price=1, seller="alice")
        assert listing.is_listed
        assert listing.state == ListingState.LISTED

    def test_negative_price_rejected(self):
        with pytest.raises(ValidationError):
            Listing(price=-1, seller="alice")

    def test_frozen(self):
        listing = Listing(price=5, seller="alice")
        with pytest.raises(ValidationError):
            listing.price = 6


class TestListingKey:
    def test_str(self):
        assert str(ListingKey(collection="0xnft", asset_id=5)) == "0xnft#5"

    def test_hashable_and_equal(self):
        a = ListingKey(collection="0xnft", asset_id=5)
        b = ListingKey(collection="0xnft", asset_id=5)
        assert a == b
        assert {a: 1}[b] == 1

    def test_negative_asset_id_rejected(self):
        with pytest.raises(ValidationError):
            ListingKey(collection="0xnft", asset_id=-1)


class TestListingTransitions:
    def test_unlisted_only_allows_list(self):
        assert LISTING_TRANSITIONS[ListingState.UNLISTED] == {
            ListingAction.LIST: ListingState.LISTED
        }

    @pytest.mark.parametrize(
        "action, target",
        [
            (ListingAction.CANCEL, ListingState.UNLISTED),
            (ListingAction.BUY, ListingState.UNLISTED),
            (ListingAction.UPDATE, ListingState.LISTED),
        ],
    )
    def test_listed_transitions(self, action, target):
        assert LISTING_TRANSITIONS[ListingState.LISTED][action] == target

    def test_cannot_list_twice(self):
        assert ListingAction.LIST not in LISTING_TRANSITIONS[ListingState.LISTED]


class TestListingRecord:
    def test_key_and_listing(self):
        record = ListingRecord(collection="0xnft", asset_id=3, price=9, seller="bob")
        assert record.key == ListingKey(collection="0xnft", asset_id=3)
        assert record.listing == Listing(price=9, seller="bob")

    def test_market_state_json(self):
        state = MarketState(
            marketplace_account="m",
            listings=[ListingRecord(collection="c", asset_id=0, price=1, seller="s")],
            proceeds={"s": 10},
        )
        restored = MarketState.model_validate_json(state.model_dump_json())
        assert restored == state
        assert restored.schema_version == "1"


class TestEvents:
    def test_kinds_and_actors(self):
        created = ListingCreated(collection="c", asset_id=1, seller="s", price=5)
        canceled = ListingCanceled(collection="c", asset_id=1, seller="s")
        bought = ItemPurchased(
            collection="c", asset_id=1, buyer="b", seller="s", price=5, payment=7
        )
        withdrawn = ProceedsWithdrawn(account="s", amount=7)

        assert created.event_kind == EventKind.LISTING_CREATED
        assert canceled.event_kind == EventKind.LISTING_CANCELED
        assert bought.event_kind == EventKind.ITEM_PURCHASED
        assert withdrawn.event_kind == EventKind.PROCEEDS_WITHDRAWN
        assert [e.actor for e in (created, canceled, bought, withdrawn)] == [
            "s",
            "s",
            "b",
            "s",
        ]

    def test_actor_field_names_a_declared_field(self):
        for event_type in EVENT_TYPE_MAP.values():
            assert event_type.actor_field in event_type.model_fields
        assert "actor_field" not in ListingCreated.model_fields

    def test_base_event_has_no_actor(self):
        event = MarketEvent(event_kind=EventKind.LISTING_CANCELED)
        assert event.actor == ""

    def test_withdrawal_has_no_asset(self):
        event = ProceedsWithdrawn(account="s", amount=1)
        assert event.collection == ""
        assert event.asset_id is None

    def test_unique_event_ids(self):
        a = ListingCanceled(collection="c", asset_id=1, seller="s")
        b = ListingCanceled(collection="c", asset_id=1, seller="s")
        assert a.event_id != b.event_id

    def test_type_map_covers_every_kind(self):
        assert set(EVENT_TYPE_MAP) == set(EventKind)


class TestJournalModels:
    def test_entry_decodes_event(self):
        event = ListingCreated(collection="c", asset_id=2, seller="s", price=4)
        entry = JournalEntry(
            event_id=event.event_id,
            event_kind=event.event_kind,
            payload=event.model_dump(mode="json"),
        )
        assert entry.event == event

    def test_query_defaults(self):
        query = JournalQuery()
        assert query.limit == 100
        assert query.offset == 0
        assert query.event_kind is None
