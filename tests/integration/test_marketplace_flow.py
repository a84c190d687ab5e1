"""End-to-end integration tests — marketplace, registry, rail and journal.

These tests run whole trading sessions through the Marketplace with a
CollectionRegistry, a WalletRail and an EventJournal on the bus, then check
that the ledger, the balances and the replayed journal all agree.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from closelake.core.errors import PriceMustBeAboveZero
from closelake.core.event_bus import EventBus
from closelake.core.journal import EventJournal
from closelake.core.marketplace import Marketplace
from closelake.models.events import EventKind
from closelake.models.listing import Listing
from closelake.monitor.projection import MarketProjection
from closelake.payments.rail import WalletRail
from closelake.registry.base import CollectionRegistry
from closelake.registry.basic_nft import BasicNFT

MARKET = "0xmarketplace"
COLLECTION = "0xcollection"


class Session:
    """A marketplace wired to in-memory collaborators and an on-disk journal."""

    def __init__(self, tmp_path: Path) -> None:
        self.bus = EventBus()
        self.journal = EventJournal(tmp_path / "journal.db").attach(self.bus)
        self.registry = CollectionRegistry()
        self.nft = self.registry.register(BasicNFT(address=COLLECTION))
        self.payments = WalletRail()
        self.market = Marketplace(
            self.registry, self.payments, account=MARKET, bus=self.bus
        )

    def mint_approved(self, owner: str) -> int:
        token_id = self.nft.mint_nft(owner)
        self.nft.approve(owner, MARKET, token_id)
        return token_id


@pytest.fixture
def session(tmp_path: Path) -> Session:
    return Session(tmp_path)


class TestTradingSession:
    def test_round_trip_for_asset_five(self, session: Session):
        """List, buy and withdraw asset 5 of a collection."""
        for _ in range(5):
            session.nft.mint_nft("someone")
        token_id = session.mint_approved("alice")
        assert token_id == 5
        session.payments.fund("bob", 100)

        session.market.list_item(COLLECTION, 5, 100, "alice")
        assert session.market.get_listing(COLLECTION, 5) == Listing(price=100, seller="alice")

        session.market.buy_item(COLLECTION, 5, 100, "bob")
        assert session.nft.owner_of(5) == "bob"
        assert session.market.get_listing(COLLECTION, 5) == Listing()
        assert session.market.get_proceeds("alice") == 100

        assert session.market.withdraw_proceeds("alice") == 100
        assert session.market.get_proceeds("alice") == 0
        assert session.payments.balance_of("alice") == 100
        assert session.payments.balance_of("bob") == 0
        assert session.payments.custody == 0

        kinds = [e.event_kind for e in session.journal.events()]
        assert kinds == [
            EventKind.LISTING_CREATED,
            EventKind.ITEM_PURCHASED,
            EventKind.PROCEEDS_WITHDRAWN,
        ]

    def test_overpayment_goes_to_seller(self, session: Session):
        token_id = session.mint_approved("alice")
        session.payments.fund("bob", 150)
        session.market.list_item(COLLECTION, token_id, 100, "alice")
        session.market.buy_item(COLLECTION, token_id, 150, "bob")

        assert session.market.get_proceeds("alice") == 150
        purchase = session.journal.get_latest().event
        assert (purchase.price, purchase.payment) == (100, 150)

    def test_cancel_then_relist(self, session: Session):
        token_id = session.mint_approved("alice")
        session.market.list_item(COLLECTION, token_id, 100, "alice")
        session.market.cancel_listing(COLLECTION, token_id, "alice")
        session.market.list_item(COLLECTION, token_id, 200, "alice")
        assert session.market.get_listing(COLLECTION, token_id).price == 200
        assert len(session.journal.get_asset_history(COLLECTION, token_id)) == 3

    def test_resale_chain(self, session: Session):
        """An asset bought on the marketplace is listed again by its new owner."""
        token_id = session.mint_approved("alice")
        session.payments.fund("bob", 100)
        session.payments.fund("carol", 300)

        session.market.list_item(COLLECTION, token_id, 100, "alice")
        session.market.buy_item(COLLECTION, token_id, 100, "bob")
        session.nft.approve("bob", MARKET, token_id)
        session.market.list_item(COLLECTION, token_id, 300, "bob")
        session.market.buy_item(COLLECTION, token_id, 300, "carol")

        assert session.nft.owner_of(token_id) == "carol"
        assert session.market.get_proceeds("alice") == 100
        assert session.market.get_proceeds("bob") == 300
        assert session.payments.custody == 400

    def test_journal_replay_matches_ledger(self, session: Session):
        tokens = [session.mint_approved("alice") for _ in range(4)]
        session.payments.fund("bob", 1_000)

        session.market.list_item(COLLECTION, tokens[0], 100, "alice")
        session.market.list_item(COLLECTION, tokens[1], 200, "alice")
        session.market.list_item(COLLECTION, tokens[2], 300, "alice")
        session.market.update_listing(COLLECTION, tokens[1], 250, "alice")
        session.market.cancel_listing(COLLECTION, tokens[2], "alice")
        session.market.buy_item(COLLECTION, tokens[0], 120, "bob")
        session.market.withdraw_proceeds("alice")
        session.market.buy_item(COLLECTION, tokens[1], 250, "bob")
        with pytest.raises(PriceMustBeAboveZero):
            session.market.list_item(COLLECTION, tokens[3], 0, "alice")

        snapshot = MarketProjection(session.journal).snapshot()
        assert snapshot.chain_valid
        assert snapshot.listings == session.market.listings()
        assert snapshot.proceeds == {"alice": session.market.get_proceeds("alice")}
        assert snapshot.sales_count == 2
        assert snapshot.sales_volume == 370
        assert snapshot.outstanding_proceeds == session.payments.custody == 250


class TestStatePersistence:
    def test_persist_and_load(self, session: Session, tmp_path: Path):
        token_id = session.mint_approved("alice")
        other = session.mint_approved("alice")
        session.payments.fund("bob", 100)
        session.market.list_item(COLLECTION, token_id, 100, "alice")
        session.market.list_item(COLLECTION, other, 70, "alice")
        session.market.buy_item(COLLECTION, token_id, 100, "bob")

        path = session.market.persist_state(tmp_path / "state" / "market.json")
        assert path.exists()

        restored = Marketplace(session.registry, session.payments, account=MARKET)
        assert restored.load_state(path) is True
        assert restored.snapshot() == session.market.snapshot()
        assert restored.get_listing(COLLECTION, other) == Listing(price=70, seller="alice")
        assert restored.get_proceeds("alice") == 100

    def test_missing_state_file(self, session: Session, tmp_path: Path):
        assert session.market.load_state(tmp_path / "missing.json") is False
        assert session.market.listings() == []

    def test_malformed_state_file(self, session: Session, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            session.market.load_state(path)

    def test_stats(self, session: Session):
        a = session.mint_approved("alice")
        b = session.mint_approved("bob")
        session.payments.fund("carol", 500)
        session.market.list_item(COLLECTION, a, 100, "alice")
        session.market.list_item(COLLECTION, b, 300, "bob")
        session.market.buy_item(COLLECTION, a, 100, "carol")

        assert session.market.get_stats() == {
            "active_listings": 1,
            "listed_value": 300,
            "sellers": 1,
            "outstanding_proceeds": 100,
            "accounts_with_proceeds": 1,
        }
