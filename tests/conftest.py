"""Shared test fixtures for CloseLake."""

from __future__ import annotations

from pathlib import Path

import pytest

from closelake.core.event_bus import EventBus
from closelake.core.journal import EventJournal
from closelake.core.marketplace import Marketplace
from closelake.models.events import MarketEvent
from closelake.payments.rail import WalletRail
from closelake.registry.base import CollectionRegistry
from closelake.registry.basic_nft import BasicNFT

MARKET = "closelake-test-market"
SELLER = "deployer"
BUYER = "player"
PRICE = 100
BUYER_FUNDS = 10_000


@pytest.fixture
def registry() -> CollectionRegistry:
    return CollectionRegistry()


@pytest.fixture
def nft(registry: CollectionRegistry) -> BasicNFT:
    """A registered BasicNFT collection."""
    return registry.register(BasicNFT(address="0xbasicnft"))


@pytest.fixture
def payments() -> WalletRail:
    """A wallet rail where the buyer can afford any test purchase."""
    rail = WalletRail()
    rail.fund(BUYER, BUYER_FUNDS)
    return rail


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def published(bus: EventBus) -> list[MarketEvent]:
    """Every event the bus delivers, in order."""
    events: list[MarketEvent] = []
    bus.register_all(events.append)
    return events


@pytest.fixture
def journal(tmp_path: Path, bus: EventBus) -> EventJournal:
    """A fresh on-disk journal attached to the test bus."""
    return EventJournal(tmp_path / "journal.db").attach(bus)


@pytest.fixture
def market(
    registry: CollectionRegistry, payments: WalletRail, bus: EventBus
) -> Marketplace:
    return Marketplace(registry, payments, account=MARKET, bus=bus)


@pytest.fixture
def token_id(nft: BasicNFT) -> int:
    """Token 0, minted to the seller and approved for the marketplace."""
    tid = nft.mint_nft(SELLER)
    nft.approve(SELLER, MARKET, tid)
    return tid


@pytest.fixture
def listed(market: Marketplace, nft: BasicNFT, token_id: int) -> int:
    """Token 0 listed by the seller at PRICE.  Returns the token id."""
    market.list_item(nft.address, token_id, PRICE, SELLER)
    return token_id
