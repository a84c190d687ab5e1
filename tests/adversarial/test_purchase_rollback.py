"""Adversarial tests — purchases and withdrawals that fail partway through.

A seller can invalidate a listing out of band, a buyer can be short of
funds, and a payout receiver can reject the money.  In each case the
operation must fail with nothing changed: no listing removed, no proceeds
credited, no money moved, no event published.
"""

from __future__ import annotations

import pytest

from closelake.core.errors import NotListed, PayoutFailed, TransferFailed
from closelake.core.marketplace import Marketplace
from closelake.payments.rail import InsufficientFundsError, WalletRail

MARKET = "closelake-test-market"
SELLER = "deployer"
BUYER = "player"
PRICE = 100


def _state(market, nft, payments, token_id):
    return (
        market.get_listing(nft.address, token_id),
        market.get_proceeds(SELLER),
        payments.balance_of(BUYER),
        payments.balance_of(SELLER),
        payments.custody,
        nft.owner_of(token_id),
        nft.get_approved(token_id),
    )


class TestOutOfBandInvalidation:
    def test_revoked_approval(self, market, nft, listed, payments, published):
        nft.approve(SELLER, None, listed)
        before = _state(market, nft, payments, listed)
        published.clear()

        with pytest.raises(TransferFailed) as exc_info:
            market.buy_item(nft.address, listed, PRICE, BUYER)

        assert exc_info.value.account == BUYER
        assert isinstance(exc_info.value.__cause__, Exception)
        assert _state(market, nft, payments, listed) == before
        assert published == []

    def test_approval_moved_to_another_market(self, market, nft, listed, payments):
        nft.approve(SELLER, "other-market", listed)
        with pytest.raises(TransferFailed):
            market.buy_item(nft.address, listed, PRICE, BUYER)
        # The listing survives; the seller can cancel or re-approve.
        assert market.get_listing(nft.address, listed).is_listed
        nft.approve(SELLER, MARKET, listed)
        market.buy_item(nft.address, listed, PRICE, BUYER)
        assert nft.owner_of(listed) == BUYER

    def test_stale_listing_after_resale(self, market, nft, listed, payments):
        """The asset was bought once; a second purchase finds no listing."""
        market.buy_item(nft.address, listed, PRICE, BUYER)
        payments.fund("third", PRICE)
        with pytest.raises(NotListed):
            market.buy_item(nft.address, listed, PRICE, "third")
        assert payments.balance_of("third") == PRICE


class TestPaymentFailures:
    def test_insufficient_funds(self, registry, nft, token_id, bus, published):
        payments = WalletRail()
        payments.fund(BUYER, PRICE - 1)
        market = Marketplace(registry, payments, account=MARKET, bus=bus)
        market.list_item(nft.address, token_id, PRICE, SELLER)
        published.clear()

        with pytest.raises(InsufficientFundsError):
            market.buy_item(nft.address, token_id, PRICE, BUYER)
        assert payments.balance_of(BUYER) == PRICE - 1
        assert market.get_listing(nft.address, token_id).is_listed
        assert nft.owner_of(token_id) == SELLER
        assert published == []

    def test_rejected_payout(self, market, nft, listed, payments, published):
        market.buy_item(nft.address, listed, PRICE, BUYER)
        payments.block(SELLER)
        published.clear()

        with pytest.raises(PayoutFailed) as exc_info:
            market.withdraw_proceeds(SELLER)
        assert exc_info.value.account == SELLER
        assert market.get_proceeds(SELLER) == PRICE
        assert payments.custody == PRICE
        assert published == []

        payments.unblock(SELLER)
        assert market.withdraw_proceeds(SELLER) == PRICE
        assert payments.balance_of(SELLER) == PRICE

    def test_short_custody(self, registry, nft, token_id, bus):
        """Proceeds restored from a state file without funding custody."""
        market = Marketplace(registry, WalletRail(), account=MARKET, bus=bus)
        state = market.snapshot().model_copy(update={"proceeds": {SELLER: 50}})
        market.restore(state)
        with pytest.raises(PayoutFailed):
            market.withdraw_proceeds(SELLER)
        assert market.get_proceeds(SELLER) == 50
