"""Marketplace ledger — non-custodial listings and a proceeds ledger.

The marketplace owns two stores:

- listings: ``ListingKey -> Listing``.  A missing key is the zero listing.
- proceeds: ``account -> amount`` withdrawable by that account.

Assets never move into the marketplace.  A seller keeps the asset and
approves the marketplace account to transfer it; the transfer happens only
when a buyer pays.  A seller can therefore invalidate a listing out of band
(revoke the approval, move the asset), and the purchase then fails and
rolls back.

Every state-changing operation:

1. takes the marketplace lock (operations never interleave),
2. opens a transaction (undo log + event buffer),
3. runs its guard checks, raising a ``MarketplaceError`` before any
   mutation,
4. mutates state before calling out to a collaborator,
5. publishes its event once the outermost transaction commits.

``buy_item`` credits the seller with the *full* payment.  Overpayment is not
refunded to the buyer.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from closelake.config import config
from closelake.core.errors import (
    AlreadyListed,
    IsNotOwner,
    NoProceeds,
    NotApprovedForMarketplace,
    NotListed,
    NotOwner,
    PayoutFailed,
    PriceMustBeAboveZero,
    PriceNotMet,
    TransferFailed,
)
from closelake.core.event_bus import EventBus, EventDispatchError
from closelake.core.guard import ReentrancyGuard
from closelake.core.transaction import Transaction
from closelake.models.events import (
    ItemPurchased,
    ListingCanceled,
    ListingCreated,
    MarketEvent,
    ProceedsWithdrawn,
)
from closelake.models.listing import (
    EMPTY_LISTING,
    Listing,
    ListingKey,
    ListingRecord,
    MarketState,
)
from closelake.payments.rail import PaymentError, PaymentRail
from closelake.registry.base import AssetRegistry, RegistryError

logger = logging.getLogger(__name__)


class Marketplace:
    """The marketplace ledger.

    Parameters
    ----------
    registry:
        Asset registry used for ownership, approval and transfer.
    payments:
        Payment rail used to collect purchase payments and pay out proceeds.
    account:
        The marketplace's own identity.  Sellers must approve this account
        for an asset before listing it.  Defaults to
        ``config.marketplace_account``.
    bus:
        Event bus that receives committed events.  A private bus is created
        when omitted.

    Examples
    --------
    >>> from closelake.payments.rail import WalletRail
    >>> from closelake.registry.base import CollectionRegistry
    >>> market = Marketplace(CollectionRegistry(), WalletRail())
    >>> market.get_listing("0xnft", 0).is_listed
    False
    >>> market.get_proceeds("alice")
    0
    """

    def __init__(
        self,
        registry: AssetRegistry,
        payments: PaymentRail,
        *,
        account: str | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._registry = registry
        self._payments = payments
        self._account = account or config.marketplace_account
        self._bus = bus or EventBus()
        self._listings: dict[ListingKey, Listing] = {}
        self._proceeds: dict[str, int] = {}
        self._lock = threading.RLock()
        self._guard = ReentrancyGuard()
        self._tx: Transaction | None = None

    @property
    def account(self) -> str:
        return self._account

    @property
    def bus(self) -> EventBus:
        return self._bus

    # ------------------------------------------------------------------
    # Listing operations
    # ------------------------------------------------------------------

    def list_item(
        self, collection: str, asset_id: int, price: int, caller: str
    ) -> Listing:
        """List an asset the caller owns at a fixed price.

        Raises
        ------
        AlreadyListed
            The asset already has an active listing.
        NotOwner
            *caller* does not own the asset.
        PriceMustBeAboveZero
            *price* is zero or negative.
        NotApprovedForMarketplace
            The registry does not approve the marketplace for this asset.
        """
        key = ListingKey(collection=collection, asset_id=asset_id)
        with self._lock, self._atomic() as tx:
            if self._get(key).is_listed:
                raise AlreadyListed(collection, asset_id)
            self._require_owner(key, caller)
            if price <= 0:
                raise PriceMustBeAboveZero(collection, asset_id, price)
            if self._registry.get_approved(collection, asset_id) != self._account:
                raise NotApprovedForMarketplace(collection, asset_id, self._account)

            listing = Listing(price=price, seller=caller)
            self._set_listing(tx, key, listing)
            tx.emit(
                ListingCreated(
                    collection=collection,
                    asset_id=asset_id,
                    seller=caller,
                    price=price,
                )
            )
        logger.info("Listed %s at %d by %s.", key, price, caller)
        return listing

    def cancel_listing(self, collection: str, asset_id: int, caller: str) -> None:
        """Remove the active listing of an asset the caller owns.

        Raises
        ------
        NotOwner
            *caller* does not own the asset.
        NotListed
            The asset has no active listing.
        """
        key = ListingKey(collection=collection, asset_id=asset_id)
        with self._lock, self._atomic() as tx:
            self._require_owner(key, caller)
            if not self._get(key).is_listed:
                raise NotListed(collection, asset_id)

            self._set_listing(tx, key, EMPTY_LISTING)
            tx.emit(
                ListingCanceled(collection=collection, asset_id=asset_id, seller=caller)
            )
        logger.info("Canceled listing %s by %s.", key, caller)

    def update_listing(
        self, collection: str, asset_id: int, new_price: int, caller: str
    ) -> Listing:
        """Change the price of an active listing; the seller is unchanged.

        Publishes ``ListingCreated``, the same event as ``list_item``.

        Raises
        ------
        NotListed
            The asset has no active listing.
        ReentrancyError
            Called from inside another guarded operation.
        NotOwner
            *caller* does not own the asset.
        PriceMustBeAboveZero
            *new_price* is zero or negative.
        """
        key = ListingKey(collection=collection, asset_id=asset_id)
        with self._lock, self._atomic() as tx:
            current = self._get(key)
            if not current.is_listed:
                raise NotListed(collection, asset_id)
            with self._guard.enter("update_listing"):
                self._require_owner(key, caller)
                if new_price <= 0:
                    raise PriceMustBeAboveZero(collection, asset_id, new_price)

                listing = current.model_copy(update={"price": new_price})
                self._set_listing(tx, key, listing)
                tx.emit(
                    ListingCreated(
                        collection=collection,
                        asset_id=asset_id,
                        seller=caller,
                        price=new_price,
                    )
                )
        logger.info(
            "Updated listing %s from %d to %d.", key, current.price, new_price
        )
        return listing

    # ------------------------------------------------------------------
    # Purchase & withdrawal
    # ------------------------------------------------------------------

    def buy_item(
        self, collection: str, asset_id: int, payment: int, caller: str
    ) -> Listing:
        """Buy a listed asset, paying at least the listed price.

        The payment is collected from *caller*, the seller is credited with
        the whole payment, the listing is removed, and only then is the
        asset transferred.  If the transfer fails, all of it is undone.

        Returns the listing that was bought.

        Raises
        ------
        NotListed
            The asset has no active listing.
        IsNotOwner
            *caller* already owns the asset.
        ReentrancyError
            Called from inside another guarded operation.
        PriceNotMet
            *payment* is below the listed price.
        PaymentError
            The payment could not be collected from *caller*.
        TransferFailed
            The registry refused the transfer (e.g. approval revoked).
        """
        key = ListingKey(collection=collection, asset_id=asset_id)
        with self._lock, self._atomic() as tx:
            listing = self._get(key)
            if not listing.is_listed:
                raise NotListed(collection, asset_id)
            if self._owner_of(key) == caller:
                raise IsNotOwner(collection, asset_id, caller)
            with self._guard.enter("buy_item"):
                if payment < listing.price:
                    raise PriceNotMet(collection, asset_id, listing.price, payment)

                self._collect(tx, caller, payment)
                self._credit(tx, listing.seller, payment)
                self._set_listing(tx, key, EMPTY_LISTING)
                # Work nested in the transfer callout is journaled after this.
                tx.emit(
                    ItemPurchased(
                        collection=collection,
                        asset_id=asset_id,
                        buyer=caller,
                        seller=listing.seller,
                        price=listing.price,
                        payment=payment,
                    )
                )
                try:
                    self._registry.transfer(
                        collection, asset_id, listing.seller, caller, self._account
                    )
                except RegistryError as exc:
                    raise TransferFailed(collection, asset_id, caller, str(exc)) from exc
        if payment > listing.price:
            logger.info(
                "Overpayment on %s: paid %d for price %d, credited in full to %s.",
                key,
                payment,
                listing.price,
                listing.seller,
            )
        logger.info("Sold %s to %s for %d.", key, caller, payment)
        return listing

    def withdraw_proceeds(self, caller: str) -> int:
        """Pay out the caller's whole proceeds balance and return the amount.

        The balance is zeroed before the payout, so a re-entrant withdrawal
        would see nothing to withdraw.

        Raises
        ------
        ReentrancyError
            Called from inside another guarded operation.
        NoProceeds
            The caller's balance is zero.
        PayoutFailed
            The payment rail failed; the balance is restored.
        """
        with self._lock, self._atomic() as tx:
            with self._guard.enter("withdraw_proceeds"):
                amount = self._proceeds.get(caller, 0)
                if amount <= 0:
                    raise NoProceeds(caller)

                self._set_proceeds(tx, caller, 0)
                tx.emit(ProceedsWithdrawn(account=caller, amount=amount))
                try:
                    self._payments.payout(caller, amount)
                except PaymentError as exc:
                    raise PayoutFailed(caller, amount, str(exc)) from exc
        logger.info("Withdrew %d for %s.", amount, caller)
        return amount

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_listing(self, collection: str, asset_id: int) -> Listing:
        """Return the listing for an asset, or the zero listing."""
        key = ListingKey(collection=collection, asset_id=asset_id)
        with self._lock:
            return self._get(key)

    def get_proceeds(self, account: str) -> int:
        """Return the withdrawable balance of *account* (0 if unknown)."""
        with self._lock:
            return self._proceeds.get(account, 0)

    def listings(self, collection: str | None = None) -> list[ListingRecord]:
        """Return all active listings, optionally for one collection."""
        with self._lock:
            records = [
                ListingRecord(
                    collection=key.collection,
                    asset_id=key.asset_id,
                    price=listing.price,
                    seller=listing.seller,
                )
                for key, listing in self._listings.items()
                if collection is None or key.collection == collection
            ]
        return sorted(records, key=lambda r: (r.collection, r.asset_id))

    def get_stats(self) -> dict[str, Any]:
        """Return summary statistics about the ledger.

        Keys: ``active_listings``, ``listed_value``, ``sellers``,
        ``outstanding_proceeds`` and ``accounts_with_proceeds``.
        """
        with self._lock:
            listings = list(self._listings.values())
            return {
                "active_listings": len(listings),
                "listed_value": sum(l.price for l in listings),
                "sellers": len({l.seller for l in listings}),
                "outstanding_proceeds": sum(self._proceeds.values()),
                "accounts_with_proceeds": sum(
                    1 for amount in self._proceeds.values() if amount > 0
                ),
            }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> MarketState:
        """Return the whole ledger as a serializable model."""
        with self._lock:
            return MarketState(
                marketplace_account=self._account,
                listings=self.listings(),
                proceeds=dict(self._proceeds),
            )

    def restore(self, state: MarketState) -> None:
        """Replace the ledger contents with *state*."""
        with self._lock:
            if self._tx is not None:
                raise RuntimeError("Cannot restore state during an operation")
            if state.marketplace_account and state.marketplace_account != self._account:
                logger.warning(
                    "Restoring state written for %s into marketplace %s.",
                    state.marketplace_account,
                    self._account,
                )
            self._listings = {
                record.key: record.listing
                for record in state.listings
                if record.price > 0
            }
            self._proceeds = dict(state.proceeds)

    def persist_state(self, path: Path | None = None) -> Path:
        """Write the ledger to a JSON file (default ``config.state_path``)."""
        path = Path(path or config.state_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = json.loads(self.snapshot().model_dump_json())
        path.write_text(
            json.dumps(data, indent=2, sort_keys=True), encoding="utf-8"
        )
        logger.debug("Persisted marketplace state to %s.", path)
        return path

    def load_state(self, path: Path | None = None) -> bool:
        """Load the ledger from a JSON file, if it exists.

        Returns ``False`` when there is no file.  A malformed file raises.
        """
        path = Path(path or config.state_path)
        if not path.exists():
            logger.debug("No state file at %s, starting with an empty ledger.", path)
            return False
        state = MarketState.model_validate_json(path.read_text(encoding="utf-8"))
        self.restore(state)
        logger.info(
            "Loaded %d listing(s) and %d proceeds account(s) from %s.",
            len(state.listings),
            len(state.proceeds),
            path,
        )
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _atomic(self) -> Iterator[Transaction]:
        """Run a block inside the current transaction, or a new one.

        A nested block (an operation called from a collaborator's callout)
        rolls back to its own savepoint on failure.  Events are published
        in buffer order when the outermost block completes.  The state
        change is final by then, so a notification that no handler accepts
        is logged and does not fail the operation.
        """
        outermost = self._tx is None
        if outermost:
            self._tx = Transaction()
        tx = self._tx
        savepoint = tx.savepoint()
        try:
            yield tx
        except BaseException:
            try:
                tx.rollback_to(savepoint)
            finally:
                if outermost:
                    self._tx = None
            raise
        if outermost:
            self._tx = None
            self._publish(tx.events)

    def _publish(self, events: list[MarketEvent]) -> None:
        for event in events:
            try:
                self._bus.publish(event)
            except EventDispatchError as exc:
                logger.error(
                    "Committed event %s (%s) was not delivered: %s",
                    event.event_id,
                    event.event_kind.value,
                    exc,
                )

    def _get(self, key: ListingKey) -> Listing:
        return self._listings.get(key, EMPTY_LISTING)

    def _owner_of(self, key: ListingKey) -> str:
        return self._registry.owner_of(key.collection, key.asset_id)

    def _require_owner(self, key: ListingKey, caller: str) -> None:
        if self._owner_of(key) != caller:
            raise NotOwner(key.collection, key.asset_id, caller)

    def _set_listing(self, tx: Transaction, key: ListingKey, listing: Listing) -> None:
        previous = self._listings.get(key)
        if listing.is_listed:
            self._listings[key] = listing
        else:
            self._listings.pop(key, None)

        def undo() -> None:
            if previous is None:
                self._listings.pop(key, None)
            else:
                self._listings[key] = previous

        tx.on_rollback(f"restore listing {key}", undo)

    def _set_proceeds(self, tx: Transaction, account: str, amount: int) -> None:
        previous = self._proceeds.get(account)
        self._proceeds[account] = amount

        def undo() -> None:
            if previous is None:
                self._proceeds.pop(account, None)
            else:
                self._proceeds[account] = previous

        tx.on_rollback(f"restore proceeds of {account}", undo)

    def _credit(self, tx: Transaction, account: str, amount: int) -> None:
        self._set_proceeds(tx, account, self._proceeds.get(account, 0) + amount)

    def _collect(self, tx: Transaction, account: str, amount: int) -> None:
        self._payments.collect(account, amount)
        tx.on_rollback(
            f"refund {amount} to {account}",
            lambda: self._payments.refund(account, amount),
        )
