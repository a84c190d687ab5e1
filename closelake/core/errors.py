"""Marketplace error taxonomy.

Every error aborts the operation that raised it with no state change.
Errors carry the structured context a caller needs to correct the request
(collection, asset id, price, account) as attributes, in addition to a
readable message.
"""

from __future__ import annotations


class MarketplaceError(RuntimeError):
    """Base class for all marketplace operation failures."""

    def __init__(
        self,
        message: str,
        *,
        collection: str | None = None,
        asset_id: int | None = None,
        account: str | None = None,
        price: int | None = None,
    ) -> None:
        super().__init__(message)
        self.collection = collection
        self.asset_id = asset_id
        self.account = account
        self.price = price

    @property
    def code(self) -> str:
        """Short error name, e.g. ``"AlreadyListed"``."""
        return type(self).__name__


# ---------------------------------------------------------------------------
# Listing-state mismatch
# ---------------------------------------------------------------------------

class AlreadyListed(MarketplaceError):
    """Raised when listing an asset that already has an active listing."""

    def __init__(self, collection: str, asset_id: int) -> None:
        super().__init__(
            f"Asset {collection}#{asset_id} is already listed",
            collection=collection,
            asset_id=asset_id,
        )


class NotListed(MarketplaceError):
    """Raised when an operation needs an active listing and there is none."""

    def __init__(self, collection: str, asset_id: int) -> None:
        super().__init__(
            f"Asset {collection}#{asset_id} is not listed",
            collection=collection,
            asset_id=asset_id,
        )


# ---------------------------------------------------------------------------
# Caller identity mismatch
# ---------------------------------------------------------------------------

class NotOwner(MarketplaceError):
    """Raised when the caller does not own the asset."""

    def __init__(self, collection: str, asset_id: int, account: str) -> None:
        super().__init__(
            f"{account!r} is not the owner of {collection}#{asset_id}",
            collection=collection,
            asset_id=asset_id,
            account=account,
        )


class IsNotOwner(MarketplaceError):
    """Raised when the owner of an asset tries to buy it."""

    def __init__(self, collection: str, asset_id: int, account: str) -> None:
        super().__init__(
            f"{account!r} owns {collection}#{asset_id} and cannot buy it",
            collection=collection,
            asset_id=asset_id,
            account=account,
        )


# ---------------------------------------------------------------------------
# Price and payment
# ---------------------------------------------------------------------------

class PriceMustBeAboveZero(MarketplaceError):
    def __init__(self, collection: str, asset_id: int, price: int) -> None:
        super().__init__(
            f"Price for {collection}#{asset_id} must be above zero, got {price}",
            collection=collection,
            asset_id=asset_id,
            price=price,
        )


class PriceNotMet(MarketplaceError):
    """Raised when the payment attached to a purchase is below the price.

    ``price`` is the listed price the buyer has to meet; ``payment`` is what
    was offered.
    """

    def __init__(
        self, collection: str, asset_id: int, price: int, payment: int
    ) -> None:
        super().__init__(
            f"Payment {payment} does not meet price {price} "
            f"for {collection}#{asset_id}",
            collection=collection,
            asset_id=asset_id,
            price=price,
        )
        self.payment = payment


class NoProceeds(MarketplaceError):
    def __init__(self, account: str) -> None:
        super().__init__(f"{account!r} has no proceeds to withdraw", account=account)


# ---------------------------------------------------------------------------
# Delegated authority
# ---------------------------------------------------------------------------

class NotApprovedForMarketplace(MarketplaceError):
    """Raised when the marketplace is not approved to transfer the asset."""

    def __init__(self, collection: str, asset_id: int, account: str) -> None:
        super().__init__(
            f"Marketplace {account!r} is not approved for {collection}#{asset_id}",
            collection=collection,
            asset_id=asset_id,
            account=account,
        )


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------

class ReentrancyError(MarketplaceError):
    """Raised when a guarded operation is entered while another is running.

    Not correctable within the same call chain.
    """

    def __init__(self, operation: str) -> None:
        super().__init__(f"Re-entrant call to {operation} rejected")
        self.operation = operation


class TransferFailed(MarketplaceError):
    """The asset registry refused or failed the transfer during a purchase."""

    def __init__(
        self, collection: str, asset_id: int, account: str, reason: str
    ) -> None:
        super().__init__(
            f"Transfer of {collection}#{asset_id} to {account!r} failed: {reason}",
            collection=collection,
            asset_id=asset_id,
            account=account,
        )


class PayoutFailed(MarketplaceError):
    """The payment rail failed to pay proceeds out."""

    def __init__(self, account: str, amount: int, reason: str) -> None:
        super().__init__(
            f"Payout of {amount} to {account!r} failed: {reason}",
            account=account,
        )
        self.amount = amount


class RollbackFailed(MarketplaceError):
    """A compensating action failed while rolling back an operation.

    The ledger may be inconsistent with its collaborators; the process
    should stop accepting operations.
    """
