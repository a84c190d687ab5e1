"""Asset registry capability consumed by the marketplace.

The marketplace never implements asset custody.  It asks a registry who
owns an asset, whether the marketplace is approved to move it, and to
execute the transfer at purchase time.

``CollectionRegistry`` is the default implementation: it routes each call
to the ``BasicNFT`` collection registered under the collection address.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from closelake.registry.basic_nft import BasicNFT

logger = logging.getLogger(__name__)


class RegistryError(RuntimeError):
    """Base class for asset registry failures."""


class AssetNotFoundError(RegistryError):
    """Raised when a collection or asset does not exist."""


class TransferNotAuthorizedError(RegistryError):
    """Raised when a transfer or approval is not permitted."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class AssetRegistry(Protocol):
    """Ownership, approval and transfer for non-fungible assets."""

    def owner_of(self, collection: str, asset_id: int) -> str:
        """Return the current owner.  Raises ``AssetNotFoundError``."""
        ...

    def get_approved(self, collection: str, asset_id: int) -> str | None:
        """Return the account approved to transfer the asset, if any."""
        ...

    def transfer(
        self,
        collection: str,
        asset_id: int,
        from_account: str,
        to_account: str,
        operator: str,
    ) -> None:
        """Move the asset from *from_account* to *to_account*.

        *operator* is the account executing the transfer and must be the
        owner or the approved account.  May call back into the marketplace
        before returning.
        """
        ...


# ---------------------------------------------------------------------------
# Default implementation
# ---------------------------------------------------------------------------


class CollectionRegistry:
    """Routes registry calls to in-memory ``BasicNFT`` collections.

    Examples
    --------
    >>> from closelake.registry.basic_nft import BasicNFT
    >>> registry = CollectionRegistry()
    >>> nft = registry.register(BasicNFT(address="0xnft"))
    >>> token_id = nft.mint_nft("alice")
    >>> registry.owner_of("0xnft", token_id)
    'alice'
    """

    def __init__(self) -> None:
        self._collections: dict[str, BasicNFT] = {}

    def register(self, nft: BasicNFT) -> BasicNFT:
        if nft.address in self._collections:
            raise ValueError(f"Collection {nft.address!r} is already registered")
        self._collections[nft.address] = nft
        logger.debug("Registered collection %s (%s).", nft.address, nft.symbol)
        return nft

    def collection(self, address: str) -> BasicNFT:
        try:
            return self._collections[address]
        except KeyError:
            raise AssetNotFoundError(f"Unknown collection {address!r}") from None

    def collections(self) -> list[str]:
        return sorted(self._collections)

    # -- AssetRegistry ------------------------------------------------------

    def owner_of(self, collection: str, asset_id: int) -> str:
        return self.collection(collection).owner_of(asset_id)

    def get_approved(self, collection: str, asset_id: int) -> str | None:
        return self.collection(collection).get_approved(asset_id)

    def transfer(
        self,
        collection: str,
        asset_id: int,
        from_account: str,
        to_account: str,
        operator: str,
    ) -> None:
        self.collection(collection).transfer_from(
            operator, from_account, to_account, asset_id
        )
