"""Asset registry capability and the BasicNFT test collection."""

from closelake.registry.base import (
    AssetNotFoundError,
    AssetRegistry,
    CollectionRegistry,
    RegistryError,
    TransferNotAuthorizedError,
)
from closelake.registry.basic_nft import BasicNFT

__all__ = [
    "AssetRegistry",
    "CollectionRegistry",
    "BasicNFT",
    "RegistryError",
    "AssetNotFoundError",
    "TransferNotAuthorizedError",
]
