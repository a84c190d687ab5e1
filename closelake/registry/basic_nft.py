"""BasicNFT — a minimal non-fungible token collection for tests and demos.

Token ids are minted sequentially from 0.  Every token shares one metadata
URI.  Approval is per token, is granted by the owner, and is cleared by a
transfer.

Transfer hooks run after ownership has moved and before ``transfer_from``
returns, which is where a receiving contract would get control.  A hook
that raises aborts the transfer and ownership is restored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from closelake.registry.base import AssetNotFoundError, TransferNotAuthorizedError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = (
    "ipfs://bafybeig37ioir76s7mg5oobetncojcm3c3hxasyd4rvid4jqhy4gkaheg4/"
    "?filename=0-PUG.json"
)

TransferHook = Callable[[str, int, str, str], None]


class BasicNFT:
    """One collection of sequentially minted tokens.

    Parameters
    ----------
    address:
        Collection identifier, used by the marketplace as the listing key.
    name, symbol:
        Display metadata.
    token_uri:
        Metadata URI returned for every token.
    """

    def __init__(
        self,
        address: str,
        name: str = "Dogie",
        symbol: str = "DOG",
        token_uri: str = DEFAULT_TOKEN_URI,
    ) -> None:
        self.address = address
        self.name = name
        self.symbol = symbol
        self._token_uri = token_uri
        self._owners: dict[int, str] = {}
        self._approvals: dict[int, str] = {}
        self._token_counter = 0
        self._transfer_hooks: list[TransferHook] = []

    @property
    def token_counter(self) -> int:
        return self._token_counter

    def mint_nft(self, to: str) -> int:
        """Mint the next token to *to* and return its id."""
        token_id = self._token_counter
        self._owners[token_id] = to
        self._token_counter += 1
        logger.debug("Minted %s#%d to %s.", self.address, token_id, to)
        return token_id

    def token_uri(self, token_id: int) -> str:
        self._require_exists(token_id)
        return self._token_uri

    def balance_of(self, account: str) -> int:
        return sum(1 for owner in self._owners.values() if owner == account)

    # -- Ownership & approval ----------------------------------------------

    def owner_of(self, token_id: int) -> str:
        self._require_exists(token_id)
        return self._owners[token_id]

    def get_approved(self, token_id: int) -> str | None:
        self._require_exists(token_id)
        return self._approvals.get(token_id)

    def approve(self, caller: str, approved: str | None, token_id: int) -> None:
        """Approve *approved* to transfer *token_id*; ``None`` clears it."""
        owner = self.owner_of(token_id)
        if caller != owner:
            raise TransferNotAuthorizedError(
                f"{caller!r} cannot approve {self.address}#{token_id}: not the owner"
            )
        if approved == owner:
            raise TransferNotAuthorizedError("Approval to current owner")
        if approved is None:
            self._approvals.pop(token_id, None)
        else:
            self._approvals[token_id] = approved

    # -- Transfer -----------------------------------------------------------

    def add_transfer_hook(self, hook: TransferHook) -> None:
        """Call *hook(collection, token_id, from, to)* on every transfer."""
        self._transfer_hooks.append(hook)

    def transfer_from(
        self, operator: str, from_account: str, to_account: str, token_id: int
    ) -> None:
        owner = self.owner_of(token_id)
        if owner != from_account:
            raise TransferNotAuthorizedError(
                f"{from_account!r} does not own {self.address}#{token_id}"
            )
        if operator != owner and self._approvals.get(token_id) != operator:
            raise TransferNotAuthorizedError(
                f"{operator!r} is not approved for {self.address}#{token_id}"
            )
        if not to_account:
            raise TransferNotAuthorizedError("Transfer to the empty account")

        previous_approval = self._approvals.pop(token_id, None)
        self._owners[token_id] = to_account
        try:
            for hook in self._transfer_hooks:
                hook(self.address, token_id, from_account, to_account)
        except Exception:
            self._owners[token_id] = owner
            if previous_approval is not None:
                self._approvals[token_id] = previous_approval
            raise
        logger.info(
            "Transferred %s#%d from %s to %s.",
            self.address,
            token_id,
            from_account,
            to_account,
        )

    def _require_exists(self, token_id: int) -> None:
        if token_id not in self._owners:
            raise AssetNotFoundError(f"Token {self.address}#{token_id} does not exist")
