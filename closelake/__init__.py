"""CloseLake: a non-custodial NFT marketplace ledger.

Sellers keep custody of the assets they list until a buyer pays, and
withdraw the accumulated proceeds afterwards.  Every operation is atomic
and is recorded in a hash-chained event journal.
"""

__version__ = "0.1.0"
__description__ = "Non-custodial NFT marketplace ledger with a hash-chained event journal"

from closelake.core.marketplace import Marketplace
from closelake.models.listing import Listing

__all__ = ["Marketplace", "Listing", "__version__"]
