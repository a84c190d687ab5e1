"""``closelake demo`` — run the marketplace against in-memory collaborators.

Mints a BasicNFT to a seller, approves the marketplace, lists it, lets a
buyer purchase it and the seller withdraw the proceeds.  Every event is
written to the journal and the ledger is saved to the state file even
when a step fails, so the two always agree.  An existing state file is
loaded first and its listed assets are minted back to their sellers, so
repeated runs keep one consistent ledger and journal.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from closelake.config import config
from closelake.core.errors import MarketplaceError
from closelake.core.event_bus import EventBus
from closelake.core.journal import EventJournal
from closelake.core.marketplace import Marketplace
from closelake.monitor.projection import MarketProjection
from closelake.monitor.renderer import MarketRenderer
from closelake.payments.rail import WalletRail
from closelake.registry.base import CollectionRegistry
from closelake.registry.basic_nft import BasicNFT

console = Console()


def demo_cmd(
    price: int = typer.Option(
        100,
        "--price",
        "-p",
        help="Listing price in the smallest currency unit.",
    ),
    payment: int = typer.Option(
        None,
        "--payment",
        help="Amount the buyer pays (defaults to the price). Overpayment goes to the seller.",
    ),
    journal_db: str = typer.Option(
        str(config.journal_path or ".closelake/journal.db"),
        "--journal",
        "-j",
        help="Path to the event journal SQLite database.",
    ),
    state_file: str = typer.Option(
        str(config.state_path),
        "--state",
        "-s",
        help="Where to save the final ledger state.",
    ),
    withdraw: bool = typer.Option(
        True,
        "--withdraw/--no-withdraw",
        help="Have the seller withdraw proceeds at the end.",
    ),
) -> None:
    """Run the list / buy / withdraw scenario and show the result."""
    seller, buyer = "deployer", "player"
    payment = price if payment is None else payment

    bus = EventBus()
    journal = EventJournal(Path(journal_db)).attach(bus)
    registry = CollectionRegistry()
    payments = WalletRail()
    market = Marketplace(registry, payments, bus=bus)
    nft = registry.register(BasicNFT(address="0xbasicnft"))
    if market.load_state(Path(state_file)):
        console.print(f"[dim]Resumed ledger from {state_file}[/dim]")
        payments.fund_custody(market.get_stats()["outstanding_proceeds"])
        _remint_listed(market, nft)

    payments.fund(buyer, max(payment, 0))

    try:
        token_id = nft.mint_nft(seller)
        nft.approve(seller, market.account, token_id)
        market.list_item(nft.address, token_id, price, seller)
        console.print(
            f"[green]Listed[/green] {nft.address}#{token_id} at {config.format_amount(price)}"
        )
        market.buy_item(nft.address, token_id, payment, buyer)
        console.print(
            f"[cyan]Bought[/cyan] by {buyer} for {config.format_amount(payment)}; "
            f"owner is now {nft.owner_of(token_id)}"
        )
        if withdraw:
            amount = market.withdraw_proceeds(seller)
            console.print(
                f"[magenta]Withdrew[/magenta] {config.format_amount(amount)} for {seller}"
            )
    except MarketplaceError as exc:
        console.print(
            Panel(
                f"[bold]{exc.code}[/bold]: {exc}",
                title="[bold red]Marketplace error[/bold red]",
                border_style="red",
            )
        )
        raise typer.Exit(code=1)
    finally:
        market.persist_state(Path(state_file))

    console.print()
    renderer = MarketRenderer(console=console)
    renderer.print_snapshot(MarketProjection(journal).snapshot())
    console.print(f"[dim]Journal: {journal_db}  State: {state_file}[/dim]")


def _remint_listed(market: Marketplace, nft: BasicNFT) -> None:
    """Give still-listed assets of a resumed ledger back to their sellers.

    The collection lives only in memory, so tokens are minted up to the
    highest listed id and listed ones are re-approved for the marketplace.
    """
    for record in market.listings(collection=nft.address):
        while nft.token_counter <= record.asset_id:
            nft.mint_nft(record.seller)
        if nft.owner_of(record.asset_id) == record.seller:
            nft.approve(record.seller, market.account, record.asset_id)
