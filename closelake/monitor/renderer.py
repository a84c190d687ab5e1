"""Rich terminal renderer for marketplace snapshots and journal entries.

Color scheme
------------
- green   : ListingCreated
- yellow  : ListingCanceled
- cyan    : ItemPurchased
- magenta : ProceedsWithdrawn
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from closelake.config import MarketConfig, config
from closelake.models.events import EventKind
from closelake.models.journal import JournalEntry
from closelake.models.listing import ListingRecord
from closelake.monitor.projection import MarketSnapshot

_KIND_STYLES: dict[EventKind, str] = {
    EventKind.LISTING_CREATED: "green",
    EventKind.LISTING_CANCELED: "yellow",
    EventKind.ITEM_PURCHASED: "cyan",
    EventKind.PROCEEDS_WITHDRAWN: "magenta",
}


class MarketRenderer:
    """Renders market state as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    settings:
        Config used to format amounts.  Defaults to the module singleton.
    """

    def __init__(
        self, console: Console | None = None, settings: MarketConfig | None = None
    ) -> None:
        self.console = console or Console()
        self._settings = settings or config

    def _amount(self, value: int) -> str:
        return self._settings.format_amount(value)

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def listings_table(self, listings: list[ListingRecord]) -> Table:
        table = Table(title="Active Listings", header_style="bold cyan", expand=True)
        table.add_column("Collection", style="cyan")
        table.add_column("Asset", justify="right")
        table.add_column("Price", justify="right", style="green")
        table.add_column("Seller")
        for record in listings:
            table.add_row(
                record.collection,
                str(record.asset_id),
                self._amount(record.price),
                record.seller,
            )
        if not listings:
            table.add_row("[dim]-[/dim]", "", "", "")
        return table

    def proceeds_table(self, proceeds: dict[str, int]) -> Table:
        table = Table(title="Proceeds", header_style="bold cyan", expand=True)
        table.add_column("Account")
        table.add_column("Withdrawable", justify="right")
        for account in sorted(proceeds):
            amount = proceeds[account]
            style = "green" if amount > 0 else "dim"
            table.add_row(account, f"[{style}]{self._amount(amount)}[/{style}]")
        if not proceeds:
            table.add_row("[dim]-[/dim]", "")
        return table

    def journal_table(self, entries: list[JournalEntry]) -> Table:
        table = Table(title="Event Journal", header_style="bold cyan", expand=True)
        table.add_column("#", style="dim", justify="right")
        table.add_column("Time", style="dim")
        table.add_column("Event")
        table.add_column("Asset")
        table.add_column("Actor")
        table.add_column("Details")
        table.add_column("Hash", style="dim")
        for i, entry in enumerate(entries):
            style = _KIND_STYLES.get(entry.event_kind, "")
            asset = (
                f"{entry.collection}#{entry.asset_id}"
                if entry.asset_id is not None
                else "[dim]-[/dim]"
            )
            table.add_row(
                str(i),
                entry.timestamp_utc.strftime("%H:%M:%S"),
                f"[{style}]{entry.event_kind.value}[/{style}]",
                asset,
                entry.actor,
                self._details(entry),
                entry.entry_hash[:12],
            )
        return table

    def _details(self, entry: JournalEntry) -> str:
        payload = entry.payload
        if entry.event_kind == EventKind.LISTING_CREATED:
            return f"price {self._amount(payload['price'])}"
        if entry.event_kind == EventKind.ITEM_PURCHASED:
            details = f"paid {self._amount(payload['payment'])} to {payload['seller']}"
            if payload["payment"] > payload["price"]:
                details += f" [yellow](price {self._amount(payload['price'])})[/yellow]"
            return details
        if entry.event_kind == EventKind.PROCEEDS_WITHDRAWN:
            return self._amount(payload["amount"])
        return "[dim]-[/dim]"

    # ------------------------------------------------------------------
    # Snapshot panel
    # ------------------------------------------------------------------

    def render_snapshot(self, snapshot: MarketSnapshot) -> Panel:
        chain_status = (
            "[green]valid[/green]" if snapshot.chain_valid else "[bold red]BROKEN[/bold red]"
        )
        summary = "  |  ".join([
            f"[bold]Listings:[/bold] {len(snapshot.listings)}",
            f"[bold]Sales:[/bold] {snapshot.sales_count}",
            f"[bold]Volume:[/bold] {self._amount(snapshot.sales_volume)}",
            f"[bold]Events:[/bold] {snapshot.event_count}",
            f"[bold]Chain:[/bold] {chain_status}",
        ])
        content = Group(
            self.listings_table(snapshot.listings),
            Text(""),
            self.proceeds_table(snapshot.proceeds),
            Text(""),
            Text.from_markup(summary),
        )
        return Panel(
            content,
            title="[bold]CloseLake Marketplace[/bold]",
            subtitle=f"Last updated: {snapshot.last_updated.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style="blue",
            padding=(1, 2),
        )

    def print_snapshot(self, snapshot: MarketSnapshot) -> None:
        self.console.print(self.render_snapshot(snapshot))

    def print_chain_verification(self, valid: bool, detail: str = "") -> None:
        """Print a chain verification result."""
        if valid:
            self.console.print("[green]Journal hash chain is valid.[/green]")
        else:
            self.console.print("[bold red]Journal hash chain is BROKEN![/bold red]")
            if detail:
                self.console.print(f"[red]{detail}[/red]")
