"""``closelake status`` — show the ledger replayed from the event journal.

The status view is a pure read-only projection: listings and proceeds are
recomputed from the journal on every call.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from closelake.config import config
from closelake.core.journal import EventJournal, JournalIntegrityError
from closelake.monitor.projection import MarketProjection
from closelake.monitor.renderer import MarketRenderer

console = Console()


def status_cmd(
    journal_db: str = typer.Option(
        str(config.journal_path or ".closelake/journal.db"),
        "--journal",
        "-j",
        help="Path to the event journal SQLite database.",
    ),
) -> None:
    """Show active listings, proceeds and sales totals."""
    db_path = Path(journal_db)
    if not db_path.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {journal_db}")
        raise typer.Exit(code=1)

    projection = MarketProjection(EventJournal(db_path))
    try:
        snapshot = projection.snapshot()
    except JournalIntegrityError as exc:
        console.print(f"[bold red]Journal cannot be replayed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    MarketRenderer(console=console).print_snapshot(snapshot)
    if not snapshot.chain_valid:
        raise typer.Exit(code=1)
