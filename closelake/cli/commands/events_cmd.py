"""``closelake events`` — list entries of the event journal."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from closelake.config import config
from closelake.core.journal import EventJournal
from closelake.models.events import EventKind
from closelake.models.journal import JournalQuery
from closelake.monitor.renderer import MarketRenderer

console = Console()


def events_cmd(
    collection: str = typer.Option(
        None, "--collection", "-c", help="Only events for this collection."
    ),
    asset_id: int = typer.Option(
        None, "--asset", "-a", help="Only events for this asset id."
    ),
    actor: str = typer.Option(
        None, "--actor", help="Only events performed by this account."
    ),
    kind: EventKind = typer.Option(
        None, "--kind", "-k", help="Only events of this kind."
    ),
    limit: int = typer.Option(100, "--limit", "-n", help="Maximum entries to show."),
    journal_db: str = typer.Option(
        str(config.journal_path or ".closelake/journal.db"),
        "--journal",
        "-j",
        help="Path to the event journal SQLite database.",
    ),
) -> None:
    """List journal entries, oldest first, with optional filters."""
    db_path = Path(journal_db)
    if not db_path.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {journal_db}")
        console.print("[dim]Create one first with: closelake demo[/dim]")
        raise typer.Exit(code=1)

    journal = EventJournal(db_path)
    entries = journal.get_entries(
        JournalQuery(
            collection=collection,
            asset_id=asset_id,
            actor=actor,
            event_kind=kind,
            limit=limit,
        )
    )
    if not entries:
        console.print("[dim]No matching events.[/dim]")
        return

    console.print(MarketRenderer(console=console).journal_table(entries))
