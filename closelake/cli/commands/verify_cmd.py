"""``closelake verify`` — verify the journal hash chain."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from closelake.config import config
from closelake.core.journal import EventJournal, JournalIntegrityError
from closelake.monitor.renderer import MarketRenderer

console = Console()


def verify_cmd(
    journal_db: str = typer.Option(
        str(config.journal_path or ".closelake/journal.db"),
        "--journal",
        "-j",
        help="Path to the event journal SQLite database.",
    ),
) -> None:
    """Recompute every entry hash and check the chain links."""
    db_path = Path(journal_db)
    if not db_path.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {journal_db}")
        raise typer.Exit(code=1)

    journal = EventJournal(db_path)
    renderer = MarketRenderer(console=console)
    try:
        journal.verify_chain()
    except JournalIntegrityError as exc:
        renderer.print_chain_verification(False, str(exc))
        raise typer.Exit(code=1)
    renderer.print_chain_verification(True)
    console.print(f"[dim]{journal.count()} entries checked.[/dim]")
