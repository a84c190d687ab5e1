"""Main Typer application — imports and registers all CLI commands.

Entry point: ``closelake`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from closelake.cli.commands.demo import demo_cmd
from closelake.cli.commands.events_cmd import events_cmd
from closelake.cli.commands.status_cmd import status_cmd
from closelake.cli.commands.verify_cmd import verify_cmd
from closelake.config import config
from closelake.core.production_guard import enforce_production_constraints

app = typer.Typer(
    name="closelake",
    help="CloseLake: a non-custodial NFT marketplace ledger.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="demo", help="Run the list / buy / withdraw scenario.")(demo_cmd)
app.command(name="events", help="List entries of the event journal.")(events_cmd)
app.command(name="status", help="Show listings and proceeds replayed from the journal.")(status_cmd)
app.command(name="verify", help="Verify the journal hash chain.")(verify_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Override CLOSELAKE_LOG_LEVEL."
    ),
) -> None:
    """Configure logging and check production settings before any command."""
    logging.basicConfig(
        level=(log_level or config.log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=config.debug, show_path=False)],
        force=True,
    )
    enforce_production_constraints(config)


@app.command(name="config", help="Show the active configuration.")
def config_cmd() -> None:
    """Print the settings resolved from the environment and .env file."""
    from rich.console import Console
    from rich.table import Table

    console = Console()
    table = Table(title="CloseLake Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in config.model_dump().items():
        table.add_row(name, "[dim]None[/dim]" if value is None else str(value))
    table.add_row("is_production", str(config.is_production))
    console.print(table)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
