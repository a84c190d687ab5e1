"""CloseLake CLI — Typer-based command-line interface.

Provides the ``closelake`` command with subcommands for running the demo
marketplace scenario, inspecting and verifying the event journal, and
showing the ledger projected from it.

All output uses Rich for formatted terminal display.
"""
