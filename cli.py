#!/usr/bin/env python3
"""
Note CLI.

Command-line client for the note backend.
Built with Typer for type-safe commands and Rich for formatted output.

Usage:
    python cli.py --help                          # Show help

    # Owner token (development)
    export PRIVE_NOTE_TOKEN=$(python cli.py auth token alice)

    # Notes
    python cli.py note create --ttl 5 --view-once # Prompts for the text
    python cli.py note status "<link>"            # Countdown and attempts left
    python cli.py note open "<link>" -s alice     # Verify, decrypt, consume
    python cli.py note revoke "<link>"            # Owner delete

    # Database migrations
    python cli.py db current                      # Show current revision
    python cli.py db upgrade                      # Upgrade to latest

    # Health checks
    python cli.py health status                   # Backend health (requires server)
    python cli.py health ping                     # Ping backend

Options:
    --verbose, -v     Enable verbose output
    --debug, -d       Enable debug mode (detailed logging)
    --help            Show help message
"""

import sys
from pathlib import Path

import typer
from rich.console import Console

# Add project root to path for absolute imports
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from modules.backend.core.logging import setup_logging
from modules.cli.commands import auth_app, db_app, health_app, note_app

app = typer.Typer(
    name="cli",
    help="Prive Note CLI - encrypted self-destructing notes, migrations and health.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

# Register command groups
app.add_typer(note_app, name="note")
app.add_typer(auth_app, name="auth")
app.add_typer(db_app, name="db")
app.add_typer(health_app, name="health")


def _validate_project_root() -> None:
    """Validate that we're running from the project root."""
    if not (project_root / ".project_root").exists():
        console.print("[red]Error: .project_root not found. Run from project root.[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (INFO level logging)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug mode (DEBUG level logging)",
    ),
) -> None:
    """
    Prive Note CLI.

    Create and read client-side encrypted notes, manage migrations and
    check backend health.
    """
    _validate_project_root()

    if debug:
        setup_logging(level="DEBUG", format_type="console")
        console.print("[dim]Debug mode enabled[/dim]")
    elif verbose:
        setup_logging(level="INFO", format_type="console")
    else:
        setup_logging(level="WARNING", format_type="console")


if __name__ == "__main__":
    app()
