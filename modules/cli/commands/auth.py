"""
Auth Commands.

Development helper for minting owner bearer tokens. Signs with the
JWT_SECRET from config/.env; there is no login flow.
"""

from datetime import timedelta

import typer
from rich.console import Console

from modules.backend.core.security import create_access_token

app = typer.Typer(help="Owner token commands")
console = Console()


@app.command()
def token(
    subject: str = typer.Argument(..., help="Owner id to place in the token subject"),
    minutes: int | None = typer.Option(
        None, "--minutes", "-m", help="Lifetime in minutes (default from security.yaml)",
    ),
) -> None:
    """
    Print a signed access token for an owner id.

    Examples:
        cli.py auth token alice
        export PRIVE_NOTE_TOKEN=$(cli.py auth token alice)
    """
    if not subject.strip():
        console.print("[red]Error: subject must not be empty[/red]")
        raise typer.Exit(1)

    expires = timedelta(minutes=minutes) if minutes else None
    typer.echo(create_access_token({"sub": subject}, expires_delta=expires))
