"""
Note Commands.

Create, inspect, open and revoke notes from the terminal. Plaintext is
encrypted locally before anything is sent; the printed link is the only
copy of the key.
"""

import asyncio

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from modules.backend.core.exceptions import ApplicationError
from modules.cli.capability import DecryptionError, InvalidLinkError, format_remaining
from modules.cli.client import APIClient
from modules.cli.notes import IdentityVerificationError, IdentityVerifier, NoteClient

app = typer.Typer(help="Create and read self-destructing notes")
console = Console()

TOKEN_ENVVAR = "PRIVE_NOTE_TOKEN"


class PromptVerifier(IdentityVerifier):
    """Interactive stand-in for the external identity check."""

    def verify(self, subject_id: str) -> bool:
        return typer.confirm(f"Confirm you are {subject_id}", default=False)


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


@app.command()
def create(
    text: str = typer.Option(
        ..., "--text", "-t", prompt=True, hide_input=True, help="Note text",
    ),
    ttl: float = typer.Option(60, "--ttl", help="Minutes until the note expires"),
    view_once: bool = typer.Option(False, "--view-once", help="Destroy after the first read"),
    attempts: int | None = typer.Option(
        None, "--attempts", "-a", help="Failed identity checks allowed",
    ),
    token: str = typer.Option(..., "--token", envvar=TOKEN_ENVVAR, help="Owner bearer token"),
) -> None:
    """
    Encrypt a note locally and print its share link.

    Examples:
        cli.py note create --ttl 5 --view-once
        cli.py note create -t "ABCD" --attempts 3
    """
    asyncio.run(_create(text, ttl, view_once, attempts, token))


async def _create(
    text: str, ttl: float, view_once: bool, attempts: int | None, token: str,
) -> None:
    try:
        async with APIClient(token=token) as api:
            created = await NoteClient(api).create(
                text, ttl_minutes=ttl, view_once=view_once, attempt_limit=attempts,
            )
    except ApplicationError as e:
        _fail(e.message)
    except httpx.HTTPError:
        _fail("Cannot connect to backend")

    console.print(Panel(created.link, title="Share link", subtitle="The key lives only in this link"))
    console.print(f"[dim]Note {created.note_id} expires at {created.expires_at.isoformat()} UTC[/dim]")


@app.command()
def status(
    link: str = typer.Argument(..., help="Note link or note id"),
) -> None:
    """
    Show expiry countdown and attempts left without opening the note.

    Examples:
        cli.py note status "http://127.0.0.1:5500/view?id=...#key=..."
    """
    asyncio.run(_status(link))


async def _status(link: str) -> None:
    try:
        async with APIClient() as api:
            state = await NoteClient(api).status(link)
    except (ApplicationError, InvalidLinkError) as e:
        _fail(getattr(e, "message", str(e)))
    except httpx.HTTPError:
        _fail("Cannot connect to backend")

    table = Table(title="Note Status", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Note", state.note_id)
    table.add_row("Expires in", format_remaining(state.time_left))
    table.add_row("View once", "yes" if state.view_once else "no")
    table.add_row(
        "Attempts left",
        "unlimited" if state.attempts_remaining is None else str(state.attempts_remaining),
    )
    console.print(table)


@app.command("open")
def open_note(
    link: str = typer.Argument(..., help="Note link including the #key fragment"),
    subject: str = typer.Option(..., "--subject", "-s", prompt=True, help="Identity to verify"),
) -> None:
    """
    Verify identity, decrypt the note and mark it read.

    View-once notes are destroyed by this command.

    Examples:
        cli.py note open "http://127.0.0.1:5500/view?id=...#key=..." -s alice@example.com
    """
    asyncio.run(_open(link, subject))


async def _open(link: str, subject: str) -> None:
    try:
        async with APIClient() as api:
            plaintext = await NoteClient(api).open(link, PromptVerifier(), subject)
    except IdentityVerificationError as e:
        _fail(str(e))
    except (InvalidLinkError, DecryptionError) as e:
        _fail(str(e))
    except ApplicationError as e:
        _fail(e.message)
    except httpx.HTTPError:
        _fail("Cannot connect to backend")

    console.print(Panel(plaintext, title="Note"))


@app.command()
def revoke(
    link: str = typer.Argument(..., help="Note link or note id"),
    token: str = typer.Option(..., "--token", envvar=TOKEN_ENVVAR, help="Owner bearer token"),
) -> None:
    """
    Permanently delete a note you created.

    Examples:
        cli.py note revoke <note-id>
    """
    asyncio.run(_revoke(link, token))


async def _revoke(link: str, token: str) -> None:
    try:
        async with APIClient(token=token) as api:
            await NoteClient(api).revoke(link)
    except (ApplicationError, InvalidLinkError) as e:
        _fail(getattr(e, "message", str(e)))
    except httpx.HTTPError:
        _fail("Cannot connect to backend")

    console.print("[green]✓ Note revoked[/green]")
