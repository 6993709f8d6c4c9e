"""
Health Check Commands.

Commands for checking backend health and status.
"""

import asyncio

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from modules.cli.client import APIClient

app = typer.Typer(help="Health check commands")
console = Console()


@app.command()
def status(
    detailed: bool = typer.Option(False, "--detailed", "-d", help="Show detailed status"),
) -> None:
    """
    Check backend health status (requires running server).

    Shows basic health or detailed component status.

    Examples:
        cli.py health status
        cli.py health status -d
    """
    asyncio.run(_status(detailed))


async def _status(detailed: bool) -> None:
    """Async implementation of status command."""
    path = "/health/detailed" if detailed else "/health/ready"
    try:
        async with APIClient() as client:
            response = await client.get(path)
    except httpx.HTTPError:
        console.print("[red]Error: Cannot connect to backend[/red]")
        console.print("[dim]Is the server running? Start with: python run.py --action server[/dim]")
        raise typer.Exit(1)

    if response.status_code == 200:
        _display_health(response.json(), detailed)
    elif response.status_code == 503:
        _display_health(response.json().get("detail", {}), detailed)
        raise typer.Exit(1)
    else:
        console.print(f"[red]Unexpected response: {response.status_code}[/red]")
        raise typer.Exit(1)


def _display_health(data: dict, detailed: bool) -> None:
    """Display health check results."""
    status = data.get("status", "unknown")
    status_color = "green" if status == "healthy" else "red" if status == "unhealthy" else "yellow"

    if detailed and "checks" in data:
        table = Table(title="Health Status", show_header=True)
        table.add_column("Component", style="cyan")
        table.add_column("Status")
        table.add_column("Details")

        for component, check_data in data.get("checks", {}).items():
            check_status = check_data.get("status", "unknown")
            color = "green" if check_status == "healthy" else "red"

            details = []
            if "latency_ms" in check_data:
                details.append(f"latency: {check_data['latency_ms']}ms")
            if "error" in check_data:
                details.append(f"error: {check_data['error']}")

            table.add_row(
                component,
                f"[{color}]{check_status}[/{color}]",
                ", ".join(details) if details else "-",
            )

        console.print(table)

        if "application" in data:
            app_info = data["application"]
            console.print(f"\n[dim]Application: {app_info.get('name', 'N/A')} v{app_info.get('version', 'N/A')}[/dim]")
            console.print(f"[dim]Environment: {app_info.get('env', 'N/A')}[/dim]")

    else:
        console.print(Panel(
            f"[{status_color}]{status.upper()}[/{status_color}]",
            title="Backend Status",
        ))


@app.command()
def ping() -> None:
    """
    Simple ping to check if backend is reachable.

    Examples:
        cli.py health ping
    """
    asyncio.run(_ping())


async def _ping() -> None:
    """Async implementation of ping command."""
    try:
        async with APIClient() as client:
            response = await client.get("/health")
    except httpx.HTTPError:
        console.print("[red]✗ Backend is not reachable[/red]")
        raise typer.Exit(1)

    if response.status_code == 200:
        console.print("[green]✓ Backend is reachable[/green]")
    else:
        console.print(f"[yellow]Backend responded with status {response.status_code}[/yellow]")
