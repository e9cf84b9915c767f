from __future__ import annotations

import asyncio
import json
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from .browser import BrowserMirror
from .engine import NavigationEngine
from .errors import StoreUnavailableError
from .settings import load_settings
from .store import SqliteStore

app = typer.Typer(
    add_completion=False,
    help="tabnav: recently-used tab history + switch API",
    rich_markup_mode="rich",
)
console = Console()


def _engine(settings) -> NavigationEngine:
    # History inspection never touches the browser; an empty mirror is enough.
    return NavigationEngine(
        SqliteStore(settings.TABNAV_STORE_PATH),
        BrowserMirror(),
        capacity=settings.TABNAV_HISTORY_CAPACITY,
    )


@app.command("status", help="[bold cyan]S[/bold cyan]how configuration and history size")
def status():
    """Show configuration and how many tabs are remembered."""
    s = load_settings()

    console.print(Panel.fit(
        "\n".join([
            f"[bold]Store:[/bold]          {s.TABNAV_STORE_PATH}",
            f"[bold]API Server:[/bold]     http://{s.TABNAV_API_HOST}:{s.TABNAV_API_PORT}",
            f"[bold]Capacity:[/bold]       {s.TABNAV_HISTORY_CAPACITY} tabs",
            f"[bold]Double press:[/bold]   {s.TABNAV_DOUBLE_PRESS_MS} ms",
            f"[bold]Switch command:[/bold] {s.TABNAV_SWITCH_COMMAND}",
        ]),
        title="[bold]Configuration[/bold]"
    ))

    try:
        tabs, anchor = asyncio.run(_engine(s).history())
    except StoreUnavailableError as e:
        console.print(f"[yellow]Store not ready:[/yellow] {e}")
        return
    console.print(f"[green]✓[/green] {len(tabs)} tab(s) in history, current tab: [cyan]{anchor}[/cyan]")


@app.command("history", help="[bold cyan]H[/bold cyan]istory of recently used tabs")
def history(
    json_out: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Print the persisted tab history, most recent first."""
    s = load_settings()
    tabs, anchor = asyncio.run(_engine(s).history())

    if json_out:
        print(json.dumps({"tabs": [t.to_dict() for t in tabs], "current_tab_id": anchor}, indent=2))
        return

    if not tabs:
        console.print("[yellow]History is empty.[/yellow]")
        return

    t = Table(title="[bold]Recently used tabs[/bold]")
    t.add_column("#", justify="right", style="dim")
    t.add_column("Tab", style="cyan", no_wrap=True)
    t.add_column("Window", style="magenta")
    t.add_column("", justify="center", width=2)

    for i, tab in enumerate(tabs):
        t.add_row(str(i), str(tab.tab_id), str(tab.window_id), "●" if tab.tab_id == anchor else "")

    console.print(t)


@app.command("clear", help="[bold cyan]C[/bold cyan]lear the tab history")
def clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Forget every remembered tab and the current tab."""
    s = load_settings()
    if not yes and not Confirm.ask("Clear the tab history?", default=False):
        console.print("[dim]Nothing cleared.[/dim]")
        raise typer.Exit(code=1)

    asyncio.run(_engine(s).clear())
    console.print("[green]✓[/green] Tab history cleared")


@app.command("run", help="[bold cyan]R[/bold cyan]un the API server")
@app.command("serve", hidden=True)  # Alias
def run(
    host: Annotated[
        Optional[str],
        typer.Option(help="Host to bind"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option(help="Port to bind"),
    ] = None,
):
    """Start the FastAPI server the browser extension talks to."""
    import uvicorn

    from .logging import setup_logging

    s = load_settings()
    host = host or s.TABNAV_API_HOST
    port = port or s.TABNAV_API_PORT

    log_file = setup_logging(s)

    console.print(Panel.fit(
        f"[bold]API Server starting...[/bold]\n\n"
        f"  URL:  [cyan]http://{host}:{port}[/cyan]\n"
        f"  Docs: [cyan]http://{host}:{port}/docs[/cyan]\n\n"
        f"  Logs: [cyan]{log_file}[/cyan]\n\n"
        f"[dim]Press CTRL+C to stop[/dim]",
        title="[bold green]tabnav API[/bold green]"
    ))

    uvicorn.run(
        "tabnav.app:app",
        host=host,
        port=port,
        reload=False,
        access_log=s.TABNAV_LOG_ACCESS,
        log_config=None,
    )
