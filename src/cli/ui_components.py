"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets the pipeline hooks render progress without knowing about Rich.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.errors import ControllerTestError
from core.domain.models import Site, Stage, StageResult
from core.interfaces.transport import TransportResponse

_TITLE = "UniFi Controller Authentication Test"


def print_banner(console: Console) -> None:
    console.print(Text(_TITLE, style="bold cyan"))
    console.print("=" * len(_TITLE), style="cyan")


def print_stage_start(console: Console, stage: Stage, *, host: str, port: int, username: str, mac: str | None) -> None:
    if stage is Stage.LOGIN:
        console.print(f"Attempting to authenticate to {host}:{port} with username: {username}")
    elif stage is Stage.SITES:
        console.print("\nAttempting to retrieve sites list to verify authentication...")
    else:
        console.print(f"\nAttempting to authorize guest MAC: {mac}...")


def print_response(console: Console, stage: Stage, response: TransportResponse) -> None:
    """Echo the status line (and for login, whether a cookie came back)."""

    if stage is Stage.LOGIN:
        console.print(f"Login response status code: {response.status_code}")
        if response.is_success:
            present = "true" if response.headers.get("set-cookie") else "false"
            console.print(f"Set-Cookie header present: {present}")
    else:
        console.print(f"{stage.label()} response status code: {response.status_code}", style="dim")


def print_stage_result(console: Console, result: StageResult) -> None:
    if not result.ok:
        return
    if result.stage is Stage.SITES:
        console.print("[green]✅ Authentication successful![/green]")
    elif result.stage is Stage.GUEST:
        console.print("[green]✅ Guest authorization successful![/green]")


def build_sites_table(sites: list[Site]) -> Table:
    """Rich table for the sites list, in server order."""

    table = Table(title="Available sites", title_justify="left")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white", no_wrap=True)
    table.add_column("Description", style="magenta")
    for site in sites:
        table.add_row(site.id, site.name, site.description)
    return table


def print_sites(console: Console, sites: list[Site]) -> None:
    console.print()
    if not sites:
        console.print("No sites found", style="yellow")
        return
    console.print(build_sites_table(sites))


def print_guest_skipped(console: Console) -> None:
    console.print("\nSkipping guest authorization test (no MAC address provided)", style="dim")


def build_failure_panel(stage: Stage, error: ControllerTestError) -> Panel:
    """Panel for the error that halted the run."""

    body = Text()
    body.append(f"Stage: {stage.label()}\n", style="bold")
    body.append(str(error))
    if error.suggestion:
        body.append(f"\n\n{error.suggestion}", style="dim")
    return Panel(body, title=Text("Test failed! ❌", style="bold red"), border_style="red")


def print_success(console: Console) -> None:
    console.print("\n[bold green]All tests completed successfully! ✅[/bold green]")
