"""CLI entry point (Typer).

Collects controller coordinates and credentials, runs the verification
sequence once and maps the outcome to the exit code: 0 when every executed
stage succeeded, 1 when a stage failed, 2 for invalid arguments.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from adapters.http_client import HttpxTransport, build_async_client
from adapters.json_exporter import export_report_json
from cli.ui_components import (
    build_failure_panel,
    print_banner,
    print_guest_skipped,
    print_response,
    print_sites,
    print_stage_result,
    print_stage_start,
    print_success,
)
from core.config import AppSettings
from core.domain.models import Credentials, Endpoint, GuestAuthRequest
from core.services.diagnostic_pipeline import (
    DiagnosticRequest,
    DiagnosticResult,
    PipelineHooks,
    run_diagnostic,
)
from core.services.session_protocol import SessionProtocolEngine

app = typer.Typer(
    add_completion=False,
    help="Verify that credentials can log in to a UniFi controller and use the session.",
)

_console = Console()
_err_console = Console(stderr=True)


def configure_logging(*, verbose: bool, level: str) -> None:
    """Route log records through Rich on stderr."""

    root_level = logging.DEBUG if verbose else logging.getLevelName(level.upper())
    if not isinstance(root_level, int):
        root_level = logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=_err_console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO; the engine already does.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _build_hooks(request: DiagnosticRequest) -> PipelineHooks:
    return PipelineHooks(
        stage_started=lambda stage: print_stage_start(
            _console,
            stage,
            host=request.endpoint.host,
            port=request.endpoint.port,
            username=request.credentials.username,
            mac=request.guest_mac,
        ),
        stage_finished=lambda result: print_stage_result(_console, result),
        sites_listed=lambda sites: print_sites(_console, sites),
        guest_skipped=lambda: print_guest_skipped(_console),
    )


async def _execute(request: DiagnosticRequest, settings: AppSettings) -> DiagnosticResult:
    client = build_async_client(settings, insecure=request.endpoint.insecure)
    async with HttpxTransport(client) as transport:
        engine = SessionProtocolEngine(
            transport,
            on_response=lambda stage, response: print_response(_console, stage, response),
        )
        return await run_diagnostic(engine, request, hooks=_build_hooks(request))


@app.command()
def check(
    controller: str | None = typer.Option(None, "--controller", help="Controller hostname or IP."),
    port: int | None = typer.Option(None, "--port", min=1, max=65535, help="Controller HTTPS port."),
    username: str | None = typer.Option(None, "--username", help="Admin username."),
    password: str | None = typer.Option(
        None,
        "--password",
        help="Admin password (prompted without echo if omitted).",
    ),
    site: str | None = typer.Option(None, "--site", help="Site name for the guest authorization test."),
    insecure: bool = typer.Option(False, "--insecure", help="Skip TLS certificate validation."),
    test_mac: str | None = typer.Option(
        None,
        "--test-mac",
        help="Client MAC to authorize as a guest (the guest test is skipped without it).",
    ),
    json_output: Path | None = typer.Option(
        None,
        "--json-output",
        help="Write the run report as JSON to this path.",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Log in, list sites with the session cookie and optionally authorize a guest MAC."""

    settings = AppSettings()
    configure_logging(verbose=verbose, level=settings.log_level)

    guest_mac = None
    if test_mac is not None:
        try:
            guest_mac = GuestAuthRequest(mac_address=test_mac).mac_address
        except ValidationError as exc:
            raise typer.BadParameter(f"invalid MAC address: {test_mac!r}", param_hint="--test-mac") from exc

    if password is None:
        password = typer.prompt("Enter UniFi admin password", hide_input=True)

    request = DiagnosticRequest(
        endpoint=Endpoint(
            host=controller or settings.controller,
            port=port or settings.port,
            insecure=insecure or settings.insecure,
        ),
        credentials=Credentials(username=username or settings.username, password=password),
        site=site or settings.site,
        guest_mac=guest_mac,
    )

    print_banner(_console)
    result = asyncio.run(_execute(request, settings))

    if json_output is not None:
        path = export_report_json(report=result.to_report(request), output_path=json_output)
        _console.print(f"\nReport written to: {path}", style="dim")

    if not result.succeeded:
        if result.error is not None and result.failed_stage is not None:
            _err_console.print(build_failure_panel(result.failed_stage, result.error))
        else:
            _err_console.print("[bold red]Test failed! ❌[/bold red]")
        raise typer.Exit(code=1)

    print_success(_console)


def run() -> None:
    app()
