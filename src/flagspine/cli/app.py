"""
Root Typer application for the flagspine CLI.

One-shot commands for inspecting what an endpoint serves, without starting
a background refresh thread.
"""

from __future__ import annotations

import json

import httpx
import typer
from rich.console import Console
from rich.table import Table
from typer import Typer

from flagspine import __version__
from flagspine.core.auth import BearerTokenAuthenticator, StaticHeadersAuthenticator
from flagspine.core.errors import ConfigError, FlagSpineError
from flagspine.core.logging import configure_logging
from flagspine.core.settings import FlagSpineSettings
from flagspine.flags.identity import ComputeResource
from flagspine.flags.models import FeatureFlagsResponse
from flagspine.flags.refresh import RefreshEngine
from flagspine.flags.snapshot import SnapshotStore, is_truthy

console = Console()
err_console = Console(stderr=True)

app = Typer(
    name="flagspine",
    help="Inspect remote feature flags.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"flagspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Fetch and check feature flags for a compute endpoint."""


# ── Helpers ──────────────────────────────────────────────────────────────


def _fetch(host: str, resource_id: str, token: str | None) -> FeatureFlagsResponse:
    """Run one request and return the decoded response (raises on failure)."""
    settings = FlagSpineSettings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs)
    try:
        identity = ComputeResource(host=host, unique_id=resource_id)
    except ValueError as e:
        raise ConfigError(str(e), cause=e) from e
    authenticator = BearerTokenAuthenticator(token) if token else StaticHeadersAuthenticator()
    with httpx.Client(timeout=settings.request_timeout_seconds) as client:
        engine = RefreshEngine(
            identity,
            authenticator,
            client,
            SnapshotStore(),
            product_version=settings.product_version,
        )
        return engine.fetch()


def _fail(error: FlagSpineError) -> None:
    err_console.print(f"[red]Error:[/red] {error.message}")
    raise typer.Exit(code=2)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("fetch")
def fetch(
    host: str = typer.Option(..., "--host", "-H", help="Endpoint host name."),
    resource_id: str = typer.Option(..., "--resource-id", "-r", help="Warehouse/cluster id."),
    token: str | None = typer.Option(None, "--token", envvar="FLAGSPINE_TOKEN"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Fetch all flags once and print them."""
    try:
        response = _fetch(host, resource_id, token)
    except FlagSpineError as e:
        _fail(e)
        return

    flags = response.to_snapshot()
    if json_out:
        typer.echo(json.dumps({"flags": flags, "ttl_seconds": response.effective_ttl}, indent=2))
        return

    table = Table(title=f"Feature flags ({resource_id})")
    table.add_column("Name", style="cyan")
    table.add_column("Value")
    table.add_column("Enabled")
    for name, value in sorted(flags.items()):
        table.add_row(name, value, "yes" if is_truthy(value) else "no")
    console.print(table)
    if response.effective_ttl is not None:
        console.print(f"[dim]ttl_seconds={response.effective_ttl}[/dim]")


@app.command("check")
def check(
    name: str = typer.Argument(..., help="Flag name."),
    host: str = typer.Option(..., "--host", "-H"),
    resource_id: str = typer.Option(..., "--resource-id", "-r"),
    token: str | None = typer.Option(None, "--token", envvar="FLAGSPINE_TOKEN"),
) -> None:
    """Exit 0 if the flag is enabled, 1 otherwise."""
    try:
        response = _fetch(host, resource_id, token)
    except FlagSpineError as e:
        _fail(e)
        return

    enabled = is_truthy(response.to_snapshot().get(name))
    typer.echo(f"{name}: {'enabled' if enabled else 'disabled'}")
    if not enabled:
        raise typer.Exit(code=1)
