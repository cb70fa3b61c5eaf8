"""CLI entry point for Gordon Worker, the multi-tenant background job engine.

Provides the ``gordon-worker`` command with subcommands to run the job
loops, serve the status API, run a one-off connectivity check, and manage
tenants.

This is the ONLY module where console output is allowed. All other modules
use ``logging``. Async internals are bridged to typer's synchronous
interface via ``asyncio.run()``.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from Gordon_Worker.config import EngineConfig, load_config
from Gordon_Worker.engine import Engine
from Gordon_Worker.logging_config import configure_logging
from Gordon_Worker.models import CycleReport, JobName, StatusSnapshot, TenantRole, TenantSettings
from Gordon_Worker.services.representative import RepresentativeSelector

# ---------------------------------------------------------------------------
# Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(name="gordon-worker", help="Multi-tenant scheduled job engine")

# Rich console for formatted output
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to the JSON engine config"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Only show warnings and errors")]


def _load(config_path: Path | None, *, verbose: bool, quiet: bool) -> EngineConfig:
    configure_logging(verbose=verbose, quiet=quiet)
    return load_config(config_path)


def _flag(value: bool) -> str:
    return "[green]ONLINE[/green]" if value else "[red]OFFLINE[/red]"


# ---------------------------------------------------------------------------
# run command
# ---------------------------------------------------------------------------


@app.command()
def run(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
    quiet: QuietOption = False,
) -> None:
    """Run all enabled job loops until interrupted (SIGINT/SIGTERM)."""
    engine_config = _load(config, verbose=verbose, quiet=quiet)
    asyncio.run(_run_async(engine_config))


async def _run_async(config: EngineConfig) -> None:
    engine = Engine(config)
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_requested.set)

    await engine.start()
    console.print(f"[bold]Gordon Worker running[/bold] (jobs: {', '.join(config.enabled_jobs)})")
    try:
        waiter = asyncio.create_task(stop_requested.wait())
        loops = asyncio.create_task(engine.wait())
        await asyncio.wait({waiter, loops}, return_when=asyncio.FIRST_COMPLETED)
        waiter.cancel()
        console.print("\n[yellow]Shutdown requested. Waiting for in-flight work...[/yellow]")
    finally:
        await engine.stop()
    console.print("[green]Stopped.[/green]")


# ---------------------------------------------------------------------------
# serve command
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Interface to bind")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to listen on")] = 8000,
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run the job loops behind the FastAPI status API."""
    import uvicorn

    from Gordon_Worker.web import create_app

    engine_config = _load(config, verbose=verbose, quiet=False)
    uvicorn.run(create_app(Engine(engine_config)), host=host, port=port, log_config=None)


# ---------------------------------------------------------------------------
# check command
# ---------------------------------------------------------------------------


@app.command()
def check(
    config: ConfigOption = None,
    verbose: VerboseOption = False,
) -> None:
    """Run one connectivity cycle and print the resulting status."""
    engine_config = _load(config, verbose=verbose, quiet=not verbose)
    asyncio.run(_check_async(engine_config))


async def _check_async(config: EngineConfig) -> None:
    engine = Engine(config)
    await engine.database.connect()
    try:
        console.print("\n[bold]Running connectivity check...[/bold]\n")
        report = await engine.run_once(JobName.CONNECTIVITY)
        _render_status(engine.status(), report)
    finally:
        await engine.stop()


def _render_status(snapshot: StatusSnapshot, report: CycleReport) -> None:
    table = Table(title="System Status")
    table.add_column("Check", style="bold", width=18)
    table.add_column("Status", width=12)
    table.add_column("Details", width=48)

    table.add_row("Database", _flag(snapshot.database_online), report.abort_reason or "")
    table.add_row(
        "Banking API",
        _flag(snapshot.primary_external_api_online),
        snapshot.last_external_api_check.isoformat() if snapshot.last_external_api_check else "never checked",
    )
    table.add_row("AI primary", _flag(snapshot.ai_primary_online), snapshot.primary_ai_error or "")
    table.add_row("AI fallback", _flag(snapshot.ai_fallback_online), snapshot.fallback_ai_error or "")
    console.print(table)

    representative = snapshot.representative_tenant_id
    console.print(
        f"\nRepresentative tenant: {representative if representative is not None else '[yellow]none[/yellow]'}"
    )
    console.print(
        f"Tenants: {report.succeeded} succeeded, {report.skipped} skipped, {report.failed} failed"
    )
    if snapshot.last_error:
        console.print(f"[red]Last error:[/red] {snapshot.last_error}")


# ---------------------------------------------------------------------------
# tenants commands
# ---------------------------------------------------------------------------


@app.command()
def tenants(
    config: ConfigOption = None,
) -> None:
    """List tenants and the representative the current policy selects."""
    engine_config = _load(config, verbose=False, quiet=True)
    asyncio.run(_tenants_async(engine_config))


async def _tenants_async(config: EngineConfig) -> None:
    from Gordon_Worker.data import Database, Repository

    async with Database(config.db_path) as db:
        repo = Repository(db)
        all_tenants = await repo.list_tenants()
        configured = set(await repo.list_configured_tenant_ids())
        representative = await RepresentativeSelector(repo, config.representative_policy).select()

    if not all_tenants:
        console.print("[yellow]No tenants found.[/yellow]")
        return

    table = Table(title="Tenants")
    table.add_column("ID", justify="right", width=5)
    table.add_column("Username", style="bold", width=20)
    table.add_column("Role", width=8)
    table.add_column("System", width=7)
    table.add_column("Settings", width=9)
    table.add_column("Representative", width=15)
    for tenant in all_tenants:
        table.add_row(
            str(tenant.id),
            tenant.username,
            str(tenant.role),
            "yes" if tenant.is_system else "",
            "yes" if tenant.id in configured else "[yellow]missing[/yellow]",
            "[green]*[/green]" if tenant.id == representative else "",
        )
    console.print(table)


@app.command("add-tenant")
def add_tenant(
    username: Annotated[str, typer.Argument(help="Login name of the new tenant")],
    role: Annotated[TenantRole, typer.Option(help="Tenant role")] = TenantRole.USER,
    system: Annotated[bool, typer.Option("--system", help="Flag as the system account")] = False,
    settings_file: Annotated[
        Path | None,
        typer.Option("--settings", help="JSON file with the tenant's settings"),
    ] = None,
    config: ConfigOption = None,
) -> None:
    """Create a tenant, optionally storing its settings document."""
    engine_config = _load(config, verbose=False, quiet=True)
    settings: TenantSettings | None = None
    if settings_file is not None:
        settings = TenantSettings.model_validate_json(settings_file.read_text(encoding="utf-8"))
    asyncio.run(_add_tenant_async(engine_config, username, role, system, settings))


async def _add_tenant_async(
    config: EngineConfig,
    username: str,
    role: TenantRole,
    is_system: bool,
    settings: TenantSettings | None,
) -> None:
    from Gordon_Worker.data import Database, Repository, SettingsStore

    async with Database(config.db_path) as db:
        tenant = await Repository(db).add_tenant(username, role=role, is_system=is_system)
        if settings is not None:
            await SettingsStore(db).save_settings(tenant.id, settings)

    console.print(
        f"[green]Created tenant {tenant.id}[/green] ({tenant.username}, {tenant.role}"
        f"{', system' if tenant.is_system else ''}{', settings stored' if settings else ''})"
    )


if __name__ == "__main__":
    app()
