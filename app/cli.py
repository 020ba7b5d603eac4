"""Typer-based CLI for Capture Cabinet."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import NoReturn

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from app.viewmodels.main_vm import MainVM
from app.wiring import AppServices, build_services
from core.errors import CaptureCabinetError
from core.models import OutcomeKind
from infrastructure.logging import find_latest_log_file, get_log_directory, init_logging
from infrastructure.settings import AppConfig, JsonSettings, load_app_config

DEFAULT_SETTINGS = Path(__file__).resolve().parent.parent / "settings.json"

app = typer.Typer(
    name="capture-cabinet",
    help="Capture Cabinet - file recent screenshots into folders",
    add_completion=False,
)

console = Console()


def _load_config(settings_path: str | None) -> AppConfig:
    path = Path(settings_path or os.environ.get("CAPTURE_CABINET_SETTINGS") or DEFAULT_SETTINGS)
    if not path.exists():
        logger.info("No settings file at {}, using defaults", path)
        return load_app_config(None)
    return load_app_config(JsonSettings(path))


@app.callback()
def main_callback(
    ctx: typer.Context,
    settings: str = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings.json (default: CAPTURE_CABINET_SETTINGS env or ./settings.json)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also log to stderr"),
):
    """Load settings and start logging before any command runs."""
    cfg = _load_config(settings)
    init_logging(cfg.log_dir, cfg.log_level, console_level=cfg.log_level if verbose else None)
    ctx.obj = cfg


def _open(ctx: typer.Context) -> AppServices:
    cfg: AppConfig = ctx.obj
    try:
        services = build_services(cfg)
    except CaptureCabinetError as ex:
        console.print(f"[red]Error:[/red] {ex}")
        raise typer.Exit(code=1)
    ctx.call_on_close(services.close)
    return services


def _fail(ex: Exception) -> NoReturn:
    logger.error("Command failed: {}", ex)
    console.print(f"[red]Error:[/red] {ex}")
    raise typer.Exit(code=1)


@app.command()
def recent(ctx: typer.Context):
    """List recent screenshots that are not in any folder yet."""
    services = _open(ctx)
    vm = MainVM(services.assignments, services.folders)
    vm.refresh()
    if vm.needs_permission_prompt:
        console.print(
            f"[yellow]Photo library not accessible:[/yellow] {services.source.root}\n"
            "Grant read access to the screenshot folder and try again."
        )
        raise typer.Exit(code=1)
    if not vm.recent:
        console.print("[dim]No recent screenshots.[/dim]")
        return

    table = Table(title=f"Recent screenshots ({len(vm.recent)})")
    table.add_column("Asset", style="cyan")
    table.add_column("Captured")
    table.add_column("Size", justify="right")
    for item in vm.recent:
        table.add_row(item.asset_ref, item.captured_label, item.size_label)
    console.print(table)


@app.command()
def folders(ctx: typer.Context):
    """List folders with their screenshot counts."""
    services = _open(ctx)
    rows = services.folders.summaries()
    if not rows:
        console.print("[dim]No folders.[/dim]")
        return
    table = Table(title="Folders")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Screenshots", justify="right")
    for row in rows:
        table.add_row(row.id, row.name, str(row.screenshot_count))
    console.print(table)


@app.command("create-folder")
def create_folder(
    ctx: typer.Context,
    name: str = typer.Argument("", help="Folder name (empty uses the placeholder)"),
    assign: str = typer.Option(None, "--assign", "-a", help="Asset to file into the new folder"),
):
    """Create a folder, optionally filing one screenshot into it."""
    services = _open(ctx)
    try:
        if assign:
            folder = services.assignments.create_folder_and_assign(name, assign)
        else:
            folder = services.folders.create(name)
    except CaptureCabinetError as ex:
        _fail(ex)
    console.print(f"[green]Created folder:[/green] {folder.name} ({folder.id})")


@app.command("rename-folder")
def rename_folder(ctx: typer.Context, folder_id: str, name: str):
    """Rename a folder."""
    services = _open(ctx)
    try:
        folder = services.folders.rename(services.folders.get(folder_id), name)
    except CaptureCabinetError as ex:
        _fail(ex)
    console.print(f"[green]Renamed:[/green] {folder.name}")


@app.command("duplicate-folder")
def duplicate_folder(
    ctx: typer.Context,
    folder_id: str,
    shell_only: bool = typer.Option(
        False, "--shell-only", help="Copy the folder without its screenshots"
    ),
):
    """Duplicate a folder together with its screenshot assignments."""
    services = _open(ctx)
    try:
        copy = services.folders.duplicate(
            services.folders.get(folder_id), copy_assignments=not shell_only
        )
    except CaptureCabinetError as ex:
        _fail(ex)
    console.print(f"[green]Duplicated:[/green] {copy.name} ({copy.id})")


@app.command("delete-folder")
def delete_folder(
    ctx: typer.Context,
    folder_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a folder and all of its screenshot assignments."""
    services = _open(ctx)
    try:
        folder = services.folders.get(folder_id)
        if not yes and not typer.confirm(f"Delete '{folder.name}' permanently?"):
            raise typer.Exit(code=0)
        services.folders.delete(folder)
    except CaptureCabinetError as ex:
        _fail(ex)
    console.print(f"[green]Deleted:[/green] {folder.name}")


@app.command()
def assign(
    ctx: typer.Context,
    folder_id: str,
    asset_refs: list[str] = typer.Argument(..., help="Assets to file"),
):
    """File one or more screenshots into a folder."""
    services = _open(ctx)
    try:
        folder = services.folders.get(folder_id)
        outcomes = services.assignments.assign_batch(asset_refs, folder)
    except CaptureCabinetError as ex:
        _fail(ex)

    styles = {
        OutcomeKind.ASSIGNED: "green",
        OutcomeKind.ALREADY_ASSIGNED: "yellow",
        OutcomeKind.FAILED: "red",
    }
    for ref, outcome in outcomes.items():
        style = styles[outcome.kind]
        suffix = f" ({outcome.reason})" if outcome.reason else ""
        console.print(f"[{style}]{outcome.kind.value}[/{style}] {ref}{suffix}")
    if any(o.kind is OutcomeKind.FAILED for o in outcomes.values()):
        raise typer.Exit(code=1)


@app.command("show-folder")
def show_folder(ctx: typer.Context, folder_id: str):
    """List the screenshots filed in a folder, newest first."""
    services = _open(ctx)
    try:
        folder = services.folders.get(folder_id)
        shots = services.folders.screenshots(folder)
    except CaptureCabinetError as ex:
        _fail(ex)
    table = Table(title=f"{folder.name} ({len(shots)})")
    table.add_column("Asset", style="cyan")
    table.add_column("Filed at")
    for shot in shots:
        table.add_row(shot.asset_ref, shot.created_at.astimezone().strftime("%Y-%m-%d %H:%M"))
    console.print(table)


@app.command()
def discard(ctx: typer.Context, asset_ref: str):
    """Move a screenshot to the recycle bin."""
    services = _open(ctx)
    try:
        ok = services.assignments.discard(asset_ref)
    except CaptureCabinetError as ex:
        _fail(ex)
    if not ok:
        console.print(f"[red]Could not delete:[/red] {asset_ref}")
        raise typer.Exit(code=1)
    console.print(f"[green]Moved to recycle bin:[/green] {asset_ref}")


@app.command()
def capture(
    ctx: typer.Context,
    asset_ref: str = typer.Argument(None, help="Captured asset (default: newest screenshot)"),
    folder_id: str = typer.Option(
        None, "--folder", "-f", help="Folder picked in the Live Activity"
    ),
):
    """Show the Live Activity for a capture and optionally deliver a folder pick."""
    services = _open(ctx)

    async def _run() -> None:
        async with services.bridge as bridge:
            handle = await bridge.screenshot_captured(asset_ref)
            if handle is None:
                console.print("[yellow]Live Activity unavailable; file it with `assign`.[/yellow]")
                return
            console.print(f"[green]Live Activity started:[/green] {handle.session_id}")
            if folder_id is None:
                return
            outcome = await bridge.folder_selected(handle, folder_id)
        if outcome is not None:
            console.print(f"{outcome.kind.value}: {outcome.asset_ref}")

    asyncio.run(_run())


@app.command()
def logs(ctx: typer.Context):
    """Print the path of the latest log file."""
    cfg: AppConfig = ctx.obj
    log_dir = cfg.log_dir or get_log_directory()
    latest = find_latest_log_file(log_dir)
    if latest is None:
        console.print(f"[dim]No log files in {log_dir}[/dim]")
        raise typer.Exit(code=1)
    console.print(str(latest))
