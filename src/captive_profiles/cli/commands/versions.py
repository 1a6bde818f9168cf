"""Version commands: history, show, export, share and delete."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from captive_profiles.snapshot.version import ConfigurationVersion, version_to_document
from captive_profiles.storage.database import Database, resolve_db_path
from captive_profiles.storage.repositories import VersionStore

console = Console()

DB_PATH_HELP = "Database path (local file or md:name for MotherDuck). Env: CAPTIVE_PROFILES_DB"


def history(
    vendor_name: str = typer.Argument("", help="Vendor name (omit to list all vendors)"),
    owner_id: int = typer.Option(0, help="List versions owned by or shared with this user id"),
    user: str = typer.Option("", help="Username used with --owner-id for shared versions"),
    db_path: str = typer.Option("", help=DB_PATH_HELP),
) -> None:
    """List the versions of a vendor, or a summary of all vendors."""
    try:
        with Database(resolve_db_path(db_path)) as db:
            store = VersionStore(db)
            if vendor_name:
                _print_versions(
                    f"{vendor_name} History",
                    store.list_versions(vendor_name, require_history=True),
                )
            elif owner_id or user:
                _print_versions(f"Accessible Versions ({user or owner_id})", store.list_accessible(owner_id, user))
            else:
                _print_vendors(store.vendor_summaries())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def show(
    version_id: str = typer.Argument(help="Version ID"),
    db_path: str = typer.Option("", help=DB_PATH_HELP),
) -> None:
    """Show one version with its full snapshot."""
    try:
        with Database(resolve_db_path(db_path)) as db:
            version = VersionStore(db).get_version(version_id)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    shared = ", ".join(sorted(version.shared_with_usernames)) or "-"
    console.print(Panel(
        f"[bold]Vendor:[/bold] {version.vendor_name}  [bold]Version:[/bold] {version.version}\n"
        f"[bold]Owner:[/bold] {version.owner_username or version.owner_id}\n"
        f"[bold]Parent:[/bold] {version.parent_version_id or '-'}\n"
        f"[bold]Shared with:[/bold] {shared}\n"
        f"[bold]Created:[/bold] {version.created_at}\n"
        f"[bold]Description:[/bold] {version.description or '-'}",
        title=f"Version {version.id}",
        border_style="cyan",
    ))
    snapshot = version_to_document(version)["snapshot"]
    console.print(Panel(json.dumps(snapshot, indent=2), title="Snapshot"))


def export(
    version_id: str = typer.Argument(help="Version ID"),
    output: str = typer.Option("", help="Write the document here instead of stdout"),
    db_path: str = typer.Option("", help=DB_PATH_HELP),
) -> None:
    """Export a version as a JSON document that `revise --import-file` accepts."""
    try:
        with Database(resolve_db_path(db_path)) as db:
            version = VersionStore(db).get_version(version_id)
        document = json.dumps(version_to_document(version), indent=2)
        if output:
            Path(output).write_text(document, encoding="utf-8")
            console.print(f"[green]Exported {version.vendor_name} v{version.version} to {output}[/green]")
        else:
            print(document)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def share(
    version_id: str = typer.Argument(help="Version ID"),
    usernames: List[str] = typer.Argument(help="Usernames to grant read access"),
    owner_id: int = typer.Option(..., help="Numeric id of the requesting user (must be the owner)"),
    db_path: str = typer.Option("", help=DB_PATH_HELP),
) -> None:
    """Share a version with other users."""
    try:
        with Database(resolve_db_path(db_path)) as db:
            version = VersionStore(db).share_version(version_id, usernames, requester_id=owner_id)
        shared = ", ".join(sorted(version.shared_with_usernames))
        console.print(f"[green]{version.vendor_name} v{version.version} shared with: {shared}[/green]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def delete(
    version_id: str = typer.Argument(help="Version ID"),
    owner_id: int = typer.Option(..., help="Numeric id of the requesting user (must be the owner)"),
    db_path: str = typer.Option("", help=DB_PATH_HELP),
) -> None:
    """Delete a version. Its version number is never reused."""
    try:
        with Database(resolve_db_path(db_path)) as db:
            VersionStore(db).delete_version(version_id, owner_id)
        console.print(f"[green]Deleted {version_id}[/green]")
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _print_versions(title: str, versions: list[ConfigurationVersion]) -> None:
    if not versions:
        console.print("[yellow]No versions found.[/yellow]")
        return

    table = Table(title=f"{title} ({len(versions)})")
    table.add_column("ID", style="cyan")
    table.add_column("Vendor")
    table.add_column("Version", justify="right")
    table.add_column("Owner")
    table.add_column("Parent")
    table.add_column("Created")
    table.add_column("Description")

    for v in versions:
        table.add_row(
            v.id,
            v.vendor_name,
            str(v.version),
            v.owner_username or str(v.owner_id),
            v.parent_version_id or "-",
            str(v.created_at)[:19],
            (v.description or "")[:40],
        )
    console.print(table)


def _print_vendors(summaries: list[dict]) -> None:
    if not summaries:
        console.print("[yellow]No vendor profiles yet.[/yellow]")
        return

    table = Table(title=f"Vendors ({len(summaries)})")
    table.add_column("Vendor", style="cyan")
    table.add_column("Versions", justify="right")
    table.add_column("Latest", justify="right")
    table.add_column("Last Updated")
    for s in summaries:
        table.add_row(
            s["vendor_name"],
            str(s["version_count"]),
            f"v{s['latest_version']}",
            str(s["last_updated"])[:19],
        )
    console.print(table)
