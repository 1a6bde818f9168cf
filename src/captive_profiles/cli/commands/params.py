"""Params command: view and edit the standard query-parameter vocabulary."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from captive_profiles.config.settings import AppConfig
from captive_profiles.config.standard_params import StandardParameterSet

console = Console()


def params(
    action: str = typer.Argument("list", help="Action: list, add, remove, reset"),
    name: str = typer.Argument("", help="Parameter name (for add/remove)"),
    params_file: str = typer.Option("", help="Vocabulary JSON file. Env: CAPTIVE_PROFILES_PARAMS"),
) -> None:
    """Manage the standard parameter names used for query-string mapping."""
    path = params_file or AppConfig.from_env().params_path
    try:
        param_set = StandardParameterSet.load(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if action == "list":
        _list_params(param_set)
        return
    if action in ("add", "remove") and not name:
        console.print(f"[red]A parameter name is required for {action}.[/red]")
        raise typer.Exit(1)

    if action == "add":
        changed = param_set.add(name)
        message = f"Added {name}" if changed else f"{name} is already listed"
    elif action == "remove":
        changed = param_set.remove(name)
        message = f"Removed {name}" if changed else f"{name} is not listed"
    elif action == "reset":
        param_set.reset()
        changed = True
        message = "Restored the default parameters"
    else:
        console.print(f"[red]Unknown action: {action}. Use list, add, remove, or reset.[/red]")
        raise typer.Exit(1)

    if changed:
        param_set.save()
        console.print(f"[green]{message}[/green]")
    else:
        console.print(f"[yellow]{message}[/yellow]")


def _list_params(param_set: StandardParameterSet) -> None:
    table = Table(title=f"Standard Parameters ({len(param_set.params)})")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    for i, name in enumerate(param_set.params, 1):
        table.add_row(str(i), name)
    console.print(table)
