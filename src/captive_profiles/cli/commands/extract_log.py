"""Extract-log command: derive captive-portal parameters from an access log."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from captive_profiles.config.settings import AppConfig
from captive_profiles.extraction.log_extractor import AccessLogExtractor
from captive_profiles.extraction.models import LogExtractionResult

console = Console()


def extract_log(
    path: str = typer.Argument(help="Path to an HTTP access log"),
    source_ip: str = typer.Option("", help="Only use lines from this client IP"),
    path_filter: str = typer.Option("", help="Only use lines whose path contains this text"),
) -> None:
    """Show the redirect URL and query parameters found in an access log."""
    p = Path(path)
    if not p.is_file():
        console.print(f"[red]Path not found: {path}[/red]")
        raise typer.Exit(1)

    config = AppConfig.from_env()
    extractor = AccessLogExtractor(config.redirect_markers)
    result = extractor.extract_file(str(p), source_ip or None, path_filter or None)
    print_log_result(result)


def print_log_result(result: LogExtractionResult) -> None:
    if result.match_count == 0:
        console.print("[yellow]No matching log lines found.[/yellow]")
        return

    console.print(f"[bold]Matching lines:[/bold] {result.match_count:,}")
    console.print(f"[bold]Redirection URL:[/bold] {result.redirection_url or '-'}")

    if not result.query_string_parameters:
        console.print("[yellow]No query-string parameters found.[/yellow]")
        return

    table = Table(title=f"Query String Parameters ({len(result.query_string_parameters)})")
    table.add_column("Parameter", style="cyan")
    table.add_column("Example Value")
    for name, value in result.query_string_parameters.items():
        table.add_row(name, value)
    console.print(table)
