"""Revise command: compose the next version of a vendor profile and commit it."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.panel import Panel

from captive_profiles.composer.revision_composer import RevisionComposer, Section
from captive_profiles.config.settings import AppConfig
from captive_profiles.config.standard_params import StandardParameterSet
from captive_profiles.errors import NoPriorRevisionError
from captive_profiles.extraction.log_extractor import AccessLogExtractor
from captive_profiles.extraction.packet_gateway import PacketExtractionGateway
from captive_profiles.extraction.radius_decoder import RadiusCaptureDecoder
from captive_profiles.snapshot.models import snapshot_to_dict
from captive_profiles.storage.database import Database, resolve_db_path
from captive_profiles.storage.repositories import VersionStore

console = Console()

SECTION_KEYS = {
    "basic": Section.BASIC_INFO,
    "captive_portal": Section.CAPTIVE_PORTAL,
    "portal": Section.CAPTIVE_PORTAL,
    "radius": Section.RADIUS,
    "walled_garden": Section.WALLED_GARDEN,
    "login_methods": Section.LOGIN_METHODS,
    "login": Section.LOGIN_METHODS,
}


def parse_assignment(text: str) -> tuple[Section, str, Any, str]:
    """Split ``section.field=value``.

    Returns the section, field name, the value decoded as JSON when it parses
    as JSON, and the value text as given.
    """
    target, sep, raw_value = text.partition("=")
    section_key, dot, field_name = target.strip().partition(".")
    if not sep or not dot or not field_name:
        raise ValueError(f"Expected section.field=value, got: {text}")
    if section_key not in SECTION_KEYS:
        raise ValueError(
            f"Unknown section '{section_key}'. Use one of: {', '.join(sorted(SECTION_KEYS))}"
        )
    try:
        value = json.loads(raw_value)
    except json.JSONDecodeError:
        value = raw_value
    return SECTION_KEYS[section_key], field_name.strip(), value, raw_value


def revise(
    vendor_name: str = typer.Argument(help="Vendor name of the lineage to extend"),
    owner_id: int = typer.Option(..., help="Numeric id of the committing user"),
    owner: str = typer.Option("", help="Username of the committing user"),
    description: str = typer.Option("", help="Description stored with the new version"),
    from_previous: bool = typer.Option(False, help="Start from the latest version of this vendor"),
    sample: bool = typer.Option(False, help="Start from the built-in sample profile"),
    import_file: str = typer.Option("", help="Start from an exported version or snapshot JSON file"),
    log_file: str = typer.Option("", help="Merge parameters extracted from an access log"),
    log_source_ip: str = typer.Option("", help="Client IP filter for --log-file"),
    log_path_filter: str = typer.Option("", help="Path substring filter for --log-file"),
    pcap_file: str = typer.Option("", help="Merge RADIUS packets decoded from a capture"),
    pcap_source_ip: str = typer.Option("", help="Source IPv4 filter for --pcap-file"),
    pcap_text_filter: str = typer.Option("", help="Text filter for --pcap-file"),
    set_fields: Optional[List[str]] = typer.Option(
        None, "--set", help="Field edit as section.field=value (repeatable)"
    ),
    map_params: Optional[List[str]] = typer.Option(
        None, "--map", help="Query parameter mapping as param=standard_name (repeatable)"
    ),
    dry_run: bool = typer.Option(False, help="Show the composed snapshot without committing"),
    db_path: str = typer.Option(
        "", help="Database path (local file or md:name for MotherDuck). Env: CAPTIVE_PROFILES_DB"
    ),
) -> None:
    """Compose a new version from the chosen sources and commit it."""
    config = AppConfig.from_env()
    try:
        with Database(resolve_db_path(db_path)) as db:
            composer = RevisionComposer(
                VersionStore(db),
                vendor_name=vendor_name,
                standard_params=StandardParameterSet.load(config.params_path),
            )

            if from_previous:
                try:
                    previous = composer.load_previous_revision()
                except NoPriorRevisionError:
                    console.print(f"[yellow]No previous revisions found for {vendor_name}.[/yellow]")
                else:
                    console.print(f"Loaded {previous.vendor_name} v{previous.version}")
            if sample:
                composer.load_sample()
            if import_file:
                payload = composer.import_snapshot(Path(import_file).read_text(encoding="utf-8"))
                kind = "version document" if payload.from_version_document else "snapshot"
                console.print(f"Imported {kind} from {import_file}")

            if log_file:
                extractor = AccessLogExtractor(config.redirect_markers)
                log_result = extractor.extract_file(
                    log_file, log_source_ip or None, log_path_filter or None
                )
                composer.apply_log_extraction(log_result)
                console.print(f"Access log: {log_result.match_count} matching lines")

            if pcap_file:
                gateway = PacketExtractionGateway(RadiusCaptureDecoder(), timeout=config.decode_timeout)
                packets = gateway.extract(
                    Path(pcap_file).read_bytes(), pcap_source_ip or None, pcap_text_filter or None
                )
                composer.apply_packet_extraction(packets)
                console.print(
                    f"Capture: {packets.radius_packets_found} RADIUS packets "
                    f"of {packets.total_packets_processed}"
                )

            for assignment in set_fields or []:
                section, field_name, value, raw_value = parse_assignment(assignment)
                try:
                    composer.apply_field_edit(section, field_name, value)
                except ValueError:
                    # 2.0 or true may be meant as text for a string field
                    if isinstance(value, str):
                        raise
                    composer.apply_field_edit(section, field_name, raw_value)

            for mapping in map_params or []:
                parameter, sep, standard_name = mapping.partition("=")
                if not sep:
                    raise ValueError(f"Expected param=standard_name, got: {mapping}")
                composer.map_parameter(parameter.strip(), standard_name.strip())

            if dry_run:
                console.print(Panel(
                    json.dumps(snapshot_to_dict(composer.snapshot), indent=2),
                    title=f"{composer.vendor_name} (not committed)",
                    border_style="yellow",
                ))
                return

            version = composer.commit(
                vendor_name, owner_id, owner_username=owner, description=description or None
            )
            console.print(Panel(
                f"[bold]Vendor:[/bold] {version.vendor_name}\n"
                f"[bold]Version:[/bold] {version.version}\n"
                f"[bold]ID:[/bold] {version.id}\n"
                f"[bold]Parent:[/bold] {version.parent_version_id or '-'}",
                title="Committed",
                border_style="green",
            ))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
