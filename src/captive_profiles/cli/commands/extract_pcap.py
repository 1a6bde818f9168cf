"""Extract-pcap command: decode RADIUS packets from a capture file."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from captive_profiles.config.settings import AppConfig
from captive_profiles.errors import CaptiveProfilesError
from captive_profiles.extraction.models import PacketDecodeResult
from captive_profiles.extraction.packet_gateway import (
    PacketExtractionGateway,
    SUMMARY_FIELDS,
    render_block,
)
from captive_profiles.extraction.radius_decoder import RadiusCaptureDecoder

console = Console()

CAPTURE_SUFFIXES = (".pcap", ".cap")


def extract_pcap(
    path: str = typer.Argument(help="Path to a .pcap or .cap capture"),
    source_ip: str = typer.Option("", help="Only use packets sent from this IPv4 address"),
    text_filter: str = typer.Option("", help="Only keep packets containing this text"),
    timeout: float = typer.Option(0, help="Decoder timeout in seconds. Env: CAPTIVE_PROFILES_DECODE_TIMEOUT"),
    show_packets: bool = typer.Option(False, help="Print the rendered packet blocks"),
) -> None:
    """Summarize the RADIUS traffic in a packet capture."""
    p = Path(path)
    if not p.is_file():
        console.print(f"[red]Path not found: {path}[/red]")
        raise typer.Exit(1)
    if p.suffix.lower() not in CAPTURE_SUFFIXES:
        console.print("[red]Invalid file format. Please use a .pcap or .cap file[/red]")
        raise typer.Exit(1)

    config = AppConfig.from_env()
    gateway = PacketExtractionGateway(RadiusCaptureDecoder(), timeout=config.decode_timeout)
    try:
        result = gateway.extract(
            p.read_bytes(), source_ip or None, text_filter or None, timeout or None
        )
    except CaptiveProfilesError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    print_packet_result(result, show_packets)


def print_packet_result(result: PacketDecodeResult, show_packets: bool = False) -> None:
    table = Table(title="RADIUS Packets")
    table.add_column("Message Type", style="cyan")
    table.add_column("Records", justify="right")
    for field_name, sequence_name in SUMMARY_FIELDS:
        table.add_row(field_name.replace("_", " ").title(), str(len(getattr(result, sequence_name))))
    console.print(table)
    console.print(
        f"Total packets: {result.total_packets_processed:,}, "
        f"RADIUS packets: {result.radius_packets_found:,}"
    )

    if not show_packets:
        return
    for field_name, sequence_name in SUMMARY_FIELDS:
        block = render_block(getattr(result, sequence_name))
        if block:
            console.print(Panel(block, title=field_name.replace("_", " ").title(), border_style="cyan"))
