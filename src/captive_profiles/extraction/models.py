"""Data models for the extraction layer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


class PacketType(str, enum.Enum):
    ACCESS_REQUEST = "AccessRequest"
    ACCOUNTING_START = "AccountingStart"
    ACCOUNTING_INTERIM_UPDATE = "AccountingInterimUpdate"
    ACCOUNTING_STOP = "AccountingStop"


@dataclass
class AccessLogLine:
    """One access-log line that matched the line grammar."""

    line_number: int
    client_ip: str
    timestamp: str
    scheme: str
    host: str
    port: Optional[str]
    method: str
    path: str
    query: Optional[str]  # None when the request had no '?'
    status: int
    size: str
    referer: str
    user_agent: str


@dataclass
class LogExtractionResult:
    redirection_url: Optional[str] = None
    query_string_parameters: dict[str, str] = field(default_factory=dict)
    match_count: int = 0


@dataclass
class RadiusPacketRecord:
    """Decoded RADIUS packet as delivered by a packet decoder."""

    packet_type: PacketType
    source_ip: str
    destination_ip: str
    timestamp_millis: int
    attributes: dict[str, str] = field(default_factory=dict)
    raw_text: str = ""


@dataclass
class PacketDecodeResult:
    access_requests: list[RadiusPacketRecord] = field(default_factory=list)
    accounting_starts: list[RadiusPacketRecord] = field(default_factory=list)
    accounting_updates: list[RadiusPacketRecord] = field(default_factory=list)
    accounting_stops: list[RadiusPacketRecord] = field(default_factory=list)
    total_packets_processed: int = 0
    radius_packets_found: int = 0

    def add(self, record: RadiusPacketRecord) -> None:
        """File a record under the sequence for its packet type."""
        {
            PacketType.ACCESS_REQUEST: self.access_requests,
            PacketType.ACCOUNTING_START: self.accounting_starts,
            PacketType.ACCOUNTING_INTERIM_UPDATE: self.accounting_updates,
            PacketType.ACCOUNTING_STOP: self.accounting_stops,
        }[record.packet_type].append(record)

    @property
    def record_count(self) -> int:
        return (
            len(self.access_requests)
            + len(self.accounting_starts)
            + len(self.accounting_updates)
            + len(self.accounting_stops)
        )
