"""Local RADIUS decoder for pcap and pcapng capture files.

Frames are read and dissected with scapy; IPv4/UDP datagrams sent to or from
the standard RADIUS ports are decoded as RADIUS, keeping Access-Request and
Accounting-Request packets. Only what the packet gateway needs is kept.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Iterator, Optional

from scapy.error import Scapy_Exception
from scapy.layers.inet import IP, UDP
from scapy.layers.radius import Radius
from scapy.utils import rdpcap

from captive_profiles.errors import DecodeFailedError
from captive_profiles.extraction.models import PacketDecodeResult, PacketType, RadiusPacketRecord

logger = logging.getLogger(__name__)

RADIUS_PORTS = frozenset({1812, 1813, 1645, 1646})
RADIUS_HEADER_LEN = 20

CODE_ACCESS_REQUEST = 1
CODE_ACCOUNTING_REQUEST = 4
ATTR_ACCT_STATUS_TYPE = 40

ACCT_STATUS_TYPES = {
    1: PacketType.ACCOUNTING_START,
    2: PacketType.ACCOUNTING_STOP,
    3: PacketType.ACCOUNTING_INTERIM_UPDATE,
}

ATTRIBUTE_NAMES = {
    1: "User-Name",
    2: "User-Password",
    3: "CHAP-Password",
    4: "NAS-IP-Address",
    5: "NAS-Port",
    6: "Service-Type",
    7: "Framed-Protocol",
    8: "Framed-IP-Address",
    11: "Filter-Id",
    18: "Reply-Message",
    25: "Class",
    26: "Vendor-Specific",
    27: "Session-Timeout",
    30: "Called-Station-Id",
    31: "Calling-Station-Id",
    32: "NAS-Identifier",
    40: "Acct-Status-Type",
    41: "Acct-Delay-Time",
    42: "Acct-Input-Octets",
    43: "Acct-Output-Octets",
    44: "Acct-Session-Id",
    45: "Acct-Authentic",
    46: "Acct-Session-Time",
    47: "Acct-Input-Packets",
    48: "Acct-Output-Packets",
    49: "Acct-Terminate-Cause",
    61: "NAS-Port-Type",
    79: "EAP-Message",
    80: "Message-Authenticator",
    87: "NAS-Port-Id",
}

INTEGER_ATTRIBUTES = frozenset({5, 6, 7, 27, 40, 41, 42, 43, 45, 46, 47, 48, 49, 61})
ADDRESS_ATTRIBUTES = frozenset({4, 8})
BINARY_ATTRIBUTES = frozenset({2, 3, 26, 79, 80})

_NON_PRINTABLE = re.compile(r"[^\x20-\x7e]")


def attribute_name(attr_type: int) -> str:
    return ATTRIBUTE_NAMES.get(attr_type, f"Attribute-{attr_type}")


def attribute_value(attr_type: int, value: bytes) -> str:
    if attr_type in INTEGER_ATTRIBUTES and len(value) >= 4:
        return str(int.from_bytes(value[:4], "big"))
    if attr_type in ADDRESS_ATTRIBUTES and len(value) >= 4:
        return ".".join(str(b) for b in value[:4])
    if attr_type in BINARY_ATTRIBUTES:
        return value.hex().upper()
    return _NON_PRINTABLE.sub("", value.decode("utf-8", errors="replace"))


def iter_attributes(layer: Radius) -> Iterator[tuple[int, bytes]]:
    """Yield (type, value) pairs from a dissected RADIUS layer."""
    for attr in layer.attributes:
        raw = bytes(attr)
        if len(raw) < 2:
            break
        yield raw[0], raw[2:raw[1]] if raw[1] >= 2 else b""


def classify(layer: Radius) -> Optional[PacketType]:
    if layer.code == CODE_ACCESS_REQUEST:
        return PacketType.ACCESS_REQUEST
    if layer.code == CODE_ACCOUNTING_REQUEST:
        for attr_type, value in iter_attributes(layer):
            if attr_type == ATTR_ACCT_STATUS_TYPE and len(value) >= 4:
                return ACCT_STATUS_TYPES.get(int.from_bytes(value[:4], "big"))
    return None


def parse_radius(
    data: bytes, source_ip: str, destination_ip: str, timestamp_millis: int
) -> Optional[RadiusPacketRecord]:
    """Decode one RADIUS payload, or None for packet types not tracked."""
    if len(data) < RADIUS_HEADER_LEN:
        return None
    layer = Radius(data)
    packet_type = classify(layer)
    if packet_type is None:
        return None

    attributes: dict[str, str] = {}
    lines = [f"Code: {layer.code}, Identifier: {layer.id}, Length: {layer.len}"]
    for attr_type, value in iter_attributes(layer):
        name = attribute_name(attr_type)
        rendered = attribute_value(attr_type, value)
        attributes[name] = rendered
        lines.append(f"  {name}: {rendered}")

    return RadiusPacketRecord(
        packet_type=packet_type,
        source_ip=source_ip,
        destination_ip=destination_ip,
        timestamp_millis=timestamp_millis,
        attributes=attributes,
        raw_text="\n".join(lines) + "\n",
    )


def read_capture(capture: bytes):
    """Dissect every frame of a pcap or pcapng capture."""
    try:
        return rdpcap(io.BytesIO(capture))
    except Scapy_Exception as e:
        raise DecodeFailedError(f"Not a readable capture: {e}") from e


def matches_text(record: RadiusPacketRecord, text_filter: str) -> bool:
    needle = text_filter.lower()
    if needle in record.raw_text.lower():
        return True
    return any(needle in value.lower() for value in record.attributes.values())


class RadiusCaptureDecoder:
    """Default PacketDecoder: decodes RADIUS traffic from capture bytes."""

    def decode(
        self,
        capture: bytes,
        source_ip_filter: Optional[str] = None,
        text_filter: Optional[str] = None,
    ) -> PacketDecodeResult:
        result = PacketDecodeResult()
        for packet in read_capture(capture):
            result.total_packets_processed += 1

            if not (packet.haslayer(IP) and packet.haslayer(UDP)):
                continue
            src_ip, dst_ip = packet[IP].src, packet[IP].dst
            datagram = packet[UDP]

            if source_ip_filter and src_ip != source_ip_filter:
                continue
            if datagram.sport not in RADIUS_PORTS and datagram.dport not in RADIUS_PORTS:
                continue
            result.radius_packets_found += 1

            timestamp_millis = round(float(packet.time) * 1000)
            record = parse_radius(bytes(datagram.payload), src_ip, dst_ip, timestamp_millis)
            if record is None:
                continue
            if text_filter and not matches_text(record, text_filter):
                continue
            result.add(record)

        logger.debug(
            "Decoded %d frames, %d RADIUS packets, %d records",
            result.total_packets_processed,
            result.radius_packets_found,
            result.record_count,
        )
        return result

    def decode_file(
        self,
        file_path: str,
        source_ip_filter: Optional[str] = None,
        text_filter: Optional[str] = None,
    ) -> PacketDecodeResult:
        return self.decode(Path(file_path).read_bytes(), source_ip_filter, text_filter)
