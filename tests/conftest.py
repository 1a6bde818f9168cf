"""Shared test fixtures, sample access-log lines and capture builders."""

from __future__ import annotations

import socket
import struct

import pytest

from captive_profiles.storage.database import Database
from captive_profiles.storage.repositories import VersionStore


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary DuckDB database for testing."""
    db_path = str(tmp_path / "test.duckdb")
    with Database(db_path) as db:
        yield db


@pytest.fixture
def store(tmp_db):
    return VersionStore(tmp_db)


# Access-log samples in the portal's line format
SAMPLE_LINES = {
    "start": (
        '203.0.113.5 [10/Oct/2024:13:55:36 +0000] https://portal.example.com:443 '
        '"GET /start?client_mac=AA:BB:CC:DD:EE:FF HTTP/1.1" 200 512 "-" "UA" "-" "-"'
    ),
    "redirect": (
        '203.0.113.5 [10/Oct/2024:13:55:40 +0000] http://portal.example.com:80 '
        '"GET /redirect?client_ip=10.1.1.20&ssid=Guest HTTP/1.1" 302 0 "-" "UA" "-" "-"'
    ),
    "login": (
        '198.51.100.7 [10/Oct/2024:13:56:02 +0000] https://portal.example.com '
        '"POST /login?client_mac=11:22:33:44:55:66&nas_id=ap-7 HTTP/1.1" 200 128 "-" "UA" "-" "-"'
    ),
    "odd_port": (
        '203.0.113.5 [10/Oct/2024:13:57:00 +0000] http://portal.example.com:080 '
        '"GET /start?x=1 HTTP/1.1" 200 10 "-" "UA" "-" "-"'
    ),
    "empty_query": (
        '203.0.113.5 [10/Oct/2024:13:58:00 +0000] https://portal.example.com:8443 '
        '"GET /start? HTTP/1.1" 200 10 "-" "UA" "-" "-"'
    ),
    "garbage": "this is not an access log line",
    "blank": "",
}


# --- capture builders ------------------------------------------------------


def radius_payload(code: int, identifier: int, attributes: list[tuple[int, bytes]]) -> bytes:
    attrs = b"".join(struct.pack(">BB", t, len(v) + 2) + v for t, v in attributes)
    return struct.pack(">BBH", code, identifier, 20 + len(attrs)) + b"\x00" * 16 + attrs


def int_attr(value: int) -> bytes:
    return struct.pack(">I", value)


def ethernet_udp(src: str, dst: str, sport: int, dport: int, payload: bytes) -> bytes:
    udp = struct.pack(">HHHH", sport, dport, 8 + len(payload), 0) + payload
    ip = struct.pack(
        ">BBHHHBBH4s4s",
        0x45, 0, 20 + len(udp), 0, 0, 64, 17, 0,
        socket.inet_aton(src), socket.inet_aton(dst),
    )
    return b"\x00" * 12 + struct.pack(">H", 0x0800) + ip + udp


def pcap_file(frames: list[tuple[int, bytes]]) -> bytes:
    """Little-endian microsecond pcap with Ethernet link type."""
    out = struct.pack("<IHHiIII", 0xA1B2C3D4, 2, 4, 0, 0, 65535, 1)
    for timestamp_millis, frame in frames:
        sec, millis = divmod(timestamp_millis, 1000)
        out += struct.pack("<IIII", sec, millis * 1000, len(frame), len(frame)) + frame
    return out


def pcapng_file(frames: list[tuple[int, bytes]]) -> bytes:
    """Little-endian pcapng: one section, one Ethernet interface, enhanced packet blocks."""
    out = struct.pack("<IIIHHqI", 0x0A0D0D0A, 28, 0x1A2B3C4D, 1, 0, -1, 28)
    out += struct.pack("<IIHHII", 1, 20, 1, 0, 65535, 20)
    for timestamp_millis, frame in frames:
        micros = timestamp_millis * 1000
        padded = frame + b"\x00" * (-len(frame) % 4)
        total = 32 + len(padded)
        out += struct.pack(
            "<IIIIIII", 6, total, 0, micros >> 32, micros & 0xFFFFFFFF, len(frame), len(frame)
        ) + padded + struct.pack("<I", total)
    return out


CAPTURE_START_MILLIS = 1_700_000_000_250


@pytest.fixture
def radius_capture() -> bytes:
    """Six frames: four tracked RADIUS requests, one Access-Accept, one DNS query."""
    frames = [
        ethernet_udp("10.0.0.1", "10.0.0.2", 40000, 1812, radius_payload(1, 7, [
            (1, b"alice"),
            (4, bytes([192, 168, 1, 1])),
            (31, b"AA-BB-CC-DD-EE-FF"),
        ])),
        ethernet_udp("10.0.0.2", "10.0.0.1", 1812, 40000, radius_payload(2, 7, [])),
        ethernet_udp("10.0.0.1", "10.0.0.2", 40001, 1813, radius_payload(4, 8, [
            (40, int_attr(1)),
            (44, b"S-100"),
        ])),
        ethernet_udp("10.0.0.1", "10.0.0.2", 40002, 1813, radius_payload(4, 9, [
            (40, int_attr(3)),
            (44, b"S-100"),
            (42, int_attr(2048)),
        ])),
        ethernet_udp("10.0.0.3", "10.0.0.2", 40003, 1646, radius_payload(4, 10, [
            (40, int_attr(2)),
            (44, b"S-200"),
        ])),
        ethernet_udp("10.0.0.9", "8.8.8.8", 53000, 53, b"\x12\x34" + b"\x00" * 10),
    ]
    return pcap_file([(CAPTURE_START_MILLIS + i * 1000, f) for i, f in enumerate(frames)])
