"""Gateway to the RADIUS packet decoder and merge of its output."""

from __future__ import annotations

import ipaddress
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from captive_profiles.errors import DecodeFailedError, DecodeTimeoutError, InvalidFilterError
from captive_profiles.extraction.models import PacketDecodeResult, RadiusPacketRecord
from captive_profiles.snapshot.models import IntegrationSnapshot, merge_section

logger = logging.getLogger(__name__)

DEFAULT_DECODE_TIMEOUT = 30.0

RECORD_DELIMITER = "\n" + "-" * 40 + "\n"

# Radius text field -> PacketDecodeResult sequence it is rendered from
SUMMARY_FIELDS = (
    ("access_request", "access_requests"),
    ("accounting_start", "accounting_starts"),
    ("accounting_update", "accounting_updates"),
    ("accounting_stop", "accounting_stops"),
)


class PacketDecoder(Protocol):
    """Turns capture bytes into typed RADIUS records."""

    def decode(
        self,
        capture: bytes,
        source_ip_filter: Optional[str],
        text_filter: Optional[str],
    ) -> PacketDecodeResult: ...


def validate_ip_filter(value: Optional[str]) -> Optional[str]:
    """Return the normalized filter, None when unset, or raise InvalidFilterError."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    try:
        ipaddress.IPv4Address(value)
    except ValueError as e:
        raise InvalidFilterError(f"Source IP filter is not a dotted-quad IPv4 address: {value!r}") from e
    return value


def format_timestamp(timestamp_millis: int) -> str:
    ts = datetime.fromtimestamp(timestamp_millis / 1000, tz=timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_record(record: RadiusPacketRecord) -> str:
    header = f"[{format_timestamp(record.timestamp_millis)}] {record.source_ip} -> {record.destination_ip}"
    return f"{header}\n{record.raw_text.rstrip()}"


def render_block(records: Iterable[RadiusPacketRecord]) -> str:
    """Render a packet sequence as one text block; empty input gives ''."""
    return RECORD_DELIMITER.join(render_record(r) for r in records)


def provenance_note(result: PacketDecodeResult) -> str:
    return (
        f"Extracted from packet capture: {result.radius_packets_found} RADIUS packets "
        f"of {result.total_packets_processed} total packets."
    )


def _merge_attributes(
    existing: Optional[dict[str, str]], records: Iterable[RadiusPacketRecord]
) -> dict[str, str]:
    merged = dict(existing or {})
    for record in records:
        for name, value in record.attributes.items():
            merged.setdefault(name, value)
    return merged


def apply_to_snapshot(snapshot: IntegrationSnapshot, result: PacketDecodeResult) -> IntegrationSnapshot:
    """Merge decoded packets into the snapshot's RADIUS section.

    A summary field is replaced only when its packet sequence is non-empty.
    The provenance note is appended to existing notes, never replacing them.
    """
    radius = snapshot.radius
    patch: dict = {}
    for field_name, sequence_name in SUMMARY_FIELDS:
        block = render_block(getattr(result, sequence_name))
        if block:
            patch[field_name] = block

    if result.access_requests:
        patch["auth_attributes"] = _merge_attributes(radius.auth_attributes, result.access_requests)
    accounting = result.accounting_starts + result.accounting_updates + result.accounting_stops
    if accounting:
        patch["acct_attributes"] = _merge_attributes(radius.acct_attributes, accounting)

    note = provenance_note(result)
    patch["notes"] = f"{radius.notes}\n\n{note}" if radius.notes else note

    return merge_section(snapshot, {"radius": merge_section(radius, patch)})


class PacketExtractionGateway:
    """Validates filters, calls the decoder with a deadline, merges results."""

    def __init__(self, decoder: PacketDecoder, timeout: float = DEFAULT_DECODE_TIMEOUT) -> None:
        self._decoder = decoder
        self._timeout = timeout

    def extract(
        self,
        capture: bytes,
        source_ip_filter: Optional[str] = None,
        text_filter: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> PacketDecodeResult:
        ip_filter = validate_ip_filter(source_ip_filter)
        text = text_filter if text_filter and text_filter.strip() else None
        deadline = self._timeout if timeout is None else timeout

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="packet-decoder")
        future = pool.submit(self._decoder.decode, capture, ip_filter, text)
        try:
            result = future.result(timeout=deadline)
        except FuturesTimeoutError as e:
            future.cancel()
            raise DecodeTimeoutError(f"Packet decoder did not finish within {deadline:g}s") from e
        except DecodeFailedError:
            raise
        except Exception as e:
            raise DecodeFailedError(f"Packet decoder failed: {e}") from e
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        if not isinstance(result, PacketDecodeResult):
            raise DecodeFailedError(
                f"Packet decoder returned {type(result).__name__}, expected PacketDecodeResult"
            )

        logger.info(
            "Packet extraction: %d/%d RADIUS packets, %d records kept",
            result.radius_packets_found,
            result.total_packets_processed,
            result.record_count,
        )
        return result

    def apply(self, snapshot: IntegrationSnapshot, result: PacketDecodeResult) -> IntegrationSnapshot:
        return apply_to_snapshot(snapshot, result)
