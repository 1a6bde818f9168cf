"""Captive-portal parameter extraction from HTTP access logs."""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional, Sequence
from urllib.parse import parse_qsl

from captive_profiles.extraction.models import AccessLogLine, LogExtractionResult

logger = logging.getLogger(__name__)

# 203.0.113.5 [10/Oct/2024:13:55:36 +0000] https://portal.example.com:443
#   "GET /start?client_mac=AA:BB HTTP/1.1" 200 512 "-" "UA" "-" "-"
LINE_PATTERN = re.compile(
    r"^(?P<client_ip>\S+)"
    r" \[(?P<timestamp>[^\]]+)\]"
    r" (?P<scheme>https?)://(?P<host>[^\s:/\"]+)(?::(?P<port>\d+))?"
    r' "(?P<method>[A-Z]+) (?P<path>[^\s?"]*)(?:\?(?P<query>[^\s"]*))? [^"]*"'
    r" (?P<status>\d{3}) (?P<size>\d+|-)"
    r' "(?P<referer>[^"]*)" "(?P<user_agent>[^"]*)"'
    r' "[^"]*" "[^"]*"$'
)

# Path substrings marking the portal's session-start / redirect endpoint
DEFAULT_REDIRECT_MARKERS = ("start", "redirect")

# Compared as literal strings: "080" is kept
DEFAULT_PORTS = ("80", "443")


def build_url(line: AccessLogLine) -> str:
    """Reconstruct the requested URL from a parsed line."""
    url = f"{line.scheme}://{line.host}"
    if line.port and line.port not in DEFAULT_PORTS:
        url += f":{line.port}"
    url += line.path
    if line.query:
        url += f"?{line.query}"
    return url


class AccessLogExtractor:
    """Derives redirect URL and query-string parameters from access logs.

    Lines are evaluated in input order: the first value seen for a
    parameter name is kept, and the last redirect-marker line wins.
    """

    def __init__(self, redirect_markers: Sequence[str] = DEFAULT_REDIRECT_MARKERS) -> None:
        self._markers = tuple(m.lower() for m in redirect_markers if m)

    def parse_line(self, raw: str, line_number: int = 0) -> Optional[AccessLogLine]:
        """Parse one log line, or return None if it does not fit the grammar."""
        m = LINE_PATTERN.match(raw.rstrip())
        if not m:
            return None
        return AccessLogLine(
            line_number=line_number,
            client_ip=m.group("client_ip"),
            timestamp=m.group("timestamp"),
            scheme=m.group("scheme"),
            host=m.group("host"),
            port=m.group("port"),
            method=m.group("method"),
            path=m.group("path"),
            query=m.group("query"),
            status=int(m.group("status")),
            size=m.group("size"),
            referer=m.group("referer"),
            user_agent=m.group("user_agent"),
        )

    def is_redirect(self, path: str) -> bool:
        lowered = path.lower()
        return any(marker in lowered for marker in self._markers)

    def iter_matches(
        self,
        lines: Iterable[str],
        source_ip_filter: Optional[str] = None,
        path_filter: Optional[str] = None,
    ) -> Iterable[AccessLogLine]:
        """Yield parsed lines that pass both filters, in input order."""
        for line_number, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            parsed = self.parse_line(raw, line_number)
            if parsed is None:
                continue
            if source_ip_filter and parsed.client_ip != source_ip_filter:
                continue
            if path_filter and path_filter not in parsed.path:
                continue
            yield parsed

    def extract(
        self,
        text: str,
        source_ip_filter: Optional[str] = None,
        path_filter: Optional[str] = None,
    ) -> LogExtractionResult:
        """Run one left-to-right pass over ``text``."""
        result = LogExtractionResult()
        for line in self.iter_matches(text.splitlines(), source_ip_filter, path_filter):
            result.match_count += 1
            if line.query:
                for key, value in parse_qsl(line.query, keep_blank_values=True):
                    result.query_string_parameters.setdefault(key, value)
            if self.is_redirect(line.path):
                result.redirection_url = build_url(line)

        logger.info(
            "Log extraction: %d matching lines, %d parameters, redirect=%s",
            result.match_count,
            len(result.query_string_parameters),
            result.redirection_url or "-",
        )
        return result

    def extract_file(
        self,
        file_path: str,
        source_ip_filter: Optional[str] = None,
        path_filter: Optional[str] = None,
    ) -> LogExtractionResult:
        text = Path(file_path).read_text(encoding="utf-8", errors="replace")
        return self.extract(text, source_ip_filter, path_filter)

    def extract_many(
        self,
        texts: Sequence[str],
        source_ip_filter: Optional[str] = None,
        path_filter: Optional[str] = None,
        max_workers: int = 4,
    ) -> list[LogExtractionResult]:
        """Extract independent uploads in parallel; results keep input order."""
        if not texts:
            return []
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(
                lambda text: self.extract(text, source_ip_filter, path_filter),
                texts,
            ))
