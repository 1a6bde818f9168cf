"""Application configuration from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from captive_profiles.extraction.log_extractor import DEFAULT_REDIRECT_MARKERS
from captive_profiles.extraction.packet_gateway import DEFAULT_DECODE_TIMEOUT
from captive_profiles.storage.database import DEFAULT_DB_PATH


@dataclass
class AppConfig:
    """Configuration shared by the CLI commands."""

    # DuckDB file, ":memory:" or md:<name> for MotherDuck
    db_path: str = DEFAULT_DB_PATH
    # JSON file persisting the standard parameter vocabulary
    params_path: str = ""
    # Seconds to wait for the packet decoder
    decode_timeout: float = DEFAULT_DECODE_TIMEOUT
    # Path substrings that mark a captive-portal redirect
    redirect_markers: list[str] = field(default_factory=lambda: list(DEFAULT_REDIRECT_MARKERS))
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables."""
        home = Path.home()
        default_params = str(home / ".captive_profiles" / "standard_params.json")
        markers = os.environ.get("CAPTIVE_PROFILES_REDIRECT_MARKERS", "")

        return cls(
            db_path=os.environ.get("CAPTIVE_PROFILES_DB", DEFAULT_DB_PATH),
            params_path=os.environ.get("CAPTIVE_PROFILES_PARAMS", default_params),
            decode_timeout=float(
                os.environ.get("CAPTIVE_PROFILES_DECODE_TIMEOUT", str(DEFAULT_DECODE_TIMEOUT))
            ),
            redirect_markers=(
                [m.strip() for m in markers.split(",") if m.strip()]
                if markers
                else list(DEFAULT_REDIRECT_MARKERS)
            ),
            log_level=os.environ.get("CAPTIVE_PROFILES_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Return list of validation errors, empty if config is valid."""
        errors = []
        if not self.db_path:
            errors.append("CAPTIVE_PROFILES_DB must not be empty")
        if self.decode_timeout <= 0:
            errors.append(f"CAPTIVE_PROFILES_DECODE_TIMEOUT must be positive: {self.decode_timeout}")
        if not self.redirect_markers:
            errors.append("CAPTIVE_PROFILES_REDIRECT_MARKERS must name at least one marker")
        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown CAPTIVE_PROFILES_LOG_LEVEL: {self.log_level}")
        return errors
