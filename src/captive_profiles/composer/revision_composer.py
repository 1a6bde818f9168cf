"""Revision composer: edits one working snapshot and commits it as a version."""

from __future__ import annotations

import enum
import logging
from typing import Any, Mapping, Optional, Union

from captive_profiles.config.standard_params import StandardParameterSet
from captive_profiles.errors import NoPriorRevisionError
from captive_profiles.extraction.models import LogExtractionResult, PacketDecodeResult
from captive_profiles.extraction.packet_gateway import apply_to_snapshot
from captive_profiles.snapshot.models import (
    IntegrationSnapshot,
    default_snapshot,
    merge_section,
    now_millis,
)
from captive_profiles.snapshot.sample import sample_snapshot
from captive_profiles.snapshot.version import ConfigurationVersion, ImportedPayload, decode_import
from captive_profiles.storage.repositories import VersionStore

logger = logging.getLogger(__name__)


class Section(str, enum.Enum):
    BASIC_INFO = "Basic Info"
    CAPTIVE_PORTAL = "Captive Portal"
    RADIUS = "RADIUS"
    WALLED_GARDEN = "Walled Garden"
    LOGIN_METHODS = "Login Methods"


STEPS: tuple[Section, ...] = tuple(Section)

SECTION_ATTRIBUTES = {
    Section.CAPTIVE_PORTAL: "captive_portal",
    Section.RADIUS: "radius",
    Section.WALLED_GARDEN: "walled_garden",
    Section.LOGIN_METHODS: "login_methods",
}

BASIC_INFO_FIELDS = frozenset({"operator", "model", "firmware_version", "timestamp"})


class RevisionComposer:
    """Step-by-step editor for the next version of a vendor profile.

    Everything before ``commit`` is in memory only; discarding the
    composer has no side effects.
    """

    def __init__(
        self,
        store: VersionStore,
        vendor_name: str = "",
        standard_params: Optional[StandardParameterSet] = None,
        snapshot: Optional[IntegrationSnapshot] = None,
    ) -> None:
        self._store = store
        self._standard_params = standard_params or StandardParameterSet()
        self.vendor_name = vendor_name
        self.description: Optional[str] = None
        self.snapshot = snapshot if snapshot is not None else default_snapshot()
        self._cursor = 0

    # -- step cursor -------------------------------------------------------

    @property
    def current_section(self) -> Section:
        return STEPS[self._cursor]

    @property
    def step_index(self) -> int:
        return self._cursor

    def next(self) -> Section:
        if self._cursor < len(STEPS) - 1:
            self._cursor += 1
        return self.current_section

    def previous(self) -> Section:
        if self._cursor > 0:
            self._cursor -= 1
        return self.current_section

    def jump_to(self, section: Section) -> Section:
        self._cursor = STEPS.index(Section(section))
        return self.current_section

    # -- direct edits ------------------------------------------------------

    def apply_field_edit(self, section: Section, field: str, value: Any) -> IntegrationSnapshot:
        """Set one field of one section on the working snapshot."""
        section = Section(section)
        if section is Section.BASIC_INFO:
            if field not in BASIC_INFO_FIELDS:
                raise ValueError(f"Unknown field for {section.value}: {field}")
            self.snapshot = merge_section(self.snapshot, {field: value})
        else:
            attr = SECTION_ATTRIBUTES[section]
            updated = merge_section(getattr(self.snapshot, attr), {field: value})
            self.snapshot = merge_section(self.snapshot, {attr: updated})
        return self.snapshot

    def map_parameter(self, parameter: str, standard_name: str) -> IntegrationSnapshot:
        """Map a discovered query parameter onto a standard parameter name."""
        if standard_name not in self._standard_params:
            raise ValueError(f"Not a standard parameter: {standard_name}")
        mapping = dict(self.snapshot.captive_portal.query_string_mapping or {})
        mapping[parameter] = standard_name
        return self.apply_field_edit(Section.CAPTIVE_PORTAL, "query_string_mapping", mapping)

    # -- composition actions -----------------------------------------------

    def load_sample(self) -> IntegrationSnapshot:
        self.snapshot = sample_snapshot()
        return self.snapshot

    def load_previous_revision(self, vendor_name: Optional[str] = None) -> ConfigurationVersion:
        """Replace the working snapshot with the lineage's latest version.

        Always resolves to the highest version number, regardless of which
        version the working snapshot was derived from.
        """
        name = vendor_name or self.vendor_name
        latest = self._store.latest_version(name)
        if latest is None:
            raise NoPriorRevisionError(f"No previous revisions found for {name!r}")
        self.snapshot = latest.snapshot
        if latest.description:
            self.description = latest.description
        logger.info("Loaded %s v%d into working snapshot", name, latest.version)
        return latest

    def import_snapshot(self, raw: Union[str, bytes, Mapping[str, Any]]) -> ImportedPayload:
        payload = decode_import(raw)
        self.snapshot = payload.snapshot
        if payload.description:
            self.description = payload.description
        if payload.vendor_name and not self.vendor_name:
            self.vendor_name = payload.vendor_name
        return payload

    def apply_log_extraction(self, result: LogExtractionResult) -> IntegrationSnapshot:
        """Merge log extraction output without clobbering known parameters."""
        portal = self.snapshot.captive_portal
        patch: dict[str, Any] = {}
        if result.redirection_url:
            patch["redirection_url"] = result.redirection_url
        if result.query_string_parameters:
            merged = dict(portal.query_string_parameters or {})
            for name, value in result.query_string_parameters.items():
                merged.setdefault(name, value)
            patch["query_string_parameters"] = merged
        if patch:
            self.snapshot = merge_section(
                self.snapshot, {"captive_portal": merge_section(portal, patch)}
            )
        return self.snapshot

    def apply_packet_extraction(self, result: PacketDecodeResult) -> IntegrationSnapshot:
        self.snapshot = apply_to_snapshot(self.snapshot, result)
        return self.snapshot

    # -- finalization ------------------------------------------------------

    def commit(
        self,
        vendor_name: Optional[str],
        owner_id: int,
        owner_username: str = "",
        description: Optional[str] = None,
    ) -> ConfigurationVersion:
        """Persist the working snapshot as the lineage's next version."""
        name = vendor_name or self.vendor_name
        snapshot = merge_section(self.snapshot, {"timestamp": now_millis()})
        version = self._store.create_version(
            name,
            snapshot,
            owner_id,
            owner_username=owner_username,
            description=description if description is not None else self.description,
            link_to_latest=True,
        )
        self.vendor_name = version.vendor_name
        self.snapshot = version.snapshot
        return version
