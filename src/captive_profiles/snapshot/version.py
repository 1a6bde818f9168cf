"""Configuration version record and its document form."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from pydantic import Field, StrictInt, StrictStr

from captive_profiles.errors import MalformedImportError
from captive_profiles.snapshot.models import (
    IntegrationSnapshot,
    ProfileModel,
    snapshot_from_dict,
    snapshot_to_dict,
)

logger = logging.getLogger(__name__)


@dataclass
class ConfigurationVersion:
    """One immutable point in a vendor's history."""

    id: str
    vendor_name: str
    version: int
    snapshot: IntegrationSnapshot
    owner_id: int
    owner_username: str = ""
    parent_version_id: Optional[str] = None
    shared_with_usernames: set[str] = field(default_factory=set)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    description: Optional[str] = None
    deleted: bool = False


class VersionDocument(ProfileModel):
    """Document form of a version.

    Only ``vendorName`` and ``snapshot`` are needed to recognize the shape on
    import; a complete export carries every field.
    """

    id: Optional[StrictStr] = None
    vendor_name: StrictStr
    version: Optional[StrictInt] = None
    snapshot: IntegrationSnapshot
    owner_id: Optional[StrictInt] = None
    owner_username: Optional[StrictStr] = None
    parent_version_id: Optional[StrictStr] = None
    shared_with_usernames: list[StrictStr] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    description: Optional[StrictStr] = None


@dataclass
class ImportedPayload:
    """Result of decoding an import: the snapshot plus adoptable metadata."""

    snapshot: IntegrationSnapshot
    description: Optional[str] = None
    vendor_name: Optional[str] = None
    from_version_document: bool = False


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


def version_to_document(version: ConfigurationVersion) -> dict:
    """Serialize a version to its JSON-compatible document form."""
    return {
        "id": version.id,
        "vendorName": version.vendor_name,
        "version": version.version,
        "snapshot": snapshot_to_dict(version.snapshot),
        "ownerId": version.owner_id,
        "ownerUsername": version.owner_username,
        "parentVersionId": version.parent_version_id,
        "sharedWithUsernames": sorted(version.shared_with_usernames),
        "createdAt": _iso(version.created_at),
        "updatedAt": _iso(version.updated_at),
        "description": version.description,
    }


def document_to_version(data: Mapping[str, Any]) -> ConfigurationVersion:
    """Decode a complete version document. Raises ValueError on shape errors."""
    doc = VersionDocument.model_validate(data)
    for name, key in (("id", "id"), ("version", "version"), ("owner_id", "ownerId")):
        if getattr(doc, name) is None:
            raise ValueError(f"Version document is missing '{key}'")
    return ConfigurationVersion(
        id=doc.id,
        vendor_name=doc.vendor_name,
        version=doc.version,
        snapshot=doc.snapshot,
        owner_id=doc.owner_id,
        owner_username=doc.owner_username or "",
        parent_version_id=doc.parent_version_id,
        shared_with_usernames=set(doc.shared_with_usernames),
        created_at=doc.created_at,
        updated_at=doc.updated_at,
        description=doc.description,
    )


def _is_version_shaped(data: Any) -> bool:
    return isinstance(data, Mapping) and "snapshot" in data and (
        "vendorName" in data or "vendor_name" in data
    )


def decode_import(raw: Union[str, bytes, Mapping[str, Any]]) -> ImportedPayload:
    """Decode an imported payload.

    Tries the full version-document shape first and falls back to a bare
    snapshot. Raises MalformedImportError when neither shape fits.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedImportError(f"Import is not valid JSON: {e}") from e
    else:
        data = raw

    version_err: Optional[ValueError] = None
    if _is_version_shaped(data):
        try:
            doc = VersionDocument.model_validate(data)
        except ValueError as e:
            logger.debug("Import is not a valid version document: %s", e)
            version_err = e
        else:
            return ImportedPayload(
                snapshot=doc.snapshot,
                description=doc.description or None,
                vendor_name=doc.vendor_name or None,
                from_version_document=True,
            )

    try:
        return ImportedPayload(snapshot=snapshot_from_dict(data))
    except ValueError as snapshot_err:
        if version_err is not None:
            message = f"Import is neither a version document ({version_err}) nor a snapshot ({snapshot_err})"
        else:
            message = f"Import is not a snapshot: {snapshot_err}"
        raise MalformedImportError(message) from snapshot_err
