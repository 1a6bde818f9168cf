"""Version store: append-only configuration lineages backed by DuckDB."""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime
from typing import Iterable, Optional

from captive_profiles.errors import AccessDeniedError, InvalidNameError, NotFoundError
from captive_profiles.snapshot.models import (
    IntegrationSnapshot,
    snapshot_from_dict,
    snapshot_to_dict,
)
from captive_profiles.snapshot.version import ConfigurationVersion
from captive_profiles.storage.database import Database

logger = logging.getLogger(__name__)

_VERSION_COLUMNS = """id, vendor_name, version, snapshot_json, owner_id, owner_username,
       parent_version_id, description, created_at, updated_at, deleted"""


class VersionStore:
    """Operations on the vendor_versions and version_shares tables.

    All calls are serialized on one lock so that version minting for a
    vendor name is atomic with respect to other creators in this process;
    the UNIQUE (vendor_name, version) constraint backs this up across
    processes.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = threading.RLock()

    # -- writes ------------------------------------------------------------

    def create_version(
        self,
        vendor_name: str,
        snapshot: IntegrationSnapshot,
        owner_id: int,
        owner_username: str = "",
        description: Optional[str] = None,
        parent_version_id: Optional[str] = None,
        link_to_latest: bool = False,
    ) -> ConfigurationVersion:
        """Append a new version to the vendor's lineage.

        With ``link_to_latest`` the parent is the lineage's newest version at
        the moment the number is minted; ``parent_version_id`` is then ignored.
        Raises ValueError before writing anything if the snapshot does not
        survive its own document form.
        """
        if not vendor_name or not vendor_name.strip():
            raise InvalidNameError("Vendor name is required")

        snapshot_json = json.dumps(snapshot_to_dict(snapshot))
        snapshot_from_dict(json.loads(snapshot_json))

        with self._lock:
            conn = self._db.conn
            conn.begin()
            try:
                if link_to_latest:
                    latest = conn.execute(
                        """SELECT id FROM vendor_versions
                           WHERE vendor_name = ? AND NOT deleted
                           ORDER BY version DESC LIMIT 1""",
                        [vendor_name],
                    ).fetchone()
                    parent_version_id = latest[0] if latest else None
                elif parent_version_id is not None:
                    parent = conn.execute(
                        "SELECT 1 FROM vendor_versions WHERE id = ? AND NOT deleted",
                        [parent_version_id],
                    ).fetchone()
                    if parent is None:
                        raise NotFoundError(f"Parent version not found: {parent_version_id}")

                # Deleted versions still count: a minted number is never reused
                next_version = conn.execute(
                    "SELECT COALESCE(MAX(version), 0) + 1 FROM vendor_versions WHERE vendor_name = ?",
                    [vendor_name],
                ).fetchone()[0]

                version_id = uuid.uuid4().hex[:12]
                now = datetime.now()
                conn.execute(
                    """INSERT INTO vendor_versions
                       (id, vendor_name, version, snapshot_json, owner_id, owner_username,
                        parent_version_id, description, created_at, updated_at, deleted)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, FALSE)""",
                    [
                        version_id, vendor_name, next_version, snapshot_json,
                        owner_id, owner_username, parent_version_id, description,
                        now, now,
                    ],
                )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

        logger.info(
            "Created %s v%d (id=%s, parent=%s)",
            vendor_name, next_version, version_id, parent_version_id,
        )
        return self.get_version(version_id)

    def share_version(
        self,
        version_id: str,
        usernames: Iterable[str],
        requester_id: Optional[int] = None,
    ) -> ConfigurationVersion:
        """Grant read access to ``usernames`` (union with existing grants).

        When ``requester_id`` is given, only the owner may share.
        """
        with self._lock:
            version = self.get_version(version_id)
            if requester_id is not None and requester_id != version.owner_id:
                raise AccessDeniedError("Only the owner can share this configuration")
            new_names = sorted({u.strip() for u in usernames if u and u.strip()})
            for username in new_names:
                self._db.conn.execute(
                    """INSERT INTO version_shares (version_id, username)
                       VALUES (?, ?) ON CONFLICT DO NOTHING""",
                    [version_id, username],
                )
            logger.info("Shared %s with %s", version_id, ", ".join(new_names) or "nobody")
            return self.get_version(version_id)

    def delete_version(self, version_id: str, requester_id: int) -> None:
        """Soft-delete a version. Only the owner may delete."""
        with self._lock:
            version = self.get_version(version_id)
            if requester_id != version.owner_id:
                raise AccessDeniedError("Only the owner can delete this configuration")
            self._db.conn.execute(
                "UPDATE vendor_versions SET deleted = TRUE WHERE id = ?", [version_id]
            )
            logger.info("Soft-deleted %s v%d (id=%s)", version.vendor_name, version.version, version_id)

    # -- reads -------------------------------------------------------------

    def get_version(self, version_id: str) -> ConfigurationVersion:
        with self._lock:
            row = self._db.conn.execute(
                f"SELECT {_VERSION_COLUMNS} FROM vendor_versions WHERE id = ? AND NOT deleted",
                [version_id],
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Configuration version not found: {version_id}")
            return self._hydrate([row])[0]

    def list_versions(
        self, vendor_name: str, require_history: bool = False
    ) -> list[ConfigurationVersion]:
        """Lineage of ``vendor_name``, newest version first."""
        with self._lock:
            rows = self._db.conn.execute(
                f"""SELECT {_VERSION_COLUMNS} FROM vendor_versions
                    WHERE vendor_name = ? AND NOT deleted
                    ORDER BY version DESC""",
                [vendor_name],
            ).fetchall()
            if not rows and require_history:
                raise NotFoundError(f"No versions found for vendor: {vendor_name}")
            return self._hydrate(rows)

    def latest_version(self, vendor_name: str) -> Optional[ConfigurationVersion]:
        versions = self.list_versions(vendor_name)
        return versions[0] if versions else None

    def list_owned(self, owner_id: int) -> list[ConfigurationVersion]:
        with self._lock:
            rows = self._db.conn.execute(
                f"""SELECT {_VERSION_COLUMNS} FROM vendor_versions
                    WHERE owner_id = ? AND NOT deleted
                    ORDER BY created_at DESC, version DESC""",
                [owner_id],
            ).fetchall()
            return self._hydrate(rows)

    def list_shared_with(self, username: str) -> list[ConfigurationVersion]:
        with self._lock:
            rows = self._db.conn.execute(
                f"""SELECT {_VERSION_COLUMNS} FROM vendor_versions
                    WHERE NOT deleted AND id IN (
                        SELECT version_id FROM version_shares WHERE username = ?)
                    ORDER BY created_at DESC, version DESC""",
                [username],
            ).fetchall()
            return self._hydrate(rows)

    def list_accessible(self, owner_id: int, username: str) -> list[ConfigurationVersion]:
        """Versions owned by the user or shared with them."""
        with self._lock:
            rows = self._db.conn.execute(
                f"""SELECT {_VERSION_COLUMNS} FROM vendor_versions
                    WHERE NOT deleted AND (owner_id = ? OR id IN (
                        SELECT version_id FROM version_shares WHERE username = ?))
                    ORDER BY created_at DESC, version DESC""",
                [owner_id, username],
            ).fetchall()
            return self._hydrate(rows)

    def get_accessible(self, version_id: str, owner_id: int, username: str) -> ConfigurationVersion:
        version = self.get_version(version_id)
        if version.owner_id != owner_id and username not in version.shared_with_usernames:
            raise NotFoundError(f"Configuration not found or access denied: {version_id}")
        return version

    def vendor_summaries(self) -> list[dict]:
        """One row per vendor: version count and latest version number."""
        with self._lock:
            rows = self._db.conn.execute(
                """SELECT vendor_name, COUNT(*), MAX(version), MAX(created_at)
                   FROM vendor_versions
                   WHERE NOT deleted
                   GROUP BY vendor_name
                   ORDER BY vendor_name"""
            ).fetchall()
        return [
            {
                "vendor_name": r[0],
                "version_count": r[1],
                "latest_version": r[2],
                "last_updated": r[3],
            }
            for r in rows
        ]

    # -- helpers -----------------------------------------------------------

    def _load_shares(self, version_ids: list[str]) -> dict[str, set[str]]:
        shares: dict[str, set[str]] = {vid: set() for vid in version_ids}
        if not version_ids:
            return shares
        placeholders = ", ".join(["?"] * len(version_ids))
        rows = self._db.conn.execute(
            f"SELECT version_id, username FROM version_shares WHERE version_id IN ({placeholders})",
            version_ids,
        ).fetchall()
        for version_id, username in rows:
            shares[version_id].add(username)
        return shares

    def _hydrate(self, rows: list[tuple]) -> list[ConfigurationVersion]:
        shares = self._load_shares([r[0] for r in rows])
        return [
            ConfigurationVersion(
                id=r[0],
                vendor_name=r[1],
                version=r[2],
                snapshot=snapshot_from_dict(json.loads(r[3])),
                owner_id=r[4],
                owner_username=r[5] or "",
                parent_version_id=r[6],
                description=r[7],
                created_at=r[8],
                updated_at=r[9],
                deleted=bool(r[10]),
                shared_with_usernames=shares[r[0]],
            )
            for r in rows
        ]
