"""DuckDB table definitions."""

SCHEMA_DDL = """
-- One row per configuration version; rows are never physically deleted
CREATE TABLE IF NOT EXISTS vendor_versions (
    id                TEXT PRIMARY KEY,
    vendor_name       TEXT NOT NULL,
    version           INTEGER NOT NULL,
    snapshot_json     TEXT NOT NULL,
    owner_id          BIGINT NOT NULL,
    owner_username    TEXT,
    parent_version_id TEXT,
    description       TEXT,
    created_at        TIMESTAMP NOT NULL,
    updated_at        TIMESTAMP NOT NULL,
    deleted           BOOLEAN DEFAULT FALSE,
    UNIQUE (vendor_name, version)
);

-- Explicit read grants
CREATE TABLE IF NOT EXISTS version_shares (
    version_id    TEXT NOT NULL,
    username      TEXT NOT NULL,
    shared_at     TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (version_id, username)
);
"""

# Columns added after the first schema release. Applied to older databases
# only; fresh databases already get them from SCHEMA_DDL.
MIGRATION_COLUMNS = [
    ("vendor_versions", "deleted", "BOOLEAN DEFAULT FALSE"),
]
