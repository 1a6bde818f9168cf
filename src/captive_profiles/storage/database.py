"""DuckDB connection manager and initialization."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import duckdb

from captive_profiles.storage.schema import MIGRATION_COLUMNS, SCHEMA_DDL

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./data/captive_profiles.duckdb"


def resolve_db_path(db_path: str | None = None) -> str:
    """Resolve database path from argument, env var, or default.

    Priority: explicit arg > CAPTIVE_PROFILES_DB env var > default local file.
    Supports MotherDuck URIs (md:database_name) and ":memory:".
    """
    if db_path:
        return db_path
    return os.environ.get("CAPTIVE_PROFILES_DB", DEFAULT_DB_PATH)


class Database:
    """DuckDB database connection manager. Supports local files and MotherDuck."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH) -> None:
        self.db_path = db_path
        self._is_motherduck = db_path.startswith("md:")
        self._conn: duckdb.DuckDBPyConnection | None = None

    @property
    def conn(self) -> duckdb.DuckDBPyConnection:
        if self._conn is None:
            self._conn = self._connect()
        return self._conn

    def _connect(self) -> duckdb.DuckDBPyConnection:
        if self._is_motherduck:
            return self._connect_motherduck()
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Opening DuckDB database %s", self.db_path)
        return duckdb.connect(self.db_path)

    def _connect_motherduck(self) -> duckdb.DuckDBPyConnection:
        # The motherduck extension reads the token from the environment
        if not os.environ.get("MOTHERDUCK_TOKEN"):
            raise EnvironmentError(
                f"MOTHERDUCK_TOKEN must be set to open {self.db_path}"
            )
        logger.debug("Opening MotherDuck database %s", self.db_path)
        return duckdb.connect(self.db_path)

    def initialize(self) -> None:
        """Create all tables if they don't exist, then run migrations."""
        self.conn.execute(SCHEMA_DDL)
        self._migrate()

    def _migrate(self) -> None:
        """Add columns introduced after the initial schema (idempotent)."""
        for table, col_name, col_type in MIGRATION_COLUMNS:
            exists = self.conn.execute(
                """SELECT 1 FROM information_schema.columns
                   WHERE table_name = ? AND column_name = ?""",
                [table, col_name],
            ).fetchone()
            if exists is None:
                logger.info("Migrating %s: adding column %s", table, col_name)
                self.conn.execute(f"ALTER TABLE {table} ADD COLUMN {col_name} {col_type}")

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Database:
        self.initialize()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
