"""SQLite schema definitions for exchange-keyvault.

The database holds named slots, each a single JSON document tagged with a
schema token. The account metadata store lives in one such slot. Secrets are
never written here.
"""

from __future__ import annotations

# Current schema version -- increment when adding migrations
SCHEMA_VERSION = 1

# All table names managed by this schema
_TABLE_NAMES: list[str] = [
    "slots",
    "schema_version",
]


def get_all_table_names() -> list[str]:
    """Return the list of all table names managed by this schema."""
    return list(_TABLE_NAMES)


async def create_all_tables(db) -> None:
    """Apply the full V1 schema to the database.

    Convenience wrapper for tests and fresh databases. For production
    use, prefer ``apply_migrations()`` from the migrations module.
    """
    await db.executescript(SCHEMA_V1_SQL)
    await db.commit()


# ---------------------------------------------------------------------------
# SQL statements for schema version 1
# ---------------------------------------------------------------------------

SCHEMA_V1_SQL = """
-- Named JSON documents, one row per slot
CREATE TABLE IF NOT EXISTS slots (
    name TEXT PRIMARY KEY,
    schema TEXT NOT NULL,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""
