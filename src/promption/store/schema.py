"""SQLite DDL and migration runner for the promption database."""

from __future__ import annotations

import sqlite3

SCHEMA_VERSIONS_DDL = """
CREATE TABLE IF NOT EXISTS schema_versions (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

ITEMS_DDL = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY NOT NULL,
    name TEXT NOT NULL,
    content TEXT NOT NULL,
    item_type TEXT NOT NULL CHECK(item_type IN ('skill', 'rule', 'workflow')),
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

TAGS_DDL = """
CREATE TABLE IF NOT EXISTS tags (
    id TEXT PRIMARY KEY NOT NULL,
    name TEXT NOT NULL UNIQUE,
    color TEXT NOT NULL DEFAULT '#6366f1'
);
"""

ITEM_TAGS_DDL = """
CREATE TABLE IF NOT EXISTS item_tags (
    item_id TEXT NOT NULL,
    tag_id TEXT NOT NULL,
    PRIMARY KEY (item_id, tag_id),
    FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE,
    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
);
"""

ITEMS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_items_type ON items(item_type);",
    "CREATE INDEX IF NOT EXISTS idx_items_name ON items(name);",
    "CREATE INDEX IF NOT EXISTS idx_item_tags_tag ON item_tags(tag_id);",
]

TAGS_SYSTEM_COLUMNS = [
    "ALTER TABLE tags ADD COLUMN is_system INTEGER NOT NULL DEFAULT 0;",
    "ALTER TABLE tags ADD COLUMN icon_slug TEXT;",
]

AGENTS_DDL = """
CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY NOT NULL,
    name TEXT NOT NULL,
    mode TEXT NOT NULL DEFAULT 'subagent' CHECK(mode IN ('primary', 'subagent')),
    model TEXT,
    prompt_content TEXT,
    tools_config TEXT,
    permissions_config TEXT,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

AGENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_agents_name ON agents(name);",
]

MIGRATIONS: dict[int, list[str]] = {
    1: [ITEMS_DDL, TAGS_DDL, ITEM_TAGS_DDL, *ITEMS_INDEXES],
    2: TAGS_SYSTEM_COLUMNS,
    3: [AGENTS_DDL, *AGENTS_INDEXES],
}


def get_current_version(db: sqlite3.Connection) -> int:
    try:
        row = db.execute("SELECT MAX(version) FROM schema_versions").fetchone()
        return row[0] or 0
    except sqlite3.OperationalError:
        return 0


def run_migrations(db: sqlite3.Connection) -> None:
    """Apply all pending migrations to the database."""
    db.execute("PRAGMA journal_mode=WAL")
    db.execute("PRAGMA foreign_keys=ON")

    db.executescript(SCHEMA_VERSIONS_DDL)

    current = get_current_version(db)

    for version in sorted(MIGRATIONS.keys()):
        if version <= current:
            continue
        for statement in MIGRATIONS[version]:
            db.executescript(statement)
        db.execute("INSERT INTO schema_versions (version) VALUES (?)", (version,))
    db.commit()
