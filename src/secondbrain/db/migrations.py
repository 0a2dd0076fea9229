"""Forward-only migration runner for the SecondBrain database schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS ingest_items (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    kind            TEXT NOT NULL CHECK (kind IN ('TEXT', 'URL', 'PDF', 'IMAGE', 'AUDIO')),
    source          TEXT NOT NULL DEFAULT 'manual',
    raw_text        TEXT,
    meta            TEXT,
    status          TEXT NOT NULL DEFAULT 'PENDING'
                    CHECK (status IN ('PENDING', 'PROCESSING', 'DONE', 'ERROR')),
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    reclaimed_at    DATETIME,
    processed_at    DATETIME
);

CREATE INDEX IF NOT EXISTS ingest_items_user_status
    ON ingest_items (user_id, status);

CREATE TABLE IF NOT EXISTS insights (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    title           TEXT NOT NULL,
    summary         TEXT NOT NULL DEFAULT '',
    takeaway        TEXT NOT NULL DEFAULT '',
    content         TEXT NOT NULL DEFAULT '',
    ingest_item_id  TEXT REFERENCES ingest_items(id) ON DELETE SET NULL,
    section_index   INTEGER,
    section_label   TEXT,
    embedding       TEXT,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    updated_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE UNIQUE INDEX IF NOT EXISTS insights_item_section
    ON insights (ingest_item_id, section_index)
    WHERE ingest_item_id IS NOT NULL AND section_index IS NOT NULL;

CREATE INDEX IF NOT EXISTS insights_user ON insights (user_id);

CREATE TABLE IF NOT EXISTS tags (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    name            TEXT NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now')),
    UNIQUE (user_id, name)
);

CREATE TABLE IF NOT EXISTS insight_tags (
    insight_id      TEXT NOT NULL REFERENCES insights(id) ON DELETE CASCADE,
    tag_id          TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    PRIMARY KEY (insight_id, tag_id)
);

CREATE TABLE IF NOT EXISTS settings (
    key             TEXT PRIMARY KEY,
    value           TEXT NOT NULL
);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
