"""SQLite schema and pragmas for publication storage."""

from __future__ import annotations

import sqlite3


PRAGMA_BUSY_TIMEOUT_MS = 5000


def apply_runtime_pragmas(connection: sqlite3.Connection) -> None:
    """Apply runtime pragmas for a local single-writer database."""

    connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute(f"PRAGMA busy_timeout={PRAGMA_BUSY_TIMEOUT_MS};")
    connection.execute("PRAGMA synchronous=NORMAL;")
    connection.execute("PRAGMA foreign_keys=ON;")


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create publication and chapter tables if missing."""

    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS publications (
            id INTEGER PRIMARY KEY,
            slug TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            author TEXT,
            description TEXT,
            type TEXT NOT NULL DEFAULT 'book',
            owner TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS chapters (
            id INTEGER PRIMARY KEY,
            publication_id INTEGER NOT NULL,
            number INTEGER NOT NULL CHECK(number > 0),
            title TEXT NOT NULL,
            body TEXT NOT NULL,
            word_count INTEGER NOT NULL DEFAULT 0,
            access_level TEXT NOT NULL DEFAULT 'free'
                CHECK(access_level IN ('free', 'member', 'supporter', 'patron')),
            published INTEGER NOT NULL DEFAULT 0,
            review_status TEXT NOT NULL DEFAULT 'draft',
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(publication_id) REFERENCES publications(id) ON DELETE CASCADE,
            UNIQUE(publication_id, number)
        );

        CREATE INDEX IF NOT EXISTS idx_chapters_publication_number
        ON chapters(publication_id, number);
        """
    )
