"""Database utilities for the AMECO ingestion tools.

Provides reusable functions for:
- Database schema creation and pragmas
- Common row-count and existence queries
- Connection lifecycle helpers

The schema mirrors the normalized AMECO model: a two-level taxonomy
(chapters -> subchapters), indicator definitions (variables), reporting
entities (countries) and the yearly fact table (ameco_values). Every
natural key carries a unique index so that get-or-create resolution can
never produce duplicates, even if a caller bypasses the repository.
"""

import sqlite3
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

from utils.config import DatabaseConfig

# Decimal amounts are stored as TEXT to keep their exact scale.
sqlite3.register_adapter(Decimal, str)

# Tables in dependency order (parents first).
TABLES = ("chapters", "subchapters", "variables", "countries", "ameco_values")

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS chapters (
        id   INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ux_chapters_name ON chapters(name);

    CREATE TABLE IF NOT EXISTS subchapters (
        id         INTEGER PRIMARY KEY AUTOINCREMENT,
        name       TEXT NOT NULL,
        chapter_id INTEGER NOT NULL REFERENCES chapters(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ux_subchapters_chapter_name
        ON subchapters(chapter_id, name);

    CREATE TABLE IF NOT EXISTS variables (
        id               INTEGER PRIMARY KEY AUTOINCREMENT,
        code             TEXT NOT NULL,
        name             TEXT NOT NULL,
        unit_code        TEXT NOT NULL DEFAULT '',
        unit_description TEXT NOT NULL DEFAULT '',
        subchapter_id    INTEGER NOT NULL REFERENCES subchapters(id),
        trn              TEXT,
        agg              TEXT,
        ref              TEXT
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ux_variables_code ON variables(code);

    CREATE TABLE IF NOT EXISTS countries (
        id   INTEGER PRIMARY KEY AUTOINCREMENT,
        code TEXT NOT NULL,
        name TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ux_countries_code ON countries(code);

    CREATE TABLE IF NOT EXISTS ameco_values (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        variable_id INTEGER NOT NULL REFERENCES variables(id),
        country_id  INTEGER NOT NULL REFERENCES countries(id),
        year        INTEGER NOT NULL,
        month       INTEGER,
        amount      TEXT NOT NULL,
        is_monthly  INTEGER NOT NULL DEFAULT 0
    );
    -- SQLite treats NULLs as distinct in UNIQUE constraints; fold the
    -- nullable month so yearly rows collide on (variable, country, year).
    CREATE UNIQUE INDEX IF NOT EXISTS ux_values_key
        ON ameco_values(variable_id, country_id, year, IFNULL(month, -1));
    CREATE INDEX IF NOT EXISTS ix_values_country ON ameco_values(country_id);
"""


def init_pragmas(conn: sqlite3.Connection,
                 config: Optional[DatabaseConfig] = None) -> None:
    """Initialize SQLite performance and reliability pragmas.

    - WAL mode so a reader can inspect the database during a long import
    - NORMAL synchronous mode for speed without data loss
    - Memory temp store and a larger page cache
    - Foreign keys on, so orphaned rows are rejected at commit time

    Args:
        conn: SQLite connection to configure
        config: Optional DatabaseConfig overriding the defaults
    """
    cfg = config or DatabaseConfig()
    if cfg.wal_mode:
        conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA synchronous={cfg.synchronous}")
    conn.execute(f"PRAGMA temp_store={cfg.temp_store}")
    conn.execute(f"PRAGMA cache_size={int(cfg.cache_size)}")
    conn.execute("PRAGMA foreign_keys=ON")


def create_database(db_path: Path | str, rebuild: bool = False) -> sqlite3.Connection:
    """Open (creating if needed) the AMECO database and ensure the schema.

    Args:
        db_path: Path to the SQLite file, or ":memory:"
        rebuild: If True, drop all AMECO tables before recreating them

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row
    """
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    init_pragmas(conn)
    if rebuild:
        for table in reversed(TABLES):
            conn.execute(f"DROP TABLE IF EXISTS {table}")
        conn.commit()
    conn.executescript(_SCHEMA)
    conn.commit()
    return conn


def get_table_count(conn: sqlite3.Connection, table: str) -> int:
    """Get row count for a table.

    Args:
        conn: SQLite connection
        table: Table name

    Returns:
        Number of rows in table
    """
    result = conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
    return result[0] if result else 0


def get_table_counts(conn: sqlite3.Connection) -> Dict[str, int]:
    """Return row counts for every AMECO table, parents first."""
    return {table: get_table_count(conn, table) for table in TABLES}


def table_exists(conn: sqlite3.Connection, table: str) -> bool:
    """Check if a table exists in the database.

    Args:
        conn: SQLite connection
        table: Table name

    Returns:
        True if table exists, False otherwise
    """
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (table,)
    )
    return cursor.fetchone() is not None
