"""Common utility functions used across the AMECO ingestion tools."""

import sqlite3
import sys
import time
from pathlib import Path


def elapsed(start_time: float) -> str:
    """Format elapsed time from start_time to now as human-readable string.

    Examples:
        30s, 2m 15s, 1h 05m 30s
    """
    secs = int(time.time() - start_time)
    m, s = divmod(secs, 60)
    h, m = divmod(m, 60)
    if h:
        return f"{h}h {m:02d}m {s:02d}s"
    return f"{m}m {s:02d}s"


def get_connection(db_path: Path) -> sqlite3.Connection:
    """Open an existing SQLite database for reading.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        sqlite3.Connection with row_factory set to sqlite3.Row for dict-like access.

    Raises:
        SystemExit: If database file does not exist.
    """
    if not db_path.exists():
        print(f"ERROR: Database not found: {db_path}", file=sys.stderr)
        print("Run 'python build_ameco_db.py' first to build the database.",
              file=sys.stderr)
        sys.exit(1)

    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn
