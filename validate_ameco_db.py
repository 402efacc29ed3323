"""
AMECO Database Validation Suite

Runs quality checks against a populated AMECO SQLite database and reports
anything the importer should never have produced (duplicate value keys,
dangling foreign keys) alongside softer anomalies worth a look (unknown
classification codes, variables with no observations, files that fell back
to an "Unknown Chapter").

Usage:
    python validate_ameco_db.py                      # Default database
    python validate_ameco_db.py --db mydb.sqlite     # Custom path
    python validate_ameco_db.py --verbose            # Show issue samples
    python validate_ameco_db.py --json               # JSON output
    python validate_ameco_db.py --threshold warning  # Exit non-zero on warnings+
"""

from __future__ import annotations

import argparse
import json
import sqlite3
import sys
from pathlib import Path

from pipeline.models import UNKNOWN_CHAPTER
from utils import AppConfig, get_connection, table_exists
from utils.database import TABLES
from utils.config import KnownValues
from utils.validation import (
    ValidationIssue,
    ValidationRegistry,
    ValidationResult,
    is_known_code,
    is_valid_year,
)

_SEVERITY_LEVELS = {"info": 0, "warning": 1, "error": 2}


# ── Individual checks ────────────────────────────────────────────────────────

def check_schema(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """Every AMECO table must exist."""
    return [
        ValidationIssue("schema", "error", f"Missing table: {t}")
        for t in TABLES if not table_exists(conn, t)
    ]


def check_duplicate_values(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """(variable, country, year, month) must identify at most one value."""
    rows = conn.execute("""
        SELECT v.code, c.code, av.year, av.month, COUNT(*) AS cnt
        FROM ameco_values av
        JOIN variables v ON v.id = av.variable_id
        JOIN countries c ON c.id = av.country_id
        GROUP BY av.variable_id, av.country_id, av.year, IFNULL(av.month, -1)
        HAVING cnt > 1
        ORDER BY cnt DESC
        LIMIT 50
    """).fetchall()
    return [
        ValidationIssue(
            "duplicate_values", "error",
            f"{r[4]} values for {r[0]}/{r[1]} year={r[2]} month={r[3]}",
            sample=f"{r[0]}/{r[1]}/{r[2]}", count=r[4],
        )
        for r in rows
    ]


_ORPHAN_QUERIES = (
    ("ameco_values.variable_id", """
        SELECT COUNT(*), MIN(av.variable_id) FROM ameco_values av
        LEFT JOIN variables v ON v.id = av.variable_id WHERE v.id IS NULL
    """),
    ("ameco_values.country_id", """
        SELECT COUNT(*), MIN(av.country_id) FROM ameco_values av
        LEFT JOIN countries c ON c.id = av.country_id WHERE c.id IS NULL
    """),
    ("variables.subchapter_id", """
        SELECT COUNT(*), MIN(v.subchapter_id) FROM variables v
        LEFT JOIN subchapters s ON s.id = v.subchapter_id WHERE s.id IS NULL
    """),
    ("subchapters.chapter_id", """
        SELECT COUNT(*), MIN(s.chapter_id) FROM subchapters s
        LEFT JOIN chapters ch ON ch.id = s.chapter_id WHERE ch.id IS NULL
    """),
)


def check_orphaned_keys(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """Every foreign key must point at an existing parent row."""
    issues = []
    for column, sql in _ORPHAN_QUERIES:
        cnt, sample = conn.execute(sql).fetchone()
        if cnt:
            issues.append(ValidationIssue(
                "orphaned_keys", "error",
                f"{cnt} rows with dangling {column}", sample=sample, count=cnt,
            ))
    return issues


def check_variables_without_values(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """Variables that never received an observation (every year skipped)."""
    rows = conn.execute("""
        SELECT v.code FROM variables v
        WHERE NOT EXISTS (SELECT 1 FROM ameco_values av WHERE av.variable_id = v.id)
        ORDER BY v.code
    """).fetchall()
    if not rows:
        return []
    return [ValidationIssue(
        "variables_without_values", "warning",
        f"{len(rows)} variables have no values",
        sample=", ".join(r[0] for r in rows[:10]), count=len(rows),
    )]


_CODE_COLUMNS = (
    ("trn", KnownValues.TRANSFORMATION_TYPES, "warning"),
    ("agg", KnownValues.AGGREGATION_MODES, "warning"),
    ("ref", KnownValues.REFERENCE_CODES, "warning"),
    # The unit table only lists the common denominators
    ("unit_code", KnownValues.UNIT_CODES, "info"),
)


def check_unknown_codes(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """Raw classification codes with no entry in the known-code tables."""
    issues = []
    for column, known, severity in _CODE_COLUMNS:
        rows = conn.execute(
            f"SELECT {column}, COUNT(*) FROM variables GROUP BY {column}"
        ).fetchall()
        unknown = [(code, cnt) for code, cnt in rows if not is_known_code(code, known)]
        if unknown:
            total = sum(cnt for _, cnt in unknown)
            issues.append(ValidationIssue(
                "unknown_codes", severity,
                f"{total} variables with unrecognised {column.upper()} codes",
                sample=", ".join(str(code) for code, _ in unknown[:10]), count=total,
            ))
    return issues


def check_unknown_chapters(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """Chapters that fell back to the Unknown Chapter label."""
    rows = conn.execute(
        "SELECT name FROM chapters WHERE name LIKE ? ORDER BY name",
        (UNKNOWN_CHAPTER + "%",),
    ).fetchall()
    return [
        ValidationIssue("unknown_chapters", "warning",
                        f"Chapter {r[0]!r} could not be derived from a file name",
                        sample=r[0])
        for r in rows
    ]


def check_year_range(conn: sqlite3.Connection) -> list[ValidationIssue]:
    """Years outside the span AMECO publishes are almost always header typos."""
    rows = conn.execute(
        "SELECT year, COUNT(*) FROM ameco_values GROUP BY year"
    ).fetchall()
    bad = [(y, n) for y, n in rows if not is_valid_year(y)]
    if not bad:
        return []
    total = sum(n for _, n in bad)
    return [ValidationIssue(
        "year_range", "warning", f"{total} values outside 1960-2100",
        sample=", ".join(str(y) for y, _ in bad[:10]), count=total,
    )]


ALL_CHECKS = [
    ("schema", check_schema),
    ("duplicate_values", check_duplicate_values),
    ("orphaned_keys", check_orphaned_keys),
    ("variables_without_values", check_variables_without_values),
    ("unknown_codes", check_unknown_codes),
    ("unknown_chapters", check_unknown_chapters),
    ("year_range", check_year_range),
]


def run_checks(conn: sqlite3.Connection,
               skip_checks: list[str] | None = None) -> ValidationResult:
    """Run ALL_CHECKS against *conn*; a missing schema stops the data checks."""
    registry = ValidationRegistry()
    registry.register("schema", check_schema)
    result = registry.run_all(conn)
    if not result.is_valid():
        return result

    registry = ValidationRegistry()
    for name, fn in ALL_CHECKS[1:]:
        registry.register(name, fn)
    rest = registry.run_all(conn, skip_checks=skip_checks)
    rest.passed_checks.insert(0, "schema")
    return rest


# ── Reporting ────────────────────────────────────────────────────────────────

def exceeds_threshold(result: ValidationResult, threshold: str) -> bool:
    level = _SEVERITY_LEVELS.get(threshold, 2)
    return any(_SEVERITY_LEVELS[i.severity] >= level for i in result.issues)


def print_report(result: ValidationResult, db_path: Path, verbose: bool = False) -> None:
    print("=" * 65)
    print("  AMECO DATABASE VALIDATION REPORT")
    print(f"  {db_path}")
    print("=" * 65)
    for name, _ in ALL_CHECKS:
        issues = [i for i in result.issues if i.check_name == name]
        if name in result.passed_checks:
            print(f"  [PASS] {name}")
            continue
        if name not in result.failed_checks:
            print(f"  [SKIP] {name}")
            continue
        worst = max(issues, key=lambda i: _SEVERITY_LEVELS[i.severity]).severity
        print(f"  [{worst.upper():5}] {name}: {len(issues)} issue(s)")
        if verbose:
            for issue in issues:
                line = f"      - {issue.detail}"
                if issue.sample is not None:
                    line += f" (e.g. {issue.sample})"
                print(line)
    print()
    print(result.summary_text())


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments, run all validation checks, and return the exit status."""
    default_db = AppConfig.from_env().db_path
    parser = argparse.ArgumentParser(
        description="Validate the AMECO database for data quality issues")
    parser.add_argument("--db", type=Path, default=default_db,
                        help=f"Database path (default: {default_db})")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show details for each issue found")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON")
    parser.add_argument("--threshold", default="error",
                        choices=["info", "warning", "error"],
                        help="Exit non-zero if issues at/above this severity (default: error)")
    args = parser.parse_args(argv)

    conn = get_connection(args.db)
    try:
        result = run_checks(conn)
    finally:
        conn.close()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_report(result, args.db, verbose=args.verbose)
    return 1 if exceeds_threshold(result, args.threshold) else 0


if __name__ == "__main__":
    sys.exit(main())
