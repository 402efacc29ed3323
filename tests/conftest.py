"""
Pytest fixtures for the AMECO ingestion tests.

Provides sample AMECO extracts written into tmp_path (CSV and XLSX), a
fresh SQLite database with the production schema, and a fully wired
pipeline bound to that database.
"""

import csv
import sys
from pathlib import Path

import openpyxl
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from build_ameco_db import make_parser  # noqa: E402
from pipeline.repository import SqliteAmecoRepository  # noqa: E402
from utils.database import create_database  # noqa: E402


HEADER = [
    "CODE", "SUB-CHAPTER", "TITLE", "UNIT_CODE", "UNIT_DESCRIPTION",
    "CNTRY", "COUNTRY", "TRN", "AGG", "REF", "2020", "2021",
]

LEGACY_HEADER = [
    "CODE", "SUB-CHAPTER", "TITLE", "UNIT", "UNIT",
    "CNTRY", "COUNTRY", "TRN", "AGG", "REF", "2020", "2021",
]

NPTD_DE = [
    "NPTD", "01 Population", "Total population", "0", "1000 persons",
    "DE", "Germany", "1", "0", "0", "1000", "1010",
]

NPTD_FR = [
    "NPTD", "01 Population", "Total population", "0", "1000 persons",
    "FR", "France", "1", "0", "0", "670", "NA",
]

NETD_DE = [
    "NETD", "04 Employment, Persons (National Accounts)",
    "Employment, persons: total economy", "0", "1000 persons",
    "DE", "Germany", "1", "0", "0", "44900", "44980",
]


# ── Helpers ───────────────────────────────────────────────────────────────────

def write_csv(path: Path, header: list[str] | None, rows: list[list[str]]) -> Path:
    """Write an AMECO-style CSV. ``header=None`` writes only *rows*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        if header is not None:
            writer.writerow(header)
        writer.writerows(rows)
    return path


def write_xlsx(path: Path, header: list, rows: list[list]) -> Path:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "AMECO"
    ws.append(header)
    for row in rows:
        ws.append(row)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(path))
    return path


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture
def data_dir(tmp_path):
    """Data directory holding AMECO1.CSV with three rows (two variables, two countries)."""
    d = tmp_path / "Data"
    write_csv(d / "AMECO1.CSV", HEADER, [NPTD_DE, NPTD_FR, NETD_DE])
    return d


@pytest.fixture
def db(tmp_path):
    """A file-backed database with the production schema."""
    conn = create_database(tmp_path / "ameco.sqlite")
    yield conn
    conn.close()


@pytest.fixture
def mem_db():
    """An in-memory database with the production schema."""
    conn = create_database(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def repo(mem_db):
    return SqliteAmecoRepository(mem_db)


@pytest.fixture
def parser(db):
    """The default pipeline wired against the ``db`` fixture."""
    return make_parser(db)
