"""
AMECO file reader -- turns one extract on disk into a header and data rows.

Two formats are supported:

  - Delimited text (``.csv`` and anything else): read with the stdlib csv
    module, so quoted cells may contain commas.
  - Excel workbooks (``.xlsx``): the first worksheet is read with openpyxl in
    read-only mode.

The reader is deliberately dumb: cells are returned as raw strings ("NA"
included), positional rather than named, and every data row is normalised to
exactly the header's width (short rows padded with "", long rows truncated).
Rows with no non-blank cell are dropped.

A file that is missing, unreadable, or has no non-empty line yields None.
That is a "no data" signal for the orchestrator, not an exception.
"""

from __future__ import annotations

import csv
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from pipeline.errors import ReaderError

logger = logging.getLogger(__name__)

XLSX_SUFFIXES = frozenset({".xlsx", ".xlsm"})


@dataclass
class FileData:
    """Header plus width-normalised data rows for one file."""

    header: list[str]
    rows: list[list[str]] = field(default_factory=list)

    @property
    def has_rows(self) -> bool:
        return bool(self.rows)


def fit_row(row: list[str], width: int) -> list[str]:
    """Pad with "" or truncate *row* so that it has exactly *width* cells."""
    if len(row) >= width:
        return row[:width]
    return row + [""] * (width - len(row))


def _is_blank(row: list[str]) -> bool:
    return not row or all(not str(cell).strip() for cell in row)


def _split_header(raw_rows) -> FileData | None:
    """Take the first non-blank row as header; fit the rest to its width."""
    header: list[str] | None = None
    rows: list[list[str]] = []
    for raw in raw_rows:
        if header is None:
            if _is_blank(raw):
                continue
            header = list(raw)
            continue
        if _is_blank(raw):
            # empty, comma-only or whitespace-only line
            continue
        rows.append(fit_row(list(raw), len(header)))
    if header is None:
        return None
    return FileData(header=header, rows=rows)


# ── CSV ───────────────────────────────────────────────────────────────────────


def _read_csv(path: Path) -> FileData | None:
    try:
        with open(path, newline="", encoding="utf-8-sig") as fh:
            return _split_header(csv.reader(fh))
    except (csv.Error, UnicodeDecodeError) as exc:
        raise ReaderError(f"Could not parse {path}: {exc}") from exc


# ── XLSX ──────────────────────────────────────────────────────────────────────


def _cell_text(value) -> str:
    """Render an openpyxl cell value the way it would appear in a CSV export."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        # Year headers and whole-number amounts come back as floats
        return str(int(value))
    return str(value)


def _read_xlsx(path: Path) -> FileData | None:
    try:
        wb = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise ReaderError(f"Could not open workbook {path}: {exc}") from exc
    try:
        if not wb.worksheets:
            return None
        ws = wb.worksheets[0]
        raw_rows = (
            [_cell_text(v) for v in row]
            for row in ws.iter_rows(values_only=True)
        )
        return _split_header(raw_rows)
    finally:
        wb.close()


# ── Entry point ───────────────────────────────────────────────────────────────


def read_data_file(path: Path | str) -> FileData | None:
    """Read one AMECO extract into header + rows.

    Args:
        path: File to read. ``.xlsx``/``.xlsm`` go through openpyxl, every
              other suffix is parsed as comma-delimited text.

    Returns:
        FileData, or None when the file is missing, unreadable or empty.
        A header-only file returns FileData with an empty ``rows`` list.
    """
    path = Path(path)
    logger.debug("Reading data file %s", path)
    try:
        if path.suffix.lower() in XLSX_SUFFIXES:
            data = _read_xlsx(path)
        else:
            data = _read_csv(path)
    except FileNotFoundError:
        logger.error("Data file not found: %s", path)
        return None
    except (OSError, ReaderError) as exc:
        logger.error("Failed to read %s: %s", path, exc)
        return None

    if data is None:
        logger.warning("No header row found in %s", path)
        return None
    logger.debug("Read header with %d columns and %d data rows from %s",
                 len(data.header), len(data.rows), path)
    return data
