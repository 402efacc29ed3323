"""
Row mapping -- one positional data row to a MappedRow.

map_row() never raises. Rows that cannot be mapped come back as a failed
MapResult whose message names the offending column or year and, where the
row got far enough, its variable code and subchapter label.

Per-year problems are softer than per-row ones:

  - a year cell beyond the end of the row is skipped
  - a year header that is not an integer is skipped
  - an amount that does not parse ("NA", "n/a", "") becomes 0
"""

from __future__ import annotations

import logging

from pipeline.errors import HeaderError
from pipeline.header import REQUIRED_COLUMNS
from pipeline.models import UNKNOWN_CHAPTER, MappedRow, MapResult, YearValue
from utils.strings import parse_year, safe_decimal

logger = logging.getLogger(__name__)


def _year_position(header: list[str], year: str) -> int:
    for idx, cell in enumerate(header):
        if (cell or "").strip() == year:
            return idx
    raise HeaderError(f"Year column {year!r} not found in header")


def _optional_cell(row: list[str], column_indices: dict[str, int], col: str) -> str:
    idx = column_indices.get(col)
    if idx is None or idx >= len(row):
        return ""
    return (row[idx] or "").strip()


def map_row(
    row: list[str],
    header: list[str],
    column_indices: dict[str, int],
    year_columns: list[str],
    chapter_name: str,
) -> MapResult:
    """Map one data row.

    Args:
        row: Raw cells, already fitted to the header width by the reader.
        header: The file's raw header, used to locate year columns.
        column_indices: Upper-cased column name -> position, from resolve_header().
        year_columns: Year header strings in file order.
        chapter_name: Chapter resolved for the whole file.

    Returns:
        MapResult.success(MappedRow) or MapResult.fail(message).
    """
    variable_code = _optional_cell(row, column_indices, "CODE")
    subchapter_name = _optional_cell(row, column_indices, "SUB-CHAPTER")

    for col in REQUIRED_COLUMNS:
        idx = column_indices.get(col)
        if idx is None or idx >= len(row):
            return MapResult.fail(
                f"Row has missing or invalid {col} index/data "
                f"(variable {variable_code or '?'}, subchapter {subchapter_name or '?'})"
            )

    try:
        def cell(col: str) -> str:
            return (row[column_indices[col]] or "").strip()

        mapped = MappedRow(
            chapter_name=(chapter_name or "").strip() or UNKNOWN_CHAPTER,
            subchapter_name=subchapter_name,
            variable_code=variable_code,
            variable_name=cell("TITLE"),
            unit_code=cell("UNIT_CODE"),
            unit_description=cell("UNIT_DESCRIPTION"),
            country_code=cell("CNTRY"),
            country_name=cell("COUNTRY"),
            trn=cell("TRN"),
            agg=cell("AGG"),
            ref=cell("REF"),
        )

        for year_text in year_columns:
            pos = _year_position(header, year_text)
            if pos >= len(row):
                logger.warning("Year %s at position %d is beyond row length %d for %s",
                               year_text, pos, len(row), mapped.describe())
                continue
            year = parse_year(year_text)
            if year is None:
                logger.warning("Year header %r is not an integer, skipped for %s",
                               year_text, mapped.describe())
                continue
            mapped.values.append(YearValue(year=year, amount=safe_decimal(row[pos])))
    except Exception as exc:
        return MapResult.fail(
            f"Failed to map row (variable {variable_code or '?'}, "
            f"subchapter {subchapter_name or '?'}): {exc}"
        )

    return MapResult.success(mapped)
