"""
Header resolution for AMECO extracts.

Turns the positional header row into a name -> column index map plus the
ordered list of year columns, and decides whether the file can be mapped at
all. Matching is case-insensitive: names are stored upper-cased.

Two header shapes exist in the wild:

  - current:  ... UNIT_CODE, UNIT_DESCRIPTION, CNTRY, ...
  - legacy:   ... UNIT, UNIT, CNTRY, ...  (code first, description second)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from utils.strings import normalize_header, parse_year

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: tuple[str, ...] = (
    "CODE",
    "SUB-CHAPTER",
    "TITLE",
    "UNIT_CODE",
    "UNIT_DESCRIPTION",
    "CNTRY",
    "COUNTRY",
    "TRN",
    "AGG",
    "REF",
)

_LEGACY_UNIT = "UNIT"


@dataclass
class HeaderResult:
    column_indices: dict[str, int] = field(default_factory=dict)
    year_columns: list[str] = field(default_factory=list)
    valid: bool = False
    error_message: str | None = None


def resolve_header(header: list[str], source: str = "") -> HeaderResult:
    """Scan *header* left to right and build the column map.

    Args:
        header: Raw header cells as returned by the reader.
        source: File path, used only for log context.

    Returns:
        HeaderResult. ``valid`` is False when a required column is missing
        (``error_message`` names the first one) or no year column exists.
    """
    result = HeaderResult()
    year_region = False
    pending_unit = False

    for idx, raw in enumerate(header):
        text = (raw or "").strip()
        if not text:
            logger.warning("%s: blank header cell at position %d skipped", source, idx)
            pending_unit = False
            continue

        if parse_year(text) is not None:
            year_region = True
            pending_unit = False
            if text in result.year_columns:
                logger.warning("%s: duplicate year column %r at position %d",
                               source, text, idx)
                continue
            result.year_columns.append(text)
            continue

        name = normalize_header(text)
        if year_region:
            logger.warning("%s: non-numeric header %r found after year columns "
                           "(position %d)", source, text, idx)

        if name == _LEGACY_UNIT and not year_region:
            if pending_unit:
                name = "UNIT_DESCRIPTION"
                pending_unit = False
            elif idx + 1 < len(header) and normalize_header(header[idx + 1] or "") == _LEGACY_UNIT:
                name = "UNIT_CODE"
                pending_unit = True
        else:
            pending_unit = False

        if name in result.column_indices:
            logger.warning("%s: duplicate header %r at position %d ignored "
                           "(first seen at %d)", source, name, idx,
                           result.column_indices[name])
            continue
        result.column_indices[name] = idx

    for required in REQUIRED_COLUMNS:
        if required not in result.column_indices:
            result.error_message = f"Missing required column: {required}"
            return result
    if not result.year_columns:
        result.error_message = "No year columns found in header."
        return result

    result.valid = True
    logger.debug("%s: header resolved with %d named and %d year columns",
                 source, len(result.column_indices), len(result.year_columns))
    return result
