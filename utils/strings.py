"""String processing utilities for the AMECO ingestion tools.

safe_decimal() is called once per year cell, so for a full AMECO release it
runs several million times. It avoids exceptions on the common "NA" path by
checking the pre-compiled DECIMAL_LITERAL pattern first.
"""

import math
from decimal import Decimal, InvalidOperation

from utils.patterns import DECIMAL_LITERAL, YEAR_HEADER


def safe_decimal(val, default: Decimal = Decimal(0)) -> Decimal:
    """Safely convert a raw cell value to Decimal with fallback default.

    Parsing is locale-invariant: "." is the decimal separator and "," is
    only accepted as a thousands separator.

    Handles:
    - None, empty strings, whitespace -> default
    - "NA" and any other non-numeric token -> default
    - "nan"/"inf" spellings -> default (Decimal would accept them)
    - int/float/Decimal -> Decimal
    - Strings with surrounding whitespace or thousands separators

    Args:
        val: Value to convert (any type)
        default: Value to return on failure (default: Decimal(0))

    Returns:
        Decimal: Parsed value or default
    """
    if val is None:
        return default
    if isinstance(val, bool):
        return default
    if isinstance(val, Decimal):
        return val if val.is_finite() else default
    if isinstance(val, int):
        return Decimal(val)
    if isinstance(val, float):
        return Decimal(repr(val)) if math.isfinite(val) else default

    s = str(val).strip().replace(',', '')
    if not s or not DECIMAL_LITERAL.match(s):
        return default
    try:
        return Decimal(s)
    except InvalidOperation:
        return default


def parse_year(text) -> int | None:
    """Parse a year header to int, or None when it is not a plain integer.

    Example:
        "2020" -> 2020, " 1999 " -> 1999, "FY2020" -> None
    """
    if text is None:
        return None
    s = str(text).strip()
    if not YEAR_HEADER.match(s):
        return None
    return int(s)


def normalize_header(cell) -> str:
    """Return the canonical form of a header cell: trimmed and upper-cased.

    Header names are matched case-insensitively throughout the pipeline, so
    every lookup key goes through this function.
    """
    if cell is None:
        return ""
    return str(cell).strip().upper()
