"""Pre-compiled regex patterns for the AMECO ingestion tools.

All patterns are compiled once at module import. Header classification and
amount parsing run once per cell, so recompiling inline would show up in
profiles for the larger chapters (AMECO1 and AMECO12 run to tens of
thousands of rows).

Usage:
    from utils.patterns import YEAR_HEADER, AMECO_FILE_STEM

    if YEAR_HEADER.match(cell.strip()):
        ...
"""

import re

# Year column headers: an optionally signed run of ASCII digits.
# Matches: "1960", "2024", "+2020". Rejects: "FY2020", "2020.0", "20 20".
YEAR_HEADER = re.compile(r'^[+-]?[0-9]+$')

# AMECO extract file stems: "AMECO7", "ameco12". Group 1 is the chapter number.
# The suffix must be pure ASCII digits; "AMECO", "AMECO7b" and "AMECOXYZ" fail.
AMECO_FILE_STEM = re.compile(r'^AMECO([0-9]+)$', re.IGNORECASE)

# Invariant-culture decimal literal after thousands separators are removed.
# Matches: "1000", "-3.25", ".5", "1e3". Rejects: "NA", "nan", "inf", "1.2.3".
DECIMAL_LITERAL = re.compile(r'^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$')
