"""
Tests for pipeline/header.py -- column map, year detection and validation.
"""

import logging

import pytest

from conftest import HEADER, LEGACY_HEADER
from pipeline.header import REQUIRED_COLUMNS, resolve_header


def test_current_header_is_valid():
    result = resolve_header(HEADER)
    assert result.valid
    assert result.error_message is None
    assert result.year_columns == ["2020", "2021"]
    assert result.column_indices["CODE"] == 0
    assert result.column_indices["UNIT_DESCRIPTION"] == 4
    assert result.column_indices["REF"] == 9
    assert "2020" not in result.column_indices


def test_legacy_unit_pair_maps_to_code_and_description():
    result = resolve_header(LEGACY_HEADER)
    assert result.valid
    assert result.column_indices["UNIT_CODE"] == 3
    assert result.column_indices["UNIT_DESCRIPTION"] == 4
    assert "UNIT" not in result.column_indices


def test_single_unit_cell_is_not_split():
    header = HEADER[:3] + ["UNIT"] + HEADER[5:]
    result = resolve_header(header)
    assert result.column_indices["UNIT"] == 3
    assert not result.valid
    assert result.error_message == "Missing required column: UNIT_CODE"


def test_matching_is_case_insensitive():
    header = [h.lower() for h in HEADER]
    result = resolve_header(header)
    assert result.valid
    assert result.column_indices["SUB-CHAPTER"] == 1


def test_cells_are_trimmed():
    header = [f"  {h} " for h in HEADER]
    result = resolve_header(header)
    assert result.valid
    assert result.year_columns == ["2020", "2021"]


@pytest.mark.parametrize("missing", REQUIRED_COLUMNS)
def test_missing_required_column_named(missing):
    header = [h for h in HEADER if h != missing]
    result = resolve_header(header)
    assert not result.valid
    assert result.error_message == f"Missing required column: {missing}"


def test_first_missing_column_reported():
    header = [h for h in HEADER if h not in ("TITLE", "REF")]
    assert resolve_header(header).error_message == "Missing required column: TITLE"


def test_no_year_columns_invalid():
    result = resolve_header(HEADER[:10])
    assert not result.valid
    assert result.error_message == "No year columns found in header."


def test_blank_cells_skipped_with_warning(caplog):
    header = HEADER[:5] + ["", "   "] + HEADER[5:]
    with caplog.at_level(logging.WARNING, logger="pipeline.header"):
        result = resolve_header(header, source="AMECO1.CSV")
    assert result.valid
    assert result.column_indices["CNTRY"] == 7
    assert "blank header cell" in caplog.text
    assert "AMECO1.CSV" in caplog.text


def test_name_after_year_region_recorded_with_warning(caplog):
    header = HEADER + ["NOTE"]
    with caplog.at_level(logging.WARNING, logger="pipeline.header"):
        result = resolve_header(header)
    assert result.valid
    assert result.column_indices["NOTE"] == 12
    assert "after year columns" in caplog.text


def test_duplicate_name_keeps_first_index(caplog):
    header = HEADER[:2] + ["CODE"] + HEADER[2:]
    with caplog.at_level(logging.WARNING, logger="pipeline.header"):
        result = resolve_header(header)
    assert result.column_indices["CODE"] == 0
    assert "duplicate header" in caplog.text


def test_signed_year_detected_but_decimal_is_not():
    header = HEADER[:10] + ["+2020", "2021.0"]
    result = resolve_header(header)
    assert result.year_columns == ["+2020"]
    assert result.column_indices["2021.0"] == 11
