"""
Tests for pipeline/mapper.py -- row mapping never raises, per-year recovery.
"""

from decimal import Decimal

import pytest

from conftest import HEADER, LEGACY_HEADER, NPTD_DE
from pipeline.header import resolve_header
from pipeline.mapper import map_row
from pipeline.models import YearValue

CHAPTER = "Population And Employment"


def _map(row, header=HEADER, chapter=CHAPTER):
    h = resolve_header(header)
    return map_row(row, header, h.column_indices, h.year_columns, chapter)


def test_maps_all_dimension_fields():
    result = _map(NPTD_DE)
    assert result.ok
    m = result.value
    assert m.chapter_name == CHAPTER
    assert m.subchapter_name == "01 Population"
    assert m.variable_code == "NPTD"
    assert m.variable_name == "Total population"
    assert m.unit_code == "0"
    assert m.unit_description == "1000 persons"
    assert m.country_code == "DE"
    assert m.country_name == "Germany"
    assert (m.trn, m.agg, m.ref) == ("1", "0", "0")
    assert m.values == [YearValue(2020, Decimal("1000")), YearValue(2021, Decimal("1010"))]


def test_legacy_header_maps_unit_columns():
    m = _map(NPTD_DE, header=LEGACY_HEADER).value
    assert m.unit_code == "0"
    assert m.unit_description == "1000 persons"


def test_na_amount_becomes_zero_and_row_succeeds():
    row = NPTD_DE[:10] + ["NA", "1010"]
    result = _map(row)
    assert result.ok
    assert result.value.values[0] == YearValue(2020, Decimal(0))


@pytest.mark.parametrize("cell", ["", "n/a", "1.2.3", "nan", "inf"])
def test_unparseable_amount_defaults_to_zero(cell):
    row = NPTD_DE[:10] + [cell, "1010"]
    assert _map(row).value.values[0].amount == Decimal(0)


def test_amount_keeps_decimal_scale_and_thousands_separator():
    row = NPTD_DE[:10] + ["1,234.50", "-0.125"]
    values = _map(row).value.values
    assert values[0].amount == Decimal("1234.50")
    assert str(values[0].amount) == "1234.50"
    assert values[1].amount == Decimal("-0.125")


def test_blank_chapter_falls_back_to_unknown():
    assert _map(NPTD_DE, chapter="  ").value.chapter_name == "Unknown Chapter"


def test_short_row_fails_naming_first_missing_column():
    h = resolve_header(HEADER)
    result = map_row(NPTD_DE[:5], HEADER, h.column_indices, h.year_columns, CHAPTER)
    assert not result.ok
    assert result.value is None
    assert "CNTRY" in result.error
    assert "index/data" in result.error
    assert "variable NPTD" in result.error
    assert "subchapter 01 Population" in result.error


def test_row_too_short_for_context_uses_placeholders():
    h = resolve_header(HEADER)
    result = map_row(["NPTD"], HEADER, h.column_indices, h.year_columns, CHAPTER)
    assert not result.ok
    assert "SUB-CHAPTER" in result.error
    assert "variable NPTD, subchapter ?" in result.error


def test_missing_column_in_map_fails():
    h = resolve_header(HEADER)
    indices = dict(h.column_indices)
    del indices["TRN"]
    result = map_row(NPTD_DE, HEADER, indices, h.year_columns, CHAPTER)
    assert not result.ok
    assert "TRN" in result.error


def test_year_beyond_row_length_is_skipped():
    h = resolve_header(HEADER)
    row = NPTD_DE[:11]  # 2021 cell missing
    result = map_row(row, HEADER, h.column_indices, h.year_columns, CHAPTER)
    assert result.ok
    assert result.value.values == [YearValue(2020, Decimal("1000"))]


def test_year_not_in_header_fails_row_with_context():
    h = resolve_header(HEADER)
    result = map_row(NPTD_DE, HEADER, h.column_indices, ["2020", "1999"], CHAPTER)
    assert not result.ok
    assert "NPTD" in result.error
    assert "01 Population" in result.error
    assert "1999" in result.error


def test_non_integer_year_is_skipped():
    header = HEADER + ["2022a"]
    h = resolve_header(header)
    row = NPTD_DE + ["5"]
    result = map_row(row, header, h.column_indices, h.year_columns + ["2022a"], CHAPTER)
    assert result.ok
    assert [v.year for v in result.value.values] == [2020, 2021]


def test_unexpected_error_becomes_failure():
    h = resolve_header(HEADER)
    row = list(NPTD_DE)
    row[2] = object()  # no .strip()
    result = map_row(row, HEADER, h.column_indices, h.year_columns, CHAPTER)
    assert not result.ok
    assert "NPTD" in result.error
