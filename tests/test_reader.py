"""
Tests for pipeline/reader.py -- CSV and XLSX extraction.
"""

import logging

import pytest

from conftest import HEADER, NPTD_DE, write_csv, write_xlsx
from pipeline.reader import fit_row, read_data_file


# ── fit_row ──────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("row,width,expected", [
    (["a", "b"], 4, ["a", "b", "", ""]),
    (["a", "b", "c", "d", "e"], 3, ["a", "b", "c"]),
    (["a", "b"], 2, ["a", "b"]),
    ([], 2, ["", ""]),
])
def test_fit_row(row, width, expected):
    assert fit_row(row, width) == expected


# ── CSV ──────────────────────────────────────────────────────────────────────

class TestReadCsv:
    def test_header_and_rows(self, tmp_path):
        path = write_csv(tmp_path / "AMECO1.CSV", HEADER, [NPTD_DE])
        data = read_data_file(path)
        assert data.header == HEADER
        assert data.rows == [NPTD_DE]
        assert data.has_rows

    def test_short_row_padded_long_row_truncated(self, tmp_path):
        path = write_csv(tmp_path / "a.csv", ["A", "B", "C"],
                         [["1"], ["1", "2", "3", "4", "5"]])
        data = read_data_file(path)
        assert data.rows == [["1", "", ""], ["1", "2", "3"]]

    def test_na_kept_as_raw_string(self, tmp_path):
        path = write_csv(tmp_path / "a.csv", ["A", "2020"], [["x", "NA"]])
        assert read_data_file(path).rows[0][1] == "NA"

    def test_quoted_comma_is_one_cell(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text('CODE,TITLE,2020\nX,"Employment, persons",1\n', encoding="utf-8")
        data = read_data_file(path)
        assert data.rows == [["X", "Employment, persons", "1"]]

    def test_leading_blank_lines_skipped(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("\n\nCODE,2020\n\nX,1\n", encoding="utf-8")
        data = read_data_file(path)
        assert data.header == ["CODE", "2020"]
        assert data.rows == [["X", "1"]]

    def test_comma_and_whitespace_only_rows_dropped(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("CODE,TITLE,2020\nX,T,1\n,,\n   , ,\t\n   \nY,U,2\n,,,,,\n",
                        encoding="utf-8")
        data = read_data_file(path)
        assert data.rows == [["X", "T", "1"], ["Y", "U", "2"]]

    def test_only_blank_rows_after_header_means_no_rows(self, tmp_path):
        path = write_csv(tmp_path / "a.csv", HEADER, [[""] * len(HEADER)])
        assert not read_data_file(path).has_rows

    def test_bom_stripped_from_first_header(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_bytes("\ufeffCODE,2020\nX,1\n".encode("utf-8"))
        assert read_data_file(path).header[0] == "CODE"

    def test_header_only_file_has_no_rows(self, tmp_path):
        path = write_csv(tmp_path / "a.csv", HEADER, [])
        data = read_data_file(path)
        assert data is not None
        assert data.rows == []
        assert not data.has_rows

    def test_empty_file_returns_none(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        assert read_data_file(path) is None

    def test_missing_file_returns_none_and_logs(self, tmp_path, caplog):
        with caplog.at_level(logging.ERROR, logger="pipeline.reader"):
            assert read_data_file(tmp_path / "nope.csv") is None
        assert "not found" in caplog.text

    def test_undecodable_file_returns_none(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_bytes(b"CODE,2020\n\xff\xfe\xfa,1\n")
        assert read_data_file(path) is None


# ── XLSX ─────────────────────────────────────────────────────────────────────

class TestReadXlsx:
    def test_first_sheet_read_as_strings(self, tmp_path):
        header = HEADER[:10] + [2020, 2021]
        row = NPTD_DE[:10] + [1000.0, 1010.5]
        path = write_xlsx(tmp_path / "AMECO1.xlsx", header, [row])
        data = read_data_file(path)
        assert data.header == HEADER
        assert data.rows[0][10:] == ["1000", "1010.5"]

    def test_empty_cells_become_empty_strings(self, tmp_path):
        path = write_xlsx(tmp_path / "a.xlsx", ["CODE", "TITLE", "2020"], [["X", None, "NA"]])
        assert read_data_file(path).rows == [["X", "", "NA"]]

    def test_corrupt_workbook_returns_none(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a zip archive")
        assert read_data_file(path) is None
