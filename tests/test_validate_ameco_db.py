"""
Tests for validate_ameco_db.py -- post-load quality checks.

Uses a small database built by the real pipeline, then damages it by hand
to trigger each check.
"""

import json
import sqlite3

import pytest

from conftest import HEADER, NPTD_DE, write_csv
from validate_ameco_db import (
    check_duplicate_values,
    check_orphaned_keys,
    check_unknown_chapters,
    check_unknown_codes,
    check_variables_without_values,
    check_year_range,
    exceeds_threshold,
    main,
    run_checks,
)


@pytest.fixture
def loaded(tmp_path, parser, db):
    path = write_csv(tmp_path / "AMECO1.CSV", HEADER, [NPTD_DE])
    assert parser.parse_and_save([path]).success
    return db


def test_clean_database_passes(loaded):
    result = run_checks(loaded)
    assert result.is_valid()
    assert result.issues == []
    assert "schema" in result.passed_checks
    assert "duplicate_values" in result.passed_checks


def test_empty_file_without_schema_reports_missing_tables(tmp_path):
    conn = sqlite3.connect(str(tmp_path / "blank.sqlite"))
    result = run_checks(conn)
    conn.close()
    assert not result.is_valid()
    assert result.failed_checks == ["schema"]
    assert len(result.issues) == 5


def test_duplicate_values_detected(loaded):
    loaded.execute("DROP INDEX ux_values_key")
    loaded.execute("INSERT INTO ameco_values (variable_id, country_id, year, amount) "
                   "SELECT variable_id, country_id, year, amount FROM ameco_values")
    loaded.commit()
    issues = check_duplicate_values(loaded)
    assert len(issues) == 2
    assert issues[0].severity == "error"
    assert issues[0].count == 2


def test_orphaned_values_detected(loaded):
    loaded.execute("PRAGMA foreign_keys=OFF")
    loaded.execute("DELETE FROM countries")
    loaded.commit()
    issues = check_orphaned_keys(loaded)
    assert len(issues) == 1
    assert "ameco_values.country_id" in issues[0].detail
    assert issues[0].count == 2


def test_variable_without_values(loaded):
    loaded.execute("DELETE FROM ameco_values")
    loaded.commit()
    issues = check_variables_without_values(loaded)
    assert issues[0].severity == "warning"
    assert issues[0].sample == "NPTD"


def test_unknown_codes(loaded):
    loaded.execute("UPDATE variables SET trn = '77', ref = '999'")
    loaded.commit()
    issues = check_unknown_codes(loaded)
    details = " ".join(i.detail for i in issues)
    assert "TRN" in details
    assert "REF" in details
    assert "AGG" not in details


def test_leading_zero_codes_are_known(loaded):
    loaded.execute("UPDATE variables SET trn = '01', agg = '00'")
    loaded.commit()
    assert check_unknown_codes(loaded) == []


def test_unknown_chapter_flagged(loaded):
    loaded.execute("INSERT INTO chapters (name) VALUES ('Unknown Chapter (42)')")
    loaded.commit()
    issues = check_unknown_chapters(loaded)
    assert [i.sample for i in issues] == ["Unknown Chapter (42)"]


def test_year_range(loaded):
    loaded.execute("UPDATE ameco_values SET year = 20200 WHERE year = 2020")
    loaded.commit()
    issues = check_year_range(loaded)
    assert issues[0].count == 1


def test_threshold(loaded):
    loaded.execute("INSERT INTO chapters (name) VALUES ('Unknown Chapter')")
    loaded.commit()
    result = run_checks(loaded)
    assert result.is_valid()
    assert not exceeds_threshold(result, "error")
    assert exceeds_threshold(result, "warning")


class TestMain:
    def test_exit_zero_on_clean_db(self, loaded, tmp_path, capsys):
        assert main(["--db", str(tmp_path / "ameco.sqlite")]) == 0
        assert "AMECO DATABASE VALIDATION REPORT" in capsys.readouterr().out

    def test_json_output(self, loaded, tmp_path, capsys):
        assert main(["--db", str(tmp_path / "ameco.sqlite"), "--json"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["summary"]["errors"] == 0

    def test_missing_database_exits(self, tmp_path):
        with pytest.raises(SystemExit) as excinfo:
            main(["--db", str(tmp_path / "missing.sqlite")])
        assert excinfo.value.code == 1
