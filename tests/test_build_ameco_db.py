"""
Tests for build_ameco_db.py -- CLI entry point, run logs and exit codes.
"""

import json

import pytest

from conftest import HEADER, NPTD_DE, write_csv
from build_ameco_db import FailedFileEntry, main
from utils.database import create_database, get_table_counts


@pytest.fixture
def run_args(tmp_path, data_dir):
    db_path = tmp_path / "out.sqlite"
    logs = tmp_path / "logs"
    return db_path, logs, ["--data-dir", str(data_dir), "--db", str(db_path),
                           "--logs-dir", str(logs)]


def _summary(logs):
    paths = list(logs.glob("*/summary.json"))
    assert len(paths) == 1
    return json.loads(paths[0].read_text())


def test_successful_build(run_args, capsys):
    db_path, logs, argv = run_args
    assert main(argv) == 0

    conn = create_database(db_path)
    counts = get_table_counts(conn)
    conn.close()
    assert counts["variables"] == 2
    assert counts["ameco_values"] == 6

    summary = _summary(logs)
    assert summary["batch"]["success"] is True
    assert summary["steps"]["ingest"]["status"] == "completed"
    assert summary["steps"]["ingest"]["items_processed"] == 3
    assert summary["steps"]["validate"]["status"] == "skipped"
    assert "AMECO1.CSV" in summary["files"]
    failed = json.loads(next(logs.glob("*/failed_files.json")).read_text())
    assert failed == []
    assert "OK" in capsys.readouterr().out


def test_rerun_is_idempotent(run_args):
    db_path, _, argv = run_args
    assert main(argv) == 0
    conn = create_database(db_path)
    before = get_table_counts(conn)
    conn.close()
    assert main(argv) == 0
    conn = create_database(db_path)
    after = get_table_counts(conn)
    conn.close()
    assert before == after


def test_missing_data_dir_exits_2(tmp_path):
    assert main(["--data-dir", str(tmp_path / "nope"), "--db", str(tmp_path / "x.sqlite"),
                 "--logs-dir", str(tmp_path / "logs")]) == 2


def test_invalid_header_exits_1_and_lists_failed_file(run_args, data_dir):
    _, logs, argv = run_args
    write_csv(data_dir / "AMECO2.CSV", [h for h in HEADER if h != "REF"], [NPTD_DE[:9]])
    assert main(argv) == 1
    failed = json.loads(next(logs.glob("*/failed_files.json")).read_text())
    assert len(failed) == 1
    assert failed[0]["file_path"].endswith("AMECO2.CSV")
    assert failed[0]["error_type"] == "invalid_header"
    assert failed[0]["error_detail"] == "Missing required column: REF"
    assert _summary(logs)["steps"]["ingest"]["status"] == "failed"


def test_discovery_is_case_insensitive(tmp_path):
    data = tmp_path / "Data"
    write_csv(data / "ameco1.csv", HEADER, [NPTD_DE])
    write_csv(data / "notes.csv", ["x"], [["y"]])
    db_path = tmp_path / "out.sqlite"
    assert main(["--data-dir", str(data), "--db", str(db_path),
                 "--logs-dir", str(tmp_path / "logs")]) == 0
    conn = create_database(db_path)
    assert get_table_counts(conn)["ameco_values"] == 2
    conn.close()


def test_empty_data_dir_is_unsuccessful(tmp_path):
    data = tmp_path / "Data"
    data.mkdir()
    assert main(["--data-dir", str(data), "--db", str(tmp_path / "x.sqlite"),
                 "--logs-dir", str(tmp_path / "logs")]) == 1


def test_validate_flag_runs_checks(run_args):
    _, logs, argv = run_args
    assert main(argv + ["--validate"]) == 0
    assert _summary(logs)["steps"]["validate"]["status"] == "completed"


def test_bad_log_format_env_exits_1(run_args, monkeypatch, capsys):
    _, _, argv = run_args
    monkeypatch.setenv("AMECO_LOG_FORMAT", "xml")
    assert main(argv) == 1
    assert "AMECO_LOG_FORMAT" in capsys.readouterr().err


def test_env_supplies_defaults(tmp_path, data_dir, monkeypatch):
    db_path = tmp_path / "env.sqlite"
    monkeypatch.setenv("AMECO_DATA_DIR", str(data_dir))
    monkeypatch.setenv("AMECO_DB_PATH", str(db_path))
    monkeypatch.setenv("AMECO_LOGS_DIR", str(tmp_path / "logs"))
    assert main([]) == 0
    assert db_path.exists()


def test_failed_file_entry_serialises():
    entry = FailedFileEntry("Data/AMECO2.CSV", "missing_file", "File does not exist")
    d = entry.to_dict()
    assert d["file_path"] == "Data/AMECO2.CSV"
    assert "timestamp" in d
