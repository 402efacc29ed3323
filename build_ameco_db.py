"""
AMECO database builder -- ingest AMECO extracts into SQLite.

Discovers extracts in the data directory (default pattern AMECO*.CSV, matched
case-insensitively), runs them through the ingestion pipeline one file at a
time and writes per-run logs under logs/pipeline/<run_id>/:

    ingest.log          full debug log of the run
    summary.json        per-step and per-file counters
    failed_files.json   files that were missing or had an invalid header

Re-running over the same files is safe: dimensions are get-or-create and
existing values are never duplicated or overwritten. Re-running just the
files listed in failed_files.json is the expected recovery path.

Usage:
    python build_ameco_db.py                         # Data/ -> ameco.sqlite
    python build_ameco_db.py --data-dir exports/2025 --db ameco_2025.sqlite
    python build_ameco_db.py --rebuild --validate    # fresh DB, QA afterwards
    python build_ameco_db.py --log-format json       # NDJSON console output

Environment: AMECO_DB_PATH, AMECO_DATA_DIR, AMECO_FILE_PATTERN,
AMECO_LOG_FORMAT, AMECO_LOG_LEVEL, AMECO_LOGS_DIR (flags win).

Exit status: 0 on success, 1 if the batch was not fully successful,
2 if the data directory does not exist.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import signal
import sqlite3
import sys
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from pipeline.chapters import ChapterClassifier
from pipeline.logging import LOG_FORMATS, PipelineLogger, configure_logging
from pipeline.mapper import map_row
from pipeline.orchestrator import AmecoCsvParser, BatchResult
from pipeline.reader import read_data_file
from pipeline.repository import SqliteAmecoRepository
from pipeline.saver import AmecoEntitySaver
from utils import AppConfig, FilePatterns, create_database, elapsed, get_table_counts
from validate_ameco_db import run_checks

logger = logging.getLogger(__name__)

# Graceful shutdown: checked between rows and between files
_stop_event = threading.Event()


@dataclasses.dataclass
class FailedFileEntry:
    """Record of a file that failed to ingest, written to failed_files.json."""
    file_path: str
    error_type: str
    error_detail: str
    timestamp: str = dataclasses.field(
        default_factory=lambda: datetime.now().isoformat()
    )

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


# ── Build ─────────────────────────────────────────────────────────────────────


def make_parser(conn: sqlite3.Connection) -> AmecoCsvParser:
    """Wire the default pipeline against *conn*."""
    repository = SqliteAmecoRepository(conn)
    return AmecoCsvParser(
        reader=read_data_file,
        classifier=ChapterClassifier(),
        mapper=map_row,
        saver=AmecoEntitySaver(repository),
    )


def ingest_files(files: list[Path], db_path: Path, rebuild: bool = False,
                 stop_event: threading.Event | None = None) -> tuple[BatchResult, dict[str, int]]:
    """Ingest *files* into the database at *db_path*.

    Returns:
        (BatchResult, table row counts after the run)
    """
    conn = create_database(db_path, rebuild=rebuild)
    try:
        batch = make_parser(conn).parse_and_save(files, stop_event=stop_event)
        counts = get_table_counts(conn)
    finally:
        conn.close()
    return batch, counts


def failed_entries(batch: BatchResult) -> list[FailedFileEntry]:
    return [FailedFileEntry(f.file_path, f.error_type, f.detail) for f in batch.fatal]


def write_failed_files(entries: list[FailedFileEntry], path: Path) -> None:
    with open(path, "w") as f:
        json.dump([e.to_dict() for e in entries], f, indent=2)


# ── CLI ───────────────────────────────────────────────────────────────────────


def _parse_args(argv: list[str] | None, cfg: AppConfig) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the AMECO SQLite database")
    parser.add_argument("--data-dir", type=Path, default=cfg.data_dir,
                        help=f"Directory holding AMECO extracts (default: {cfg.data_dir})")
    parser.add_argument("--db", type=Path, default=cfg.db_path,
                        help=f"Database path (default: {cfg.db_path})")
    parser.add_argument("--pattern", default=cfg.file_pattern,
                        help=f"Case-insensitive file glob (default: {cfg.file_pattern})")
    parser.add_argument("--rebuild", action="store_true",
                        help="Drop and recreate all AMECO tables before ingesting")
    parser.add_argument("--logs-dir", type=Path, default=cfg.logs_dir,
                        help=f"Root directory for run logs (default: {cfg.logs_dir})")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=cfg.log_format,
                        help=f"Console log format (default: {cfg.log_format})")
    parser.add_argument("--validate", action="store_true",
                        help="Run validate_ameco_db checks after ingesting")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    try:
        cfg = AppConfig.from_env()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    args = _parse_args(argv, cfg)
    configure_logging(args.log_format, cfg.log_level)

    # Reset global state for testability
    _stop_event.clear()

    def _sigint_handler(sig: int, frame: Any) -> None:
        if not _stop_event.is_set():
            print("\n\nKeyboard interrupt -- finishing current row and stopping...",
                  flush=True)
            _stop_event.set()
        else:
            print("\nForce-quitting...", flush=True)
            sys.exit(1)

    previous_handler = signal.signal(signal.SIGINT, _sigint_handler)
    try:
        return _run(args)
    finally:
        signal.signal(signal.SIGINT, previous_handler)


def _run(args: argparse.Namespace) -> int:
    start = time.time()
    try:
        files = FilePatterns.discover(args.data_dir, args.pattern)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    print("\nAMECO Database Build")
    print(f"  Data dir : {args.data_dir}")
    print(f"  Database : {args.db}")
    print(f"  Pattern  : {args.pattern}")
    print(f"  Files    : {len(files)}")
    print(f"  Rebuild  : {'yes' if args.rebuild else 'no (incremental)'}")

    pl = PipelineLogger(logs_dir=args.logs_dir)
    pl.args_dict = {k: str(v) for k, v in vars(args).items()
                    if v is not None and v is not False}

    report = pl.start_step("ingest")
    try:
        batch, counts = ingest_files(files, args.db, rebuild=args.rebuild,
                                     stop_event=_stop_event)
    except sqlite3.Error as e:
        logger.exception("Database error during ingest")
        report.status = "failed"
        report.detail = str(e)
        pl.finish_step("ingest", report)
        pl.write_summary()
        print(f"ERROR: database failure: {e}", file=sys.stderr)
        return 1

    report.items_processed = batch.rows_saved
    report.metrics.update({"files": len(files), "files_ok": batch.files_ok,
                           "rows_skipped": batch.rows_skipped,
                           "rows_failed": batch.rows_failed})
    report.metrics.update(counts)
    if batch.cancelled:
        report.status = "cancelled"
    elif not batch.success:
        report.status = "failed"
    pl.add_file_reports({Path(k).name: v for k, v in batch.reports.items()})
    pl.finish_step("ingest", report)

    entries = failed_entries(batch)
    failures_path = pl.run_dir / "failed_files.json"
    write_failed_files(entries, failures_path)
    if entries:
        print(f"  {len(entries)} file(s) failed; see {failures_path}")

    ok = batch.success
    if args.validate and not batch.cancelled:
        vreport = pl.start_step("validate")
        conn = sqlite3.connect(str(args.db))
        try:
            vresult = run_checks(conn)
        finally:
            conn.close()
        vreport.items_processed = len(vresult.passed_checks) + len(vresult.failed_checks)
        for issue in vresult.issues:
            if issue.severity == "error":
                vreport.add_error(f"{issue.check_name}: {issue.detail}")
        if not vresult.is_valid():
            vreport.status = "failed"
            ok = False
        pl.finish_step("validate", vreport)
        print(vresult.summary_text())
    elif not args.validate:
        pl.record_user_skip("validate", "--validate not given")

    pl.extra["batch"] = {"success": batch.success, "cancelled": batch.cancelled,
                         "fatal": [f.to_dict() for f in batch.fatal]}
    pl.extra["table_counts"] = counts
    summary = pl.write_summary()

    print(f"\n  {'OK' if ok else 'FAILED'} in {elapsed(start)}: "
          f"{batch.rows_saved:,} rows saved, {batch.rows_skipped:,} skipped, "
          f"{batch.rows_failed:,} failed")
    print("  Tables   : " + ", ".join(f"{t}={n:,}" for t, n in counts.items()))
    print(f"  Summary  : {summary}")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
