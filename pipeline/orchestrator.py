"""
Batch orchestration -- drive a list of AMECO extracts through the pipeline.

Per file::

    exists? --no--> fatal (missing_file)
      |
    read  --None/no rows--> skipped, not fatal
      |
    header valid? --no--> fatal (invalid_header)
      |
    row loop: map -> save, one unit of work per row

Row outcomes are tagged (RowStatus) and tallied on the file's StepReport:

  - SAVED    -> items_processed
  - SKIPPED  -> add_skip("mapping_error", ...)  mapping failed, row ignored
  - FAILED   -> add_error(...)                  save raised, row rolled back

A persistence failure costs only its row. It is counted and logged but does
not mark the batch unsuccessful; file-level fatals and cancellation do.

parse_and_save() never raises.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from pipeline.chapters import ChapterClassifier
from pipeline.errors import PersistenceError
from pipeline.header import resolve_header
from pipeline.logging import StepReport
from pipeline.models import MapResult, RowStatus
from pipeline.reader import FileData
from pipeline.saver import AmecoEntitySaver

logger = logging.getLogger(__name__)

# Fatal categories recorded in BatchResult.fatal
MISSING_FILE = "missing_file"
INVALID_HEADER = "invalid_header"
UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class FatalFile:
    file_path: str
    error_type: str
    detail: str

    def to_dict(self) -> dict[str, str]:
        return {"file_path": self.file_path, "error_type": self.error_type,
                "detail": self.detail}


@dataclass
class BatchResult:
    """Outcome of one parse_and_save() call."""

    success: bool = False
    files_ok: int = 0
    reports: dict[str, StepReport] = field(default_factory=dict)
    fatal: list[FatalFile] = field(default_factory=list)
    cancelled: bool = False

    @property
    def rows_saved(self) -> int:
        return sum(r.items_processed for r in self.reports.values())

    @property
    def rows_skipped(self) -> int:
        return sum(r.items_skipped for r in self.reports.values())

    @property
    def rows_failed(self) -> int:
        return sum(r.items_errored for r in self.reports.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "cancelled": self.cancelled,
            "files_ok": self.files_ok,
            "rows_saved": self.rows_saved,
            "rows_skipped": self.rows_skipped,
            "rows_failed": self.rows_failed,
            "fatal": [f.to_dict() for f in self.fatal],
            "files": {name: r.to_dict() for name, r in self.reports.items()},
        }


class AmecoCsvParser:
    """Run files through reader -> header -> mapper -> saver.

    Args:
        reader: Callable returning FileData or None for a path
            (pipeline.reader.read_data_file).
        classifier: Resolves the chapter name for a file.
        mapper: Callable with the signature of pipeline.mapper.map_row.
        saver: AmecoEntitySaver bound to a repository.
    """

    def __init__(
        self,
        reader: Callable[[Path], FileData | None],
        classifier: ChapterClassifier,
        mapper: Callable[..., MapResult],
        saver: AmecoEntitySaver,
    ):
        self.reader = reader
        self.classifier = classifier
        self.mapper = mapper
        self.saver = saver

    # ── per row ───────────────────────────────────────────────────────────

    def _process_row(self, row_num: int, row: list[str], data: FileData, header,
                     chapter: str, path: Path, report: StepReport) -> RowStatus:
        result = self.mapper(row, data.header, header.column_indices,
                             header.year_columns, chapter)
        if not result.ok:
            logger.warning("%s [%s] row %d skipped: %s", path, chapter, row_num, result.error)
            report.add_skip("mapping_error", result.error or "", item=f"row {row_num}")
            return RowStatus.SKIPPED

        mapped = result.value
        try:
            created = self.saver.save(mapped)
        except PersistenceError as exc:
            logger.error("%s [%s] row %d %s not saved: %s",
                         path, chapter, row_num, mapped.describe(), exc.__cause__ or exc)
            report.add_error(f"row {row_num} {mapped.describe()}: {exc.__cause__ or exc}")
            return RowStatus.FAILED
        except Exception as exc:
            logger.exception("%s [%s] row %d %s not saved", path, chapter, row_num,
                             mapped.describe())
            report.add_error(f"row {row_num} {mapped.describe()}: {exc}")
            return RowStatus.FAILED

        report.metrics["values_created"] = report.metrics.get("values_created", 0) + created
        return RowStatus.SAVED

    # ── per file ──────────────────────────────────────────────────────────

    def _process_file(self, path: Path, result: BatchResult,
                      stop_event: threading.Event | None) -> None:
        report = StepReport(step_name=path.name, status="started")
        result.reports[str(path)] = report
        t0 = time.monotonic()
        try:
            if not path.exists():
                logger.error("Data file not found: %s", path)
                result.fatal.append(FatalFile(str(path), MISSING_FILE, "File does not exist"))
                report.status = "failed"
                report.detail = "file not found"
                return

            data = self.reader(path)
            if data is None or not data.has_rows:
                logger.warning("No data rows in %s; file skipped", path)
                report.status = "skipped"
                report.add_skip("no_data", "file empty or unreadable", item=str(path))
                return

            header = resolve_header(data.header, source=str(path))
            if not header.valid:
                logger.error("Invalid header in %s: %s", path, header.error_message)
                result.fatal.append(
                    FatalFile(str(path), INVALID_HEADER, header.error_message or "")
                )
                report.status = "failed"
                report.detail = header.error_message or ""
                return

            chapter = self.classifier.chapter_for_file(path)
            logger.info("Processing %s (%d rows) as chapter %r",
                        path, len(data.rows), chapter)
            for row_num, row in enumerate(data.rows, start=2):
                if stop_event is not None and stop_event.is_set():
                    logger.warning("Stop requested; leaving %s at row %d", path, row_num)
                    result.cancelled = True
                    report.status = "cancelled"
                    return
                status = self._process_row(row_num, row, data, header, chapter, path, report)
                if status is RowStatus.SAVED:
                    report.items_processed += 1

            result.files_ok += 1
            report.status = "completed"
            logger.info("Finished %s: %s", path, report.console_summary())
        except Exception as exc:
            logger.exception("Unexpected error while processing %s", path)
            result.fatal.append(FatalFile(str(path), UNEXPECTED_ERROR, str(exc)))
            report.status = "failed"
            report.detail = str(exc)
        finally:
            report.elapsed_seconds = time.monotonic() - t0

    # ── batch ─────────────────────────────────────────────────────────────

    def parse_and_save(self, paths, stop_event: threading.Event | None = None) -> BatchResult:
        """Ingest every file in *paths* in order.

        Returns:
            BatchResult. ``success`` requires at least one file fully read
            with a valid header, no missing file or invalid header anywhere
            in the batch, and no cancellation.
        """
        result = BatchResult()
        paths = [Path(p) for p in paths]
        if not paths:
            logger.warning("No files to process")
            return result

        for path in paths:
            if stop_event is not None and stop_event.is_set():
                logger.warning("Stop requested; %s not started", path)
                result.cancelled = True
                break
            self._process_file(path, result, stop_event)
            if result.cancelled:
                break

        result.success = result.files_ok > 0 and not result.fatal and not result.cancelled
        logger.info("Batch finished: %d/%d files ok, %d rows saved, %d skipped, "
                    "%d failed, %d fatal%s",
                    result.files_ok, len(paths), result.rows_saved, result.rows_skipped,
                    result.rows_failed, len(result.fatal),
                    " (cancelled)" if result.cancelled else "")
        return result
