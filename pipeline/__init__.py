"""
Pipeline package -- AMECO extract ingestion.

Re-exports the pieces needed to assemble a run::

    from pipeline import (AmecoCsvParser, AmecoEntitySaver, ChapterClassifier,
                          SqliteAmecoRepository, map_row, read_data_file)
"""

from pipeline.chapters import ChapterClassifier, chapter_for_subchapter
from pipeline.header import resolve_header
from pipeline.mapper import map_row
from pipeline.orchestrator import AmecoCsvParser, BatchResult
from pipeline.reader import read_data_file
from pipeline.repository import AmecoRepository, SqliteAmecoRepository
from pipeline.saver import AmecoEntitySaver

__all__ = [
    "AmecoCsvParser",
    "AmecoEntitySaver",
    "AmecoRepository",
    "BatchResult",
    "ChapterClassifier",
    "SqliteAmecoRepository",
    "chapter_for_subchapter",
    "map_row",
    "read_data_file",
    "resolve_header",
]
