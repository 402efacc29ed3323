"""Exception types for the AMECO ingestion pipeline.

Expected outcomes (a bad header, an unmappable row, a file with no data) are
reported through tagged results, not exceptions. These types cover the
faults that should travel up the stack: storage errors and broken internal
invariants.
"""

from __future__ import annotations


class AmecoError(Exception):
    """Base exception for all AMECO pipeline failures."""


class ReaderError(AmecoError):
    """Raised when a data file cannot be decoded into rows."""


class HeaderError(AmecoError):
    """Raised for header inconsistencies detected after validation."""


class PersistenceError(AmecoError):
    """Raised when a row's unit of work cannot be committed.

    Wraps the underlying storage-driver exception, which stays available
    as ``__cause__``.
    """

    def __init__(self, message: str, variable_code: str = "", country_code: str = ""):
        super().__init__(message)
        self.variable_code = variable_code
        self.country_code = country_code
