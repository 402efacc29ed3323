"""
Domain records for the AMECO pipeline.

Persisted entities (Chapter, Subchapter, Variable, Country, Value) mirror the
database tables one-to-one; ``id`` is None until the repository has staged
the row. MappedRow and YearValue are transient: RowMapper produces one
MappedRow per CSV line and the entity saver consumes it exactly once.

MapResult is the tagged outcome of mapping a row: either ``ok`` with a value
or a failure with an error message. Mapping never raises past its boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

UNKNOWN_CHAPTER = "Unknown Chapter"


# ── Persisted entities ────────────────────────────────────────────────────────


@dataclass
class Chapter:
    name: str
    id: int | None = None


@dataclass
class Subchapter:
    name: str
    chapter_id: int
    id: int | None = None


@dataclass
class Variable:
    code: str
    name: str
    unit_code: str
    unit_description: str
    subchapter_id: int
    trn: str | None = None     # transformation type, raw code
    agg: str | None = None     # aggregation mode, raw code
    ref: str | None = None     # reference code, raw code
    id: int | None = None


@dataclass
class Country:
    code: str
    name: str
    id: int | None = None


@dataclass
class Value:
    variable_id: int
    country_id: int
    year: int
    amount: Decimal
    month: int | None = None    # reserved for monthly series
    is_monthly: bool = False
    id: int | None = None


# ── Transient mapping records ─────────────────────────────────────────────────


@dataclass(frozen=True)
class YearValue:
    year: int
    amount: Decimal


@dataclass
class MappedRow:
    """One normalized AMECO line, ready for entity resolution."""

    chapter_name: str
    subchapter_name: str
    variable_code: str
    variable_name: str
    unit_code: str
    unit_description: str
    country_code: str
    country_name: str
    values: list[YearValue] = field(default_factory=list)
    trn: str | None = None
    agg: str | None = None
    ref: str | None = None

    def describe(self) -> str:
        """Short identifier for log lines: CODE/COUNTRY [subchapter]."""
        return f"{self.variable_code}/{self.country_code} [{self.subchapter_name}]"


@dataclass(frozen=True)
class MapResult:
    ok: bool
    value: MappedRow | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: MappedRow) -> MapResult:
        return cls(ok=True, value=value)

    @classmethod
    def fail(cls, message: str) -> MapResult:
        return cls(ok=False, error=message)


class RowStatus(str, Enum):
    """Outcome of one data row inside the orchestrator."""

    SAVED = "saved"            # mapped and committed
    SKIPPED = "skipped"        # recoverable mapping failure
    FAILED = "failed"          # persistence fault, row rolled back
