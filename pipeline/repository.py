"""
Persistence capability for the AMECO importer.

AmecoRepository is the contract the entity saver depends on: find-by-natural-
key and add (stage) for every entity, plus a commit/rollback pair that
closes one unit of work. SqliteAmecoRepository implements it on a sqlite3
connection created by utils.database.create_database().

Staged rows are inserted into the open transaction straight away so they
receive ids, and become durable only on commit(). The optional per-batch
cache remembers dimension ids by natural key. Ids staged since the last
commit live in a separate layer that commit() promotes and rollback()
discards, so the cache never points at a rolled-back row.
"""

from __future__ import annotations

import logging
import sqlite3
from abc import ABC, abstractmethod
from decimal import Decimal

from pipeline.models import Chapter, Country, Subchapter, Value, Variable

logger = logging.getLogger(__name__)


class AmecoRepository(ABC):
    """Get-or-create storage contract consumed by AmecoEntitySaver."""

    @abstractmethod
    def find_chapter(self, name: str) -> Chapter | None: ...

    @abstractmethod
    def add_chapter(self, chapter: Chapter) -> Chapter: ...

    @abstractmethod
    def find_subchapter(self, chapter_id: int, name: str) -> Subchapter | None: ...

    @abstractmethod
    def add_subchapter(self, subchapter: Subchapter) -> Subchapter: ...

    @abstractmethod
    def find_variable(self, code: str) -> Variable | None: ...

    @abstractmethod
    def add_variable(self, variable: Variable) -> Variable: ...

    @abstractmethod
    def find_country(self, code: str) -> Country | None: ...

    @abstractmethod
    def add_country(self, country: Country) -> Country: ...

    @abstractmethod
    def find_value(self, variable_id: int, country_id: int, year: int,
                   month: int | None = None) -> Value | None: ...

    @abstractmethod
    def add_value(self, value: Value) -> Value: ...

    @abstractmethod
    def commit(self) -> None:
        """Durably apply everything staged since the last commit."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard everything staged since the last commit."""


class SqliteAmecoRepository(AmecoRepository):
    """AmecoRepository backed by the schema in utils/database.py."""

    _KINDS = ("chapter", "subchapter", "variable", "country")

    def __init__(self, conn: sqlite3.Connection, cache: bool = True):
        self.conn = conn
        self.use_cache = cache
        self._cache: dict[str, dict[tuple, object]] = {k: {} for k in self._KINDS}
        self._staged: dict[str, dict[tuple, object]] = {k: {} for k in self._KINDS}

    # ── cache ─────────────────────────────────────────────────────────────

    def _cached(self, kind: str, key: tuple):
        if not self.use_cache:
            return None
        return self._staged[kind].get(key) or self._cache[kind].get(key)

    def _remember(self, kind: str, key: tuple, entity, staged: bool) -> None:
        if not self.use_cache:
            return
        (self._staged if staged else self._cache)[kind][key] = entity

    def _insert(self, sql: str, params: tuple) -> int:
        cur = self.conn.execute(sql, params)
        return cur.lastrowid

    # ── chapters ──────────────────────────────────────────────────────────

    def find_chapter(self, name: str) -> Chapter | None:
        key = (name,)
        hit = self._cached("chapter", key)
        if hit is not None:
            return hit
        row = self.conn.execute(
            "SELECT id, name FROM chapters WHERE name = ?", key
        ).fetchone()
        if row is None:
            return None
        chapter = Chapter(name=row[1], id=row[0])
        self._remember("chapter", key, chapter, staged=False)
        return chapter

    def add_chapter(self, chapter: Chapter) -> Chapter:
        chapter.id = self._insert("INSERT INTO chapters (name) VALUES (?)", (chapter.name,))
        self._remember("chapter", (chapter.name,), chapter, staged=True)
        return chapter

    # ── subchapters ───────────────────────────────────────────────────────

    def find_subchapter(self, chapter_id: int, name: str) -> Subchapter | None:
        key = (chapter_id, name)
        hit = self._cached("subchapter", key)
        if hit is not None:
            return hit
        row = self.conn.execute(
            "SELECT id, name, chapter_id FROM subchapters "
            "WHERE chapter_id = ? AND name = ?", key
        ).fetchone()
        if row is None:
            return None
        sub = Subchapter(name=row[1], chapter_id=row[2], id=row[0])
        self._remember("subchapter", key, sub, staged=False)
        return sub

    def add_subchapter(self, subchapter: Subchapter) -> Subchapter:
        subchapter.id = self._insert(
            "INSERT INTO subchapters (name, chapter_id) VALUES (?, ?)",
            (subchapter.name, subchapter.chapter_id),
        )
        self._remember("subchapter", (subchapter.chapter_id, subchapter.name),
                       subchapter, staged=True)
        return subchapter

    # ── variables ─────────────────────────────────────────────────────────

    def find_variable(self, code: str) -> Variable | None:
        key = (code,)
        hit = self._cached("variable", key)
        if hit is not None:
            return hit
        row = self.conn.execute(
            "SELECT id, code, name, unit_code, unit_description, subchapter_id, "
            "trn, agg, ref FROM variables WHERE code = ?", key
        ).fetchone()
        if row is None:
            return None
        var = Variable(code=row[1], name=row[2], unit_code=row[3],
                       unit_description=row[4], subchapter_id=row[5],
                       trn=row[6], agg=row[7], ref=row[8], id=row[0])
        self._remember("variable", key, var, staged=False)
        return var

    def add_variable(self, variable: Variable) -> Variable:
        variable.id = self._insert(
            "INSERT INTO variables (code, name, unit_code, unit_description, "
            "subchapter_id, trn, agg, ref) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (variable.code, variable.name, variable.unit_code,
             variable.unit_description, variable.subchapter_id,
             variable.trn, variable.agg, variable.ref),
        )
        self._remember("variable", (variable.code,), variable, staged=True)
        return variable

    # ── countries ─────────────────────────────────────────────────────────

    def find_country(self, code: str) -> Country | None:
        key = (code,)
        hit = self._cached("country", key)
        if hit is not None:
            return hit
        row = self.conn.execute(
            "SELECT id, code, name FROM countries WHERE code = ?", key
        ).fetchone()
        if row is None:
            return None
        country = Country(code=row[1], name=row[2], id=row[0])
        self._remember("country", key, country, staged=False)
        return country

    def add_country(self, country: Country) -> Country:
        country.id = self._insert(
            "INSERT INTO countries (code, name) VALUES (?, ?)",
            (country.code, country.name),
        )
        self._remember("country", (country.code,), country, staged=True)
        return country

    # ── values ────────────────────────────────────────────────────────────
    # Not cached: each key is looked up at most once per run.

    def find_value(self, variable_id: int, country_id: int, year: int,
                   month: int | None = None) -> Value | None:
        row = self.conn.execute(
            "SELECT id, variable_id, country_id, year, month, amount, is_monthly "
            "FROM ameco_values WHERE variable_id = ? AND country_id = ? "
            "AND year = ? AND IFNULL(month, -1) = IFNULL(?, -1)",
            (variable_id, country_id, year, month),
        ).fetchone()
        if row is None:
            return None
        return Value(variable_id=row[1], country_id=row[2], year=row[3],
                     month=row[4], amount=Decimal(row[5]),
                     is_monthly=bool(row[6]), id=row[0])

    def add_value(self, value: Value) -> Value:
        value.id = self._insert(
            "INSERT INTO ameco_values (variable_id, country_id, year, month, "
            "amount, is_monthly) VALUES (?, ?, ?, ?, ?, ?)",
            (value.variable_id, value.country_id, value.year, value.month,
             value.amount, int(value.is_monthly)),
        )
        return value

    # ── unit of work ──────────────────────────────────────────────────────

    def commit(self) -> None:
        self.conn.commit()
        for kind in self._KINDS:
            self._cache[kind].update(self._staged[kind])
            self._staged[kind].clear()

    def rollback(self) -> None:
        dropped = sum(len(v) for v in self._staged.values())
        for kind in self._KINDS:
            self._staged[kind].clear()
        if dropped:
            logger.debug("Rolled back %d staged dimension rows", dropped)
        self.conn.rollback()
