"""
Entity resolution -- persist one MappedRow as a single unit of work.

Every dimension is get-or-create by natural key and never updated: the first
row to mention a variable code or country code fixes its name and unit for
good. Value facts are created once per (variable, country, year, month);
a key that already exists is left untouched, so re-running a batch adds
nothing.
"""

from __future__ import annotations

import logging

from pipeline.errors import PersistenceError
from pipeline.models import Chapter, Country, MappedRow, Subchapter, Value, Variable
from pipeline.repository import AmecoRepository

logger = logging.getLogger(__name__)


class AmecoEntitySaver:
    """Resolve and stage one MappedRow, then commit it."""

    def __init__(self, repository: AmecoRepository):
        self.repository = repository

    def _chapter(self, name: str) -> Chapter:
        chapter = self.repository.find_chapter(name)
        if chapter is None:
            chapter = self.repository.add_chapter(Chapter(name=name))
            logger.debug("Created chapter %r", name)
        return chapter

    def _subchapter(self, chapter: Chapter, name: str) -> Subchapter:
        sub = self.repository.find_subchapter(chapter.id, name)
        if sub is None:
            sub = self.repository.add_subchapter(Subchapter(name=name, chapter_id=chapter.id))
            logger.debug("Created subchapter %r under %r", name, chapter.name)
        return sub

    def _variable(self, mapped: MappedRow, subchapter: Subchapter) -> Variable:
        var = self.repository.find_variable(mapped.variable_code)
        if var is None:
            var = self.repository.add_variable(Variable(
                code=mapped.variable_code,
                name=mapped.variable_name,
                unit_code=mapped.unit_code,
                unit_description=mapped.unit_description,
                subchapter_id=subchapter.id,
                trn=mapped.trn,
                agg=mapped.agg,
                ref=mapped.ref,
            ))
            logger.debug("Created variable %s", mapped.variable_code)
        elif var.name != mapped.variable_name:
            logger.debug("Variable %s keeps name %r (row says %r)",
                         var.code, var.name, mapped.variable_name)
        return var

    def _country(self, mapped: MappedRow) -> Country:
        country = self.repository.find_country(mapped.country_code)
        if country is None:
            country = self.repository.add_country(
                Country(code=mapped.country_code, name=mapped.country_name)
            )
            logger.debug("Created country %s", mapped.country_code)
        return country

    def save(self, mapped: MappedRow) -> int:
        """Persist *mapped* and commit.

        Returns:
            Number of Value rows created (0 when every year already existed).

        Raises:
            PersistenceError: Resolution or commit failed. Everything staged
                for this row has been rolled back; the storage exception is
                chained as ``__cause__``.
        """
        repo = self.repository
        try:
            chapter = self._chapter(mapped.chapter_name)
            subchapter = self._subchapter(chapter, mapped.subchapter_name)
            variable = self._variable(mapped, subchapter)
            country = self._country(mapped)

            created = 0
            for yv in mapped.values:
                if repo.find_value(variable.id, country.id, yv.year) is not None:
                    continue
                repo.add_value(Value(
                    variable_id=variable.id,
                    country_id=country.id,
                    year=yv.year,
                    amount=yv.amount,
                ))
                created += 1
            repo.commit()
        except Exception as exc:
            try:
                repo.rollback()
            except Exception:
                logger.exception("Rollback failed after error saving %s", mapped.describe())
            raise PersistenceError(
                f"Could not save {mapped.describe()}: {exc}",
                variable_code=mapped.variable_code,
                country_code=mapped.country_code,
            ) from exc
        return created
