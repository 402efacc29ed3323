"""
Chapter classification for AMECO extracts.

The pipeline resolves the chapter once per file from its name: ``AMECO7.csv``
belongs to chapter 7. The subchapter-label table below is kept as a
drop-in alternative for extracts whose file names carry no chapter number;
it is looked up per row via ``chapter_for_subchapter``.

Both tables are read-only module constants.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from pipeline.models import UNKNOWN_CHAPTER
from utils.patterns import AMECO_FILE_STEM

logger = logging.getLogger(__name__)


CHAPTER_NAMES: Mapping[int, str] = MappingProxyType({
    1: "Population And Employment",
    2: "Consumption",
    3: "Capital Formation and Saving, Total Economy and Sectors",
    4: "Domestic and Final Demand",
    5: "National Income",
    6: "Domestic Product",
    7: "Gross Domestic Product (Income Approach), Labour Costs",
    8: "Capital Stock",
    9: "Exports and Imports of Goods and Services, National Accounts",
    10: "Balances with the Rest of the World",
    11: "Foreign Trade",
    12: "National Accounts by Branch of Activity",
    13: "Monetary Variables",
    14: "Corporations (S11 + S12)",
    15: "Households And Npish (S14 + S15)",
    16: "General Government (S13)",
    17: "Cyclical Adjustment of Public Finance Variables",
    18: "Gross Public Debt",
})


# ── Subchapter labels, grouped by chapter ─────────────────────────────────────
# Chapters 14 and 15 share their labels; the earlier chapter wins.

_SUBCHAPTERS_BY_CHAPTER: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Population And Employment", (
        "01 Population",
        "02 Labour Force Statistics",
        "03 Unemployment",
        "04 Employment, Persons (National Accounts)",
        "05 Employment, Full-Time Equivalents (National Accounts)",
        "06 Self-Employed, Persons (National Accounts)",
        "07 Wage And Salary Earners, Persons (National Accounts)",
        "08 Wage And Salary Earners, Full-Time Equivalents (National Acc...",
    )),
    ("Consumption", (
        "01 Private Final Consumption Expenditure",
        "02 Private Final Consumption Expenditure Per Head Of Population",
        "03 Actual Individual Final Consumption Of Households",
        "04 Consumer Price Index",
        "05 Total Final Consumption Expenditure Of General Government",
        "06 Collective Consumption Expenditure Of General Government",
        "07 Individual Consumption Expenditure Of General Government",
        "08 Total Consumption",
    )),
    ("Capital Formation And Saving", (
        "01 Gross Fixed Capital Formation, Total Economy",
        "02 Gross Fixed Capital Formation At Current Prices, Sectors",
        "03 Net Fixed Capital Formation, Total Economy",
        "04 Net Fixed Capital Formation At Current Prices, Sectors",
        "05 Consumption Of Fixed Capital, Total Economy",
        "06 Consumption Of Fixed Capital, General Government",
        "07 Gross Fixed Capital Formation By Type Of Goods At Current Prices",
        "08 Gross Fixed Capital Formation By Type Of Goods At Constant Prices",
        "09 Gross Fixed Capital Formation By Type Of Goods, Price Deflators",
        "10 Change In Inventories And Net Acquisition Of Valuables",
        "11 Gross Capital Formation",
        "12 Gross Saving",
        "13 Net Saving",
    )),
    ("Domestic And Final Demand", (
        "01 Domestic Demand Excluding Change In Inventories",
        "02 Domestic Demand Including Change In Inventories",
        "03 Final Demand",
        "04 Contributions To The Change Of The Final Demand Deflator",
    )),
    ("National Income", (
        "01 Gross National Income",
        "02 Gross National Income Per Head Of Population",
        "03 Net National Income",
        "04 National Disposable Income At Current Prices",
        "05 Gross National Disposable Income Per Head Of Population",
    )),
    ("Domestic Product", (
        "01 Gross Domestic Product",
        "02 Gross Domestic Product Per Head Of Population",
        "03 Gross Domestic Product Per Person Employed",
        "04 Gross Domestic Product Per Hour Worked",
        "05 Potential Gross Domestic Product At Constant Prices",
        "06 Trend Gross Domestic Product At Constant Prices",
        "07 Gdp At Constant Prices Adjusted For The Impact Of Terms Of Trade Per Head",
        "08 Contributions To The Change Of Gdp At Constant Market Prices",
        "09 Alternative Definitions Domestic Product At Current Prices",
        "10 Gross Value Added, Total Economy",
    )),
    ("Gross Domestic Product (Income Approach)", (
        "01 Compensation Of Employees",
        "02 Taxes Linked To Imports And Production And Subsidies; Total Economy",
        "03 Operating Surplus, Total Economy",
        "04 Nominal Compensation Per Employee, Total Economy",
        "05 Real Compensation Per Employee, Total Economy",
        "06 Adjusted Wage Share",
        "07 Nominal Unit Labour Costs, Total Economy",
        "08 Real Unit Labour Costs, Total Economy",
    )),
    ("Capital Stock", (
        "01 Net Capital Stock At Constant Prices, Total Economy",
        "02 Factor Productivity, Total Economy",
        "03 Production Factors Substitution, Total Economy",
        "04 Marginal Efficiency Of Capital, Total Economy",
    )),
    ("Exports And Imports", (
        "01 Exports Of Goods And Services",
        "02 Imports Of Goods And Services",
        "03 Exports Of Goods",
        "04 Exports Of Services",
        "05 Imports Of Goods",
        "06 Imports Of Services",
        "07 Terms Of Trade",
    )),
    ("Balances With The Rest Of The World", (
        "01 Balances With The Rest Of The World, National Accounts",
        "02 Balances With The Rest Of The World, Bop Statistics",
    )),
    ("Foreign Trade", (
        "01 Foreign Trade At Current Prices",
        "02 Foreign Trade Shares In World Trade",
    )),
    ("National Accounts By Branch Of Activity", (
        "01 Employment, Persons",
        "02 Employment, Full-Time Equivalents",
        "03 Wage And Salary Earners, Persons",
        "04 Wage And Salary Earners, Full-Time Equivalents",
        "05 Gross Value Added By Main Branch At Current Prices",
        "06 Gross Value Added By Main Branch At Current Prices Per Person Employed",
        "07 Gross Value Added By Main Branch At Current Prices Per Employee",
        "08 Gross Value Added By Main Branch At Constant Prices",
        "09 Gross Value Added By Main Branch At Constant Prices Per Person Employed",
        "10 Gross Value Added By Main Branch At Constant Prices Per Employee",
        "11 Price Deflator Gross Value Added By Main Branch",
        "12 Compensation Of Employees By Main Branch",
        "13 Nominal Compensation By Main Branch Per Employee",
        "14 Adjusted Wage Share By Main Branch",
        "15 Nominal Unit Wage Costs By Main Branch",
        "16 Nominal Unit Labour Costs By Main Branch",
        "17 Real Unit Labour Costs By Main Branch",
        "18 Industrial Production",
    )),
    ("Monetary Variables", (
        "01 Exchange Rates And Purchasing Power Parities",
        "02 Interest Rates",
    )),
    ("Corporations", (
        "01 Revenue",
        "02 Expenditure",
        "03 Balances",
    )),
    ("Households And Npish", (
        "01 Revenue",
        "02 Expenditure",
        "03 Balances",
    )),
    ("General Government", (
        "01 Revenue (Esa 2010)",
        "02 Expenditure (Esa 2010)",
        "03 Net Lending (Esa 2010)",
        "04 Excessive Deficit Procedure",
    )),
    ("Cyclical Adjustment Of Public Finance Variables", (
        "01 Based On Potential Gdp (Esa 2010)",
        "02 Based On Trend Gdp (Esa 2010)",
    )),
    ("Gross Public Debt", (
        "01 Based On Esa 2010",
        "02 Based On Esa 2010 And Former Definitions (Linked Series)",
    )),
)


def _build_subchapter_table() -> Mapping[str, str]:
    table: dict[str, str] = {}
    for chapter, labels in _SUBCHAPTERS_BY_CHAPTER:
        for label in labels:
            table.setdefault(label, chapter)
    return MappingProxyType(table)


SUBCHAPTER_TO_CHAPTER: Mapping[str, str] = _build_subchapter_table()


# ── Strategies ────────────────────────────────────────────────────────────────


class ChapterClassifier:
    """Resolve a file's chapter name from its ``AMECO<N>`` file name."""

    def __init__(self, chapter_names: Mapping[int, str] = CHAPTER_NAMES):
        self.chapter_names = chapter_names

    def chapter_number(self, path: Path | str) -> int | None:
        m = AMECO_FILE_STEM.match(Path(path).stem)
        if not m:
            return None
        return int(m.group(1))

    def chapter_for_file(self, path: Path | str) -> str:
        number = self.chapter_number(path)
        if number is None:
            logger.warning("Cannot derive chapter number from file name %s", path)
            return UNKNOWN_CHAPTER
        name = self.chapter_names.get(number)
        if name is None:
            logger.warning("Chapter %d from %s is not in the chapter table", number, path)
            return f"{UNKNOWN_CHAPTER} ({number})"
        return name


def chapter_for_subchapter(label: str, table: Mapping[str, str] = SUBCHAPTER_TO_CHAPTER) -> str:
    """Per-row alternative: look the raw subchapter label up in *table*."""
    return table.get((label or "").strip(), UNKNOWN_CHAPTER)
