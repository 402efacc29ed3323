"""Configuration management utilities for the AMECO ingestion tools.

Provides reusable functions for:
- Loading and saving configuration objects as JSON
- Reading environment-specific settings (database path, data directory,
  discovery pattern, logging)
- Known classification codes used by the post-load validator
- Data file discovery

Static lookup data that drives ingestion itself (chapter numbers, subchapter
labels) lives in pipeline/chapters.py, not here: it is not configurable.
"""

import fnmatch
import json
import os as _os
from pathlib import Path
from typing import Any, Dict, List, Optional

from utils.patterns import AMECO_FILE_STEM


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config

    def save_json(self, path: Path) -> None:
        """Save configuration to JSON file.

        Args:
            path: Path to save configuration file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class DatabaseConfig(Config):
    """Configuration for database operations."""

    def __init__(self):
        super().__init__()
        self.wal_mode = True
        self.synchronous = "NORMAL"
        self.temp_store = "MEMORY"
        self.cache_size = -64000


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the importer works out of the box
    against a ``Data/`` directory next to the working directory.

    Environment variables:
        AMECO_DB_PATH: Path to the SQLite database file (default: ameco.sqlite)
        AMECO_DATA_DIR: Directory holding the AMECO extracts (default: Data)
        AMECO_FILE_PATTERN: Case-insensitive glob for extracts (default: AMECO*.CSV)
        AMECO_LOG_FORMAT: Logging format, "text" or "json" (default: text)
        AMECO_LOG_LEVEL: Root log level name (default: INFO)
        AMECO_LOGS_DIR: Root for per-run log directories (default: logs/pipeline)
    """

    def __init__(self) -> None:
        super().__init__()
        self.db_path = Path(_os.getenv("AMECO_DB_PATH", "ameco.sqlite"))
        self.data_dir = Path(_os.getenv("AMECO_DATA_DIR", "Data"))
        self.file_pattern = _os.getenv("AMECO_FILE_PATTERN", "AMECO*.CSV")
        self.log_format = _os.getenv("AMECO_LOG_FORMAT", "text").lower()
        self.log_level = _os.getenv("AMECO_LOG_LEVEL", "INFO").upper()
        self.logs_dir = Path(_os.getenv("AMECO_LOGS_DIR", "logs/pipeline"))
        if self.log_format not in ("text", "json"):
            raise ValueError(
                f"AMECO_LOG_FORMAT must be 'text' or 'json', got {self.log_format!r}"
            )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()


# ── Classification codes ─────────────────────────────────────────────────────
# AMECO rows carry TRN / AGG / REF / UNIT codes as bare integers. Ingestion
# stores them verbatim; these tables only give the validator something to
# compare against.

class KnownValues:
    """Container for known AMECO classification codes."""

    TRANSFORMATION_TYPES: Dict[str, str] = {
        "1": "Levels",
        "2": "Levels, moving arithmetic mean",
        "3": "Index numbers",
        "4": "Index numbers, moving arithmetic mean",
        "5": "Annual percentage changes",
        "6": "Annual percentage changes, moving arithmetic mean",
        "7": "Annual percentage changes, moving geometric mean",
        "8": "Absolute value of annual percentage changes",
        "9": "Moving percentage changes",
        "10": "Annual changes, moving arithmetic mean",
        "11": "Absolute value of annual changes, moving arithmetic mean",
        "12": "Moving changes",
    }

    AGGREGATION_MODES: Dict[str, str] = {
        "0": "Standard aggregations",
        "1": "Weighted mean of national ratios, current prices ECU",
        "2": "Weighted mean of national ratios, current prices PPS",
        "3": "Weighted geometric mean, GDP at current prices ECU",
        "4": "Weighted geometric mean, GDP at current prices PPS",
        "5": "Weighted geometric mean, private consumption at current prices ECU",
        "6": "Weighted geometric mean, private consumption at current prices PPS",
        "7": "Weighted geometric mean, competitor group using export weights",
    }

    REFERENCE_CODES: Dict[str, str] = {
        "0": "None",
        "215": "Former EU-15",
        "328": "Former EU-28",
        "415": "Former EU-15",
        "424": "Industrial countries, former EU-15 basis",
        "437": "Industrial countries, EU-27 basis",
    }

    UNIT_CODES: Dict[str, str] = {
        "0": "Original units",
        "99": "ECU/EUR",
        "212": "Purchasing power standards",
        "300": "Final demand",
        "310": "Gross domestic product at market prices",
        "311": "Net domestic product at market prices",
        "312": "Gross domestic product at current factor cost",
        "313": "Net domestic product at current factor cost",
        "315": "Trend gross domestic product at market prices",
        "316": "Potential gross domestic product at market prices",
        "318": "Total gross value added",
        "319": "Gross domestic product (excessive deficit procedure)",
        "320": "Gross national product at market prices",
        "321": "National income at market prices",
        "322": "Gross national disposable income at market prices",
        "323": "National disposable income at market prices",
        "338": "Gross value added at market prices, manufacturing industry",
        "380": "Current revenue, general government",
        "390": "Total expenditure, general government",
        "391": "Current expenditure, general government",
        "410": "Total population (demographic statistics)",
        "411": "Population 15 to 64 years",
        "412": "Total labour force",
        "413": "Civilian labour force",
        "414": "Population 15 to 74 years",
        "420": "Total population (national accounts)",
    }

    @classmethod
    def describe(cls, table: Dict[str, str], code: Optional[str]) -> Optional[str]:
        """Return the label for a raw code, or None when it is unknown.

        Codes are compared after stripping whitespace and leading zeros so
        "05" and "5" resolve to the same entry.
        """
        if code is None:
            return None
        key = str(code).strip().lstrip("0") or "0"
        return table.get(key)


# ── File discovery ───────────────────────────────────────────────────────────

class FilePatterns:
    """Helpers for locating AMECO extracts on disk."""

    @staticmethod
    def matches(filename: str, pattern: str) -> bool:
        """Case-insensitive glob match on a bare filename."""
        return fnmatch.fnmatchcase(filename.upper(), pattern.upper())

    @staticmethod
    def chapter_sort_key(path: Path) -> tuple:
        """Sort AMECO2 before AMECO10; unnumbered files go last by name."""
        m = AMECO_FILE_STEM.match(path.stem)
        if m:
            return (0, int(m.group(1)), path.name.upper())
        return (1, 0, path.name.upper())

    @classmethod
    def discover(cls, data_dir: Path, pattern: str) -> List[Path]:
        """Return top-level files in *data_dir* matching *pattern*, chapter order.

        Raises:
            FileNotFoundError: If data_dir does not exist or is not a directory
        """
        if not data_dir.is_dir():
            raise FileNotFoundError(f"Data directory not found: {data_dir}")
        found = [
            p for p in data_dir.iterdir()
            if p.is_file() and cls.matches(p.name, pattern)
        ]
        return sorted(found, key=cls.chapter_sort_key)
