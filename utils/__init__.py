"""Shared utilities for the AMECO ingestion tools."""

# Common utilities
from utils.common import elapsed, get_connection

# Pattern definitions
from utils.patterns import (
    YEAR_HEADER,
    AMECO_FILE_STEM,
    DECIMAL_LITERAL,
)

# String utilities
from utils.strings import safe_decimal, parse_year, normalize_header

# Configuration
from utils.config import AppConfig, DatabaseConfig, FilePatterns, KnownValues

# Database utilities
from utils.database import (
    TABLES,
    create_database,
    init_pragmas,
    get_table_count,
    get_table_counts,
    table_exists,
)

# Validation utilities
from utils.validation import (
    ValidationIssue,
    ValidationResult,
    ValidationRegistry,
    is_valid_year,
    is_known_code,
)
