"""Data validation utilities for the AMECO ingestion tools.

Provides reusable building blocks for post-load quality checks:
- ValidationIssue: one finding with a severity and an affected-row count
- ValidationResult: collects issues and per-check pass/fail status
- ValidationRegistry: named check functions run against a connection
- Small predicates shared by the checks
"""

from typing import Any, Callable, Dict, List, Optional
import sqlite3

SEVERITIES = ("info", "warning", "error")


class ValidationIssue:
    """Represents a single validation issue found during checks."""

    def __init__(self, check_name: str, severity: str, detail: str,
                 sample: Optional[Any] = None, count: int = 1):
        """Initialize a validation issue.

        Args:
            check_name: Name of the check that found this issue
            severity: Issue severity ('error', 'warning', 'info')
            detail: Human-readable description of the issue
            sample: Example value that triggered the issue
            count: Number of affected rows/records
        """
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown severity {severity!r}")
        self.check_name = check_name
        self.severity = severity
        self.detail = detail
        self.sample = sample
        self.count = count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "check": self.check_name,
            "severity": self.severity,
            "detail": self.detail,
            "sample": str(self.sample) if self.sample is not None else None,
            "count": self.count,
        }

    def __repr__(self) -> str:
        return (f"ValidationIssue(check={self.check_name}, severity={self.severity}, "
                f"count={self.count})")


class ValidationResult:
    """Collects and reports on validation check results."""

    def __init__(self):
        self.issues: List[ValidationIssue] = []
        self.passed_checks: List[str] = []
        self.failed_checks: List[str] = []

    def add_issue(self, issue: ValidationIssue) -> None:
        self.issues.append(issue)

    def mark_check_passed(self, check_name: str) -> None:
        self.passed_checks.append(check_name)

    def mark_check_failed(self, check_name: str) -> None:
        self.failed_checks.append(check_name)

    def get_issues_by_severity(self, severity: str) -> List[ValidationIssue]:
        """Get all issues of a specific severity."""
        return [i for i in self.issues if i.severity == severity]

    def error_count(self) -> int:
        return len(self.get_issues_by_severity("error"))

    def warning_count(self) -> int:
        return len(self.get_issues_by_severity("warning"))

    def is_valid(self) -> bool:
        """Check if validation passed (no errors)."""
        return self.error_count() == 0

    def summary_text(self) -> str:
        """Generate human-readable validation summary."""
        lines = [
            "Validation Summary:",
            f"  Passed Checks: {len(self.passed_checks)}",
            f"  Failed Checks: {len(self.failed_checks)}",
            f"  Issues: {len(self.issues)}",
            f"    - Errors: {self.error_count()}",
            f"    - Warnings: {self.warning_count()}",
            f"    - Info: {len(self.get_issues_by_severity('info'))}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "passed_checks": self.passed_checks,
            "failed_checks": self.failed_checks,
            "issues": [i.to_dict() for i in self.issues],
            "summary": {
                "total_checks": len(self.passed_checks) + len(self.failed_checks),
                "passed": len(self.passed_checks),
                "failed": len(self.failed_checks),
                "errors": self.error_count(),
                "warnings": self.warning_count(),
            },
        }


class ValidationRegistry:
    """Manages a collection of validation check functions.

    A check takes a connection and returns a (possibly empty) list of
    ValidationIssue objects.
    """

    def __init__(self):
        self.checks: Dict[str, Callable[[sqlite3.Connection], List[ValidationIssue]]] = {}

    def register(self, name: str, check_fn: Callable) -> None:
        self.checks[name] = check_fn

    def run_all(self, conn: sqlite3.Connection,
                skip_checks: Optional[List[str]] = None) -> ValidationResult:
        """Run all registered checks.

        A check that raises is reported as an error issue against itself
        rather than aborting the remaining checks.

        Args:
            conn: SQLite connection to validate
            skip_checks: List of check names to skip

        Returns:
            ValidationResult with all issues found
        """
        skip = set(skip_checks or [])
        result = ValidationResult()

        for check_name, check_fn in self.checks.items():
            if check_name in skip:
                continue
            try:
                issues = check_fn(conn)
            except sqlite3.Error as e:
                result.add_issue(ValidationIssue(
                    check_name, "error", f"Check raised exception: {str(e)[:100]}"
                ))
                result.mark_check_failed(check_name)
                continue
            if issues:
                for issue in issues:
                    result.add_issue(issue)
                result.mark_check_failed(check_name)
            else:
                result.mark_check_passed(check_name)

        return result


def is_valid_year(year: int) -> bool:
    """Check if year is plausible for an AMECO annual series (1960-2100)."""
    return isinstance(year, int) and not isinstance(year, bool) and 1960 <= year <= 2100


def is_known_code(code: Optional[str], known: Dict[str, str]) -> bool:
    """Check if a raw classification code has an entry in *known*.

    Empty codes are treated as known: older extracts leave them blank.
    """
    if code is None or not str(code).strip():
        return True
    key = str(code).strip().lstrip("0") or "0"
    return key in known
