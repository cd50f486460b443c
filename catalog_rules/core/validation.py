"""Validation result types and the per-call issue accumulator.

Every validator in the package builds a fresh ``ValidationAccumulator`` for each
call and threads it through plain rule functions. Rule functions never return a
verdict themselves; they only record issues. The accumulator turns the recorded
issues into a ``ValidationResult`` once all rules have run.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field as dataclass_field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

from catalog_rules.core.logging import get_logger

logger = get_logger(__name__)

GENERAL_FIELD = "general"
VALIDATION_ERROR_CODE = "validation_error"


class Severity(str, Enum):
    """Issue severity."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """Single validation finding."""
    code: str
    message: str
    field: Optional[str] = None
    severity: Severity = Severity.ERROR
    details: Optional[Dict[str, Any]] = None

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "code": self.code,
            "message": self.message,
            "field": self.field,
            "severity": self.severity.value,
        }
        if self.details:
            data["details"] = self.details
        return data


@dataclass
class ValidationSummary:
    """Issue counts for a validation result."""
    total_issues: int
    error_count: int
    warning_count: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total_issues": self.total_issues,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
        }


@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    has_warnings: bool
    errors: List[ValidationIssue]
    warnings: List[ValidationIssue]
    summary: ValidationSummary

    @property
    def issues(self) -> List[ValidationIssue]:
        return self.errors + self.warnings

    def codes(self, severity: Optional[Severity] = None) -> List[str]:
        """Return issue codes, optionally restricted to one severity."""
        return [
            issue.code for issue in self.issues
            if severity is None or issue.severity == severity
        ]

    def has_code(self, code: str, severity: Optional[Severity] = None) -> bool:
        return code in self.codes(severity)

    def issues_by_field(self) -> Dict[str, Dict[str, List[ValidationIssue]]]:
        """Group issues by the field they refer to."""
        grouped: Dict[str, Dict[str, List[ValidationIssue]]] = {}
        for issue in self.issues:
            key = issue.field or GENERAL_FIELD
            bucket = grouped.setdefault(key, {"errors": [], "warnings": []})
            if issue.severity == Severity.ERROR:
                bucket["errors"].append(issue)
            else:
                bucket["warnings"].append(issue)
        return grouped

    def to_dict(self) -> Dict[str, Any]:
        """Render the external result contract."""
        return {
            "isValid": self.is_valid,
            "hasWarnings": self.has_warnings,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "summary": self.summary.to_dict(),
        }


@dataclass
class ValidationAccumulator:
    """Collects issues for exactly one validation call."""
    errors: List[ValidationIssue] = dataclass_field(default_factory=list)
    warnings: List[ValidationIssue] = dataclass_field(default_factory=list)

    def add_error(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.errors.append(ValidationIssue(code, message, field, Severity.ERROR, details))

    def add_warning(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.warnings.append(ValidationIssue(code, message, field, Severity.WARNING, details))

    def add_info(
        self,
        code: str,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        # Info entries travel with warnings; they never block.
        self.warnings.append(ValidationIssue(code, message, field, Severity.INFO, details))

    def add(self, issue: ValidationIssue) -> None:
        if issue.severity == Severity.ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def extend(self, issues) -> None:
        """Merge issues from a list, another accumulator or a result."""
        if isinstance(issues, (ValidationAccumulator, ValidationResult)):
            issues = issues.errors + issues.warnings
        for issue in issues:
            self.add(issue)

    def has_code(self, code: str) -> bool:
        return any(issue.code == code for issue in self.errors + self.warnings)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def reset(self) -> None:
        self.errors = []
        self.warnings = []

    def build_result(self) -> ValidationResult:
        return ValidationResult(
            is_valid=len(self.errors) == 0,
            has_warnings=len(self.warnings) > 0,
            errors=list(self.errors),
            warnings=list(self.warnings),
            summary=ValidationSummary(
                total_issues=len(self.errors) + len(self.warnings),
                error_count=len(self.errors),
                warning_count=len(self.warnings),
            ),
        )


@contextmanager
def fail_closed(accumulator: ValidationAccumulator, operation: str) -> Iterator[ValidationAccumulator]:
    """Convert any unexpected failure inside the block into a ``validation_error`` entry."""
    try:
        yield accumulator
    except Exception as exc:
        logger.exception("validation_failed", operation=operation, error=str(exc))
        accumulator.add_error(
            VALIDATION_ERROR_CODE,
            f"Validation failed: {exc}",
            GENERAL_FIELD
        )

