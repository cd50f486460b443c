"""Base Pydantic schemas for service records."""

from typing import List

from pydantic import BaseModel, ValidationError

from catalog_rules.core.validation import ValidationIssue


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    class Config:
        from_attributes = True
        populate_by_name = True
        str_strip_whitespace = True
        validate_assignment = True


def issues_from_validation_error(exc: ValidationError) -> List[ValidationIssue]:
    """Map pydantic errors onto validation issues, one per failing field."""
    issues = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or None
        code = "required_field" if error["type"] == "missing" else "invalid_value"
        issues.append(ValidationIssue(code=code, message=error["msg"], field=field))
    return issues
