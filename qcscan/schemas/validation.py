from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ValidationSeverity(str, Enum):
    error = "error"
    warning = "warning"
    info = "info"


class IssueCode(str, Enum):
    required = "REQUIRED"
    non_negative = "NON_NEGATIVE"
    integer_required = "INTEGER_REQUIRED"
    format = "FORMAT"
    range = "RANGE"
    sum_mismatch = "SUM_MISMATCH"
    inconsistent_dimensions = "INCONSISTENT_DIMENSIONS"
    unknown = "UNKNOWN"


class ValidationIssue(BaseModel):
    field: str | None = None
    code: IssueCode
    message: str
    severity: ValidationSeverity


class ValidationState(BaseModel):
    is_valid: bool
    hard_gate_passed: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is ValidationSeverity.error]

    def codes(self) -> list[IssueCode]:
        return [issue.code for issue in self.issues]
