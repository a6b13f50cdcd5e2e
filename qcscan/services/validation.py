from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any, Mapping, Union

from pydantic import BaseModel

from qcscan.schemas.capture import (
    RECORD_NUMERIC_FIELDS,
    ImageSchema,
    RecognitionEventSchema,
    RecordSchema,
)
from qcscan.schemas.validation import (
    IssueCode,
    ValidationIssue,
    ValidationSeverity,
    ValidationState,
)
from qcscan.utils.encoding import is_homography_3x3, parse_homography
from qcscan.utils.metrics import VALIDATION_ISSUES

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
HOUR_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")
HARD_GATE_FIELDS = ("qc_ok", "qc_ng", "output_count")
DIMENSION_AXES = ("L", "W", "T")
SQLITE_INTEGER_MAX = 2**63 - 1

RECORD_FIELDS = frozenset(RecordSchema.model_fields)
IMAGE_FIELDS = frozenset(ImageSchema.model_fields)
RECOGNITION_EVENT_FIELDS = frozenset(RecognitionEventSchema.model_fields)

logger = logging.getLogger("qcscan.validation")

Candidate = Union[Mapping[str, Any], BaseModel]


class _Issues:
    def __init__(self) -> None:
        self.items: list[ValidationIssue] = []

    def add(
        self,
        field: str | None,
        code: IssueCode,
        message: str,
        severity: ValidationSeverity = ValidationSeverity.error,
    ) -> None:
        self.items.append(ValidationIssue(field=field, code=code, message=message, severity=severity))

    def state(self, entity: str, hard_gate_passed: bool = False) -> ValidationState:
        for issue in self.items:
            VALIDATION_ISSUES.labels(entity=entity, severity=issue.severity.value).inc()
        is_valid = not any(issue.severity is ValidationSeverity.error for issue in self.items)
        logger.debug(
            "Validated entity=%s is_valid=%s hard_gate_passed=%s issues=%s",
            entity,
            is_valid,
            hard_gate_passed,
            len(self.items),
        )
        return ValidationState(is_valid=is_valid, hard_gate_passed=hard_gate_passed, issues=self.items)


def _as_mapping(candidate: Candidate) -> dict[str, Any]:
    if isinstance(candidate, BaseModel):
        return candidate.model_dump()
    return dict(candidate)


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _check_unknown(issues: _Issues, data: Mapping[str, Any], allowed: frozenset[str]) -> None:
    for field in data:
        if field not in allowed:
            issues.add(field, IssueCode.unknown, f"{field} is not a known field", ValidationSeverity.warning)


def _check_required(issues: _Issues, data: Mapping[str, Any], field: str) -> None:
    if not _is_present(data.get(field)):
        issues.add(field, IssueCode.required, f"{field} is required")


def _check_number(
    issues: _Issues, data: Mapping[str, Any], field: str, *, integer: bool
) -> float | None:
    raw = data.get(field)
    if not _is_present(raw):
        return None
    number = _to_number(raw)
    if number is None:
        issues.add(field, IssueCode.format, f"{field} must be a number")
        return None
    if number < 0:
        issues.add(field, IssueCode.non_negative, f"{field} must be a non-negative number")
    if integer and not number.is_integer():
        issues.add(field, IssueCode.integer_required, f"{field} must be a whole number")
    exact = raw if isinstance(raw, int) else number
    if integer and abs(exact) > SQLITE_INTEGER_MAX:
        issues.add(field, IssueCode.range, f"{field} exceeds the storable integer range")
    return number


def _check_flag(issues: _Issues, data: Mapping[str, Any], field: str) -> None:
    raw = data.get(field)
    if raw is None:
        return
    number = raw if isinstance(raw, bool) else _to_number(raw)
    if number not in (0, 1):
        issues.add(field, IssueCode.range, f"{field} must be 0 or 1")


def _check_date(issues: _Issues, data: Mapping[str, Any]) -> None:
    raw = data.get("date")
    if not _is_present(raw):
        return
    if not isinstance(raw, str) or not DATE_PATTERN.match(raw):
        issues.add("date", IssueCode.format, "date must use YYYY-MM-DD")
        return
    try:
        datetime.strptime(raw, "%Y-%m-%d")
    except ValueError:
        issues.add("date", IssueCode.range, f"date {raw} is not a calendar date")


def _check_hour(issues: _Issues, data: Mapping[str, Any]) -> None:
    raw = data.get("hour")
    if not _is_present(raw):
        return
    match = HOUR_PATTERN.match(raw) if isinstance(raw, str) else None
    if match is None:
        issues.add("hour", IssueCode.format, "hour must use 24h HH:mm")
        return
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        issues.add("hour", IssueCode.range, f"hour {raw} is not a valid time of day")


def _check_dimensions(issues: _Issues, numbers: Mapping[str, float | None]) -> None:
    for axis in DIMENSION_AXES:
        source = numbers.get(f"input_{axis}_mm")
        result = numbers.get(f"output_{axis}_mm")
        if source is None or result is None:
            continue
        if result > source:
            issues.add(
                f"output_{axis}_mm",
                IssueCode.inconsistent_dimensions,
                f"output_{axis}_mm ({result:g}) exceeds input_{axis}_mm ({source:g})",
                ValidationSeverity.warning,
            )


def _check_hard_gate(issues: _Issues, numbers: Mapping[str, float | None]) -> bool:
    missing = [field for field in HARD_GATE_FIELDS if numbers.get(field) is None]
    if missing:
        issues.add(
            "row",
            IssueCode.required,
            f"hard gate not evaluated, missing or invalid: {', '.join(missing)}",
            ValidationSeverity.info,
        )
        return False
    qc_ok, qc_ng, output_count = (numbers[field] for field in HARD_GATE_FIELDS)
    if qc_ok + qc_ng != output_count:
        issues.add(
            "row",
            IssueCode.sum_mismatch,
            f"qc_ok ({qc_ok:g}) + qc_ng ({qc_ng:g}) must equal output_count ({output_count:g})",
        )
        return False
    return True


def validate_record(candidate: Candidate) -> ValidationState:
    data = _as_mapping(candidate)
    issues = _Issues()

    _check_unknown(issues, data, RECORD_FIELDS)
    _check_required(issues, data, "created_at")
    _check_date(issues, data)
    _check_hour(issues, data)

    numbers = {field: _check_number(issues, data, field, integer=True) for field in RECORD_NUMERIC_FIELDS}
    _check_flag(issues, data, "verified")
    _check_dimensions(issues, numbers)
    hard_gate_passed = _check_hard_gate(issues, numbers)

    return issues.state("record", hard_gate_passed)


def validate_image(candidate: Candidate) -> ValidationState:
    data = _as_mapping(candidate)
    issues = _Issues()

    _check_unknown(issues, data, IMAGE_FIELDS)
    for field in ("img_id", "uri", "created_at"):
        _check_required(issues, data, field)
    for field in ("blur", "glare"):
        _check_number(issues, data, field, integer=False)

    homography = data.get("homography")
    if _is_present(homography):
        matrix = parse_homography(homography) if isinstance(homography, str) else None
        if not is_homography_3x3(matrix):
            issues.add("homography", IssueCode.format, "homography must encode a 3x3 numeric matrix")

    return issues.state("image")


def validate_recognition_event(candidate: Candidate) -> ValidationState:
    data = _as_mapping(candidate)
    issues = _Issues()

    _check_unknown(issues, data, RECOGNITION_EVENT_FIELDS)
    _check_required(issues, data, "created_at")

    conf = data.get("conf")
    if conf is not None:
        number = _to_number(conf)
        if number is None:
            issues.add("conf", IssueCode.format, "conf must be a number")
        elif not 0.0 <= number <= 1.0:
            issues.add("conf", IssueCode.range, "confidence must be between 0 and 1")
    _check_flag(issues, data, "corrected")

    return issues.state("recognition_event")
