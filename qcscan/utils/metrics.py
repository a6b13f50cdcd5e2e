from __future__ import annotations

from prometheus_client import Counter, Histogram

STORE_OPERATION_DURATION = Histogram(
    "qcscan_store_operation_duration_seconds",
    "Storage primitive duration",
    ["operation", "status"],
)
STORE_ERRORS = Counter(
    "qcscan_store_errors_total",
    "Storage primitive failures",
    ["operation", "reason"],
)
VALIDATION_ISSUES = Counter(
    "qcscan_validation_issues_total",
    "Validation issues reported",
    ["entity", "severity"],
)
