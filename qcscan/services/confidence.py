from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from qcscan.schemas.capture import RecognitionEventSchema

DEFAULT_CONFIDENCE_THRESHOLD = 0.8


@dataclass(frozen=True)
class ConfidenceSummary:
    average: float | None
    minimum: float | None
    maximum: float | None
    below_threshold: int
    threshold: float
    total: int
    scored: int


def classify_confidence(score: float) -> str:
    if score >= 0.92:
        return "trusted"
    if score >= 0.80:
        return "medium"
    return "low"


def calculate_confidence_stats(
    values: Iterable[float | RecognitionEventSchema | None],
    threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
) -> ConfidenceSummary:
    total = 0
    confidences: list[float] = []
    for item in values:
        total += 1
        conf = item.conf if isinstance(item, RecognitionEventSchema) else item
        if conf is not None:
            confidences.append(float(conf))

    if not confidences:
        return ConfidenceSummary(
            average=None,
            minimum=None,
            maximum=None,
            below_threshold=0,
            threshold=threshold,
            total=total,
            scored=0,
        )

    return ConfidenceSummary(
        average=sum(confidences) / len(confidences),
        minimum=min(confidences),
        maximum=max(confidences),
        below_threshold=sum(1 for conf in confidences if conf < threshold),
        threshold=threshold,
        total=total,
        scored=len(confidences),
    )
