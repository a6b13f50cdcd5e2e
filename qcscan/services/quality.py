from __future__ import annotations

from qcscan.schemas.capture import ImageSchema


def _component_score(value: float | None) -> float:
    if value is None:
        return 1.0
    return max(0.0, 1.0 - value)


def calculate_image_quality(blur: float | None = None, glare: float | None = None) -> float:
    return min(_component_score(blur), _component_score(glare))


def image_quality(image: ImageSchema) -> float:
    return calculate_image_quality(image.blur, image.glare)


def get_quality_assessment(score: float) -> str:
    if score >= 0.9:
        return "excellent"
    if score >= 0.7:
        return "good"
    if score >= 0.5:
        return "fair"
    return "poor"
