from __future__ import annotations

import re
from dataclasses import dataclass

DIMENSION_SEPARATOR = "×"
DIMENSION_PATTERN = re.compile(
    r"^\s*(\d+(?:[.,]\d+)?)\s*[x×X*]\s*(\d+(?:[.,]\d+)?)\s*[x×X*]\s*(\d+(?:[.,]\d+)?)\s*(?:mm)?\s*$"
)


@dataclass(frozen=True)
class CanonicalDimensions:
    length_l: int
    width_w: int
    thickness_t: int

    @property
    def as_string(self) -> str:
        return format_dimensions(self.length_l, self.width_w, self.thickness_t)


def canonical_mm(value: float | int | str) -> int:
    if isinstance(value, str):
        value = float(value.replace(",", "."))
    return int(round(float(value)))


def format_dimensions(length_l: float, width_w: float, thickness_t: float) -> str:
    parts = (canonical_mm(length_l), canonical_mm(width_w), canonical_mm(thickness_t))
    return DIMENSION_SEPARATOR.join(str(part) for part in parts)


def parse_dimensions(raw: str | None) -> CanonicalDimensions | None:
    if not raw:
        return None
    match = DIMENSION_PATTERN.match(raw)
    if match is None:
        return None
    length_l, width_w, thickness_t = (canonical_mm(group) for group in match.groups())
    return CanonicalDimensions(length_l=length_l, width_w=width_w, thickness_t=thickness_t)
