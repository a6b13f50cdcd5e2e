from __future__ import annotations

import json
import logging
import math

from pydantic import ValidationError

from qcscan.schemas.roi import RoiMap

logger = logging.getLogger("qcscan.encoding")


def stringify_homography(matrix: list[list[float]] | None) -> str | None:
    if not matrix:
        return None
    return json.dumps([[float(value) for value in row] for row in matrix])


def parse_homography(raw: str | None) -> list[list[float]] | None:
    """Decode a stored matrix; anything that is not a rectangular numeric grid yields None."""
    if not raw:
        return None
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Unparseable homography raw=%r", raw)
        return None
    if not isinstance(decoded, list) or not decoded:
        return None
    width: int | None = None
    matrix: list[list[float]] = []
    for row in decoded:
        if not isinstance(row, list) or not row:
            return None
        if width is not None and len(row) != width:
            return None
        width = len(row)
        values: list[float] = []
        for value in row:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                return None
            values.append(float(value))
        matrix.append(values)
    return matrix


def is_homography_3x3(matrix: list[list[float]] | None) -> bool:
    return matrix is not None and len(matrix) == 3 and all(len(row) == 3 for row in matrix)


def stringify_roi_map(roi_map: RoiMap) -> str:
    return roi_map.model_dump_json(by_alias=True, exclude_none=True)


def parse_roi_map(raw: str | None) -> RoiMap | None:
    if not raw:
        return None
    try:
        return RoiMap.model_validate_json(raw)
    except ValidationError:
        logger.debug("Unparseable roi map length=%s", len(raw))
        return None
