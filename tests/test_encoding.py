import pytest

from qcscan.schemas.roi import (
    BBox,
    CoordinateSpace,
    ImageSize,
    RoiMap,
    RoiPoint,
    RoiPolygon,
    RoiRect,
    RoiTarget,
    RoiValueType,
)
from qcscan.utils.dimensions import CanonicalDimensions, format_dimensions, parse_dimensions
from qcscan.utils.encoding import parse_homography, parse_roi_map, stringify_homography, stringify_roi_map


@pytest.mark.parametrize(
    "matrix",
    [
        [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]],
        [[0.98, -0.02, 14.5], [0.01, 1.03, -3.25], [1e-5, 2e-5, 1.0]],
        [[1, 2], [3, 4], [5, 6]],
    ],
)
def test_homography_round_trip(matrix):
    assert parse_homography(stringify_homography(matrix)) == matrix


@pytest.mark.parametrize("raw", ["", None, "not json", "{}", "[]", "[[1, 2], [3]]", '[["a", 1]]', "[[true, 1]]"])
def test_malformed_homography_is_none(raw):
    assert parse_homography(raw) is None


def test_roi_map_round_trip_preserves_order():
    roi_map = RoiMap(
        template_id="FORM-A",
        version="1.0",
        image_size=ImageSize(width=2480, height=3508),
        regions=[
            RoiPolygon(
                id="r2",
                field_id="notes",
                target=RoiTarget.textfield,
                value_type=RoiValueType.string,
                points=[
                    RoiPoint(x=10, y=10, coordinate_space=CoordinateSpace.pixel),
                    RoiPoint(x=200, y=12, coordinate_space=CoordinateSpace.pixel),
                    RoiPoint(x=198, y=80, coordinate_space=CoordinateSpace.pixel),
                ],
            ),
            RoiRect(
                id="r1",
                field_id="output_count",
                label="Output",
                target=RoiTarget.ocr,
                value_type=RoiValueType.count,
                required=True,
                rect=BBox(x=0.5, y=0.1, width=0.2, height=0.04, coordinate_space=CoordinateSpace.relative),
                rotation_deg=1.5,
            ),
        ],
    )

    raw = stringify_roi_map(roi_map)
    parsed = parse_roi_map(raw)

    assert parsed == roi_map
    assert [region.id for region in parsed.regions] == ["r2", "r1"]
    assert isinstance(parsed.regions[0], RoiPolygon)
    assert isinstance(parsed.regions[1], RoiRect)
    assert '"fieldId"' in raw
    assert parsed.region_for_field("output_count").id == "r1"


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "{not json",
        '{"templateId": "T1"}',
        '{"templateId": "T1", "version": "1", "regions": [{"type": "circle", "id": "x"}]}',
    ],
)
def test_malformed_roi_map_is_none(raw):
    assert parse_roi_map(raw) is None


def test_format_dimensions_canonicalizes_to_whole_mm():
    assert format_dimensions(1200, 600.4, 18.6) == "1200×600×19"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1200x600x18", CanonicalDimensions(1200, 600, 18)),
        ("1200 × 600 × 18 mm", CanonicalDimensions(1200, 600, 18)),
        ("1200*600*17,6", CanonicalDimensions(1200, 600, 18)),
        ("1200x600", None),
        ("", None),
    ],
)
def test_parse_dimensions(raw, expected):
    assert parse_dimensions(raw) == expected


def test_canonical_dimensions_string():
    assert CanonicalDimensions(1200, 600, 18).as_string == "1200×600×18"
