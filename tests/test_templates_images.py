from __future__ import annotations

import pytest

from qcscan.db.errors import IntegrityViolationError
from qcscan.schemas.capture import ImageSchema, ImageUpdate, TemplateSchema, TemplateUpdate
from qcscan.schemas.roi import BBox, CoordinateSpace, RoiMap, RoiRect, RoiTarget, RoiValueType
from qcscan.utils.encoding import parse_homography, stringify_homography


def _image(img_id: str, created_at: str, **values) -> ImageSchema:
    return ImageSchema(img_id=img_id, uri=f"file:///captures/{img_id}.jpg", created_at=created_at, **values)


async def test_template_register_and_read_back_roi_map(templates):
    roi_map = RoiMap(
        template_id="FORM-A",
        version="2.1",
        regions=[
            RoiRect(
                id="r1",
                field_id="qc_ok",
                target=RoiTarget.ocr,
                value_type=RoiValueType.count,
                rect=BBox(x=0.1, y=0.2, width=0.3, height=0.05, coordinate_space=CoordinateSpace.relative),
            )
        ],
    )

    await templates.register(roi_map)

    stored = await templates.find_by_id("FORM-A")
    assert stored is not None
    assert stored.version == "2.1"
    assert await templates.get_roi_map("FORM-A") == roi_map
    assert await templates.get_roi_map("missing") is None


async def test_template_find_all_orders_by_key(templates):
    for template_id in ("T3", "T1", "T2"):
        await templates.create(TemplateSchema(template_id=template_id, version="1.0", roi_map_json="{}"))

    listed = await templates.find_all()
    assert [template.template_id for template in listed] == ["T1", "T2", "T3"]
    assert [template.template_id for template in await templates.find_all(limit=2, offset=1)] == ["T2", "T3"]


async def test_template_find_by_version_and_update(templates):
    await templates.create(TemplateSchema(template_id="T1", version="1.0", roi_map_json="{}"))
    await templates.create(TemplateSchema(template_id="T2", version="2.0", roi_map_json="{}"))

    await templates.update("T1", TemplateUpdate(roi_map_json='{"regions":[]}'))

    matches = await templates.find_by_version("1.0")
    assert [template.template_id for template in matches] == ["T1"]
    assert matches[0].roi_map_json == '{"regions":[]}'


async def test_template_delete_blocked_while_image_references_it(templates, images, seeded_image):
    with pytest.raises(IntegrityViolationError):
        await templates.delete("T1")

    await images.delete(seeded_image)
    await templates.delete("T1")
    assert await templates.find_by_id("T1") is None


async def test_image_zero_quality_scores_persist_as_zero(images):
    await images.create(_image("I0", "2024-01-01T00:00:00Z", blur=0.0, glare=0.0))

    stored = await images.find_by_id("I0")
    assert stored is not None
    assert stored.blur == 0.0
    assert stored.glare == 0.0
    assert stored.rectified_uri is None
    assert stored.template_id is None


async def test_image_unknown_template_is_rejected(images):
    with pytest.raises(IntegrityViolationError):
        await images.create(_image("I1", "2024-01-01T00:00:00Z", template_id="nope"))


async def test_image_find_all_newest_first_and_pagination(images):
    await images.create(_image("A", "2024-01-01T00:00:00Z"))
    await images.create(_image("B", "2024-01-03T00:00:00Z"))
    await images.create(_image("C", "2024-01-02T00:00:00Z"))

    assert [image.img_id for image in await images.find_all()] == ["B", "C", "A"]
    assert [image.img_id for image in await images.find_all(limit=1, offset=1)] == ["C"]
    assert [image.img_id for image in await images.find_all(offset=2)] == ["B", "C", "A"]


async def test_image_finders(images, seeded_image):
    await images.create(_image("I2", "2024-02-01T00:00:00Z"))

    assert [image.img_id for image in await images.find_by_template_id("T1")] == ["I1"]
    in_range = await images.find_by_date_range("2024-01-01T00:00:00Z", "2024-01-31T23:59:59Z")
    assert [image.img_id for image in in_range] == ["I1"]


async def test_find_with_quality_issues(images):
    await images.create(_image("A", "2024-01-01T00:00:00Z", blur=0.6))
    await images.create(_image("B", "2024-01-02T00:00:00Z", glare=0.7))
    await images.create(_image("C", "2024-01-03T00:00:00Z"))
    await images.create(_image("D", "2024-01-04T00:00:00Z", blur=0.1, glare=0.1))

    any_signal = await images.find_with_quality_issues()
    assert [image.img_id for image in any_signal] == ["D", "B", "A"]

    either = await images.find_with_quality_issues(blur_threshold=0.5, glare_threshold=0.5)
    assert [image.img_id for image in either] == ["B", "A"]

    blur_only = await images.find_with_quality_issues(blur_threshold=0.05)
    assert [image.img_id for image in blur_only] == ["D", "A"]


async def test_image_partial_update(images):
    await images.create(_image("I1", "2024-01-01T00:00:00Z", blur=0.3, glare=0.2))
    matrix = [[1.0, 0.0, 5.0], [0.0, 1.0, 7.0], [0.0, 0.0, 1.0]]

    await images.update("I1", ImageUpdate(homography=stringify_homography(matrix), blur=None))

    stored = await images.find_by_id("I1")
    assert stored is not None
    assert parse_homography(stored.homography) == matrix
    assert stored.blur is None
    assert stored.glare == 0.2
    assert stored.uri == "file:///captures/I1.jpg"
