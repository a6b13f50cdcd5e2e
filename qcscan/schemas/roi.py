from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class CoordinateSpace(str, Enum):
    pixel = "pixel"
    relative = "relative"


class RoiTarget(str, Enum):
    ocr = "ocr"
    barcode = "barcode"
    checkbox = "checkbox"
    signature = "signature"
    photo = "photo"
    textfield = "textfield"


class RoiValueType(str, Enum):
    string = "string"
    number = "number"
    integer = "integer"
    date = "date"
    time = "time"
    select = "select"
    dimension = "dimension"
    count = "count"
    boolean = "boolean"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BBox(_CamelModel):
    x: float
    y: float
    width: float
    height: float
    coordinate_space: CoordinateSpace = Field(alias="coordinateSpace")


class RoiPoint(_CamelModel):
    x: float
    y: float
    coordinate_space: CoordinateSpace = Field(alias="coordinateSpace")


class RoiRect(_CamelModel):
    type: Literal["rect"] = "rect"
    id: str
    field_id: str = Field(alias="fieldId")
    label: str | None = None
    target: RoiTarget
    value_type: RoiValueType = Field(alias="valueType")
    required: bool | None = None
    rect: BBox
    rotation_deg: float | None = Field(default=None, alias="rotationDeg")


class RoiPolygon(_CamelModel):
    type: Literal["polygon"] = "polygon"
    id: str
    field_id: str = Field(alias="fieldId")
    label: str | None = None
    target: RoiTarget
    value_type: RoiValueType = Field(alias="valueType")
    required: bool | None = None
    points: list[RoiPoint]
    bbox: BBox | None = None


RoiRegion = Annotated[Union[RoiRect, RoiPolygon], Field(discriminator="type")]


class ImageSize(BaseModel):
    width: int
    height: int


class RoiMap(_CamelModel):
    template_id: str = Field(alias="templateId")
    version: str
    image_size: ImageSize | None = Field(default=None, alias="imageSize")
    regions: list[RoiRegion] = Field(default_factory=list)

    def region_for_field(self, field_id: str) -> RoiRegion | None:
        for region in self.regions:
            if region.field_id == field_id:
                return region
        return None
