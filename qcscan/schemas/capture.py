from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from qcscan.schemas.roi import BBox

RECORD_NUMERIC_FIELDS = (
    "input_L_mm",
    "input_W_mm",
    "input_T_mm",
    "input_count",
    "output_L_mm",
    "output_W_mm",
    "output_T_mm",
    "output_count",
    "qc_ok",
    "qc_ng",
)


class TemplateSchema(BaseModel):
    template_id: str
    version: str
    roi_map_json: str


class ImageSchema(BaseModel):
    img_id: str
    uri: str
    rectified_uri: str | None = None
    template_id: str | None = None
    homography: str | None = None
    blur: float | None = None
    glare: float | None = None
    created_at: str


class RecordSchema(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: int | None = None
    date: str | None = None
    hour: str | None = None
    site: str | None = None
    form_type: str | None = None
    model_code: str | None = None
    input_L_mm: int | None = None
    input_W_mm: int | None = None
    input_T_mm: int | None = None
    input_count: int | None = None
    output_L_mm: int | None = None
    output_W_mm: int | None = None
    output_T_mm: int | None = None
    output_count: int | None = None
    qc_ok: int | None = None
    qc_ng: int | None = None
    operator_id: str | None = None
    batch_no: str | None = None
    line_id: str | None = None
    notes: str | None = None
    img_ref: str | None = None
    source_img_id: str | None = None
    model_version: str | None = None
    verified: int = 0
    created_at: str


class RecognitionEventSchema(BaseModel):
    id: int | None = None
    img_id: str | None = None
    field_id: str | None = None
    raw_text: str | None = None
    value: str | None = None
    conf: float | None = None
    corrected: int = 0
    created_at: str | None = None


# Update payloads: a field left unset is not written; a field set to None writes NULL.


class UpdatePayload(BaseModel):
    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TemplateUpdate(UpdatePayload):
    version: str | None = None
    roi_map_json: str | None = None


class ImageUpdate(UpdatePayload):
    uri: str | None = None
    rectified_uri: str | None = None
    template_id: str | None = None
    homography: str | None = None
    blur: float | None = None
    glare: float | None = None


class RecordUpdate(UpdatePayload):
    date: str | None = None
    hour: str | None = None
    site: str | None = None
    form_type: str | None = None
    model_code: str | None = None
    input_L_mm: int | None = None
    input_W_mm: int | None = None
    input_T_mm: int | None = None
    input_count: int | None = None
    output_L_mm: int | None = None
    output_W_mm: int | None = None
    output_T_mm: int | None = None
    output_count: int | None = None
    qc_ok: int | None = None
    qc_ng: int | None = None
    operator_id: str | None = None
    batch_no: str | None = None
    line_id: str | None = None
    notes: str | None = None
    img_ref: str | None = None
    source_img_id: str | None = None
    model_version: str | None = None
    verified: int | None = None


class RecognitionEventUpdate(UpdatePayload):
    value: str | None = None
    corrected: int | None = None


class RecordStats(BaseModel):
    total_records: int = 0
    verified_records: int = 0
    total_qc_ok: int = 0
    total_qc_ng: int = 0


class ConfidenceStats(BaseModel):
    avg_confidence: float | None = None
    min_confidence: float | None = None
    max_confidence: float | None = None
    total_events: int = 0
    scored_events: int = 0
    corrected_events: int = 0
    below_threshold: int = 0
    threshold: float = 0.8


class OcrToken(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    bbox: BBox | None = None
    confidence: float


class FieldRecognition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_id: str = Field(alias="fieldId")
    roi_id: str | None = Field(default=None, alias="roiId")
    raw_text: str | None = Field(default=None, alias="rawText")
    value: Any = None
    confidence: float | None = None
    tokens: list[OcrToken] = Field(default_factory=list)
    corrected: bool = False
    provider: str | None = None


class ImageRecognitionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_id: str = Field(alias="imageId")
    template_id: str | None = Field(default=None, alias="templateId")
    created_at: str = Field(alias="createdAt")
    fields: dict[str, FieldRecognition] = Field(default_factory=dict)


class TransactionForm(BaseModel):
    """Partially filled capture form; spreadsheet column names (product_type, not model_code)."""

    date: str | None = None
    hour: str | None = None
    site: str | None = None
    form_type: str | None = None
    product_type: str | None = None
    input_L_mm: float | None = None
    input_W_mm: float | None = None
    input_T_mm: float | None = None
    input_count: float | None = None
    output_L_mm: float | None = None
    output_W_mm: float | None = None
    output_T_mm: float | None = None
    output_count: float | None = None
    qc_ok: float | None = None
    qc_ng: float | None = None
    operator_id: str | None = None
    batch_no: str | None = None
    line_id: str | None = None
    notes: str | None = None
    img_ref: str | None = None
