from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from pydantic import BaseModel

from qcscan.db.session import StorageHandle
from qcscan.repositories.images import ImagesRepository
from qcscan.repositories.recognition_events import RecognitionEventsRepository
from qcscan.repositories.records import RecordsRepository
from qcscan.schemas.capture import (
    RECORD_NUMERIC_FIELDS,
    ImageRecognitionResult,
    RecognitionEventSchema,
    RecordSchema,
    TransactionForm,
)
from qcscan.schemas.validation import ValidationState
from qcscan.services.confidence import classify_confidence
from qcscan.services.validation import validate_record, validate_recognition_event
from qcscan.utils.dimensions import canonical_mm
from qcscan.utils.identifiers import current_timestamp

logger = logging.getLogger("qcscan.capture")


@dataclass
class PersistableTransactionRow:
    form: dict[str, Any]
    validation: ValidationState
    row: dict[str, Any]


@dataclass
class TransactionResult:
    record_id: int | None
    validation: ValidationState


@dataclass
class RecognitionSaveResult:
    event_ids: list[int] = field(default_factory=list)
    validation: dict[str, ValidationState] = field(default_factory=dict)
    review_tiers: dict[str, str] = field(default_factory=dict)

    @property
    def saved(self) -> bool:
        return bool(self.event_ids) or not self.validation


def build_transaction_row(
    form: Union[TransactionForm, Mapping[str, Any]],
    *,
    created_at: str | None = None,
    source_img_id: str | None = None,
    model_version: str | None = None,
) -> PersistableTransactionRow:
    data = form.model_dump() if isinstance(form, BaseModel) else dict(form)
    row = {key: value for key, value in data.items() if key != "product_type"}
    row["model_code"] = data.get("product_type")
    row["created_at"] = created_at or current_timestamp()
    row["source_img_id"] = source_img_id
    row["model_version"] = model_version
    return PersistableTransactionRow(form=data, validation=validate_record(row), row=row)


def _canonical_record(row: Mapping[str, Any]) -> RecordSchema:
    values = dict(row)
    if values.get("verified") is None:
        values.pop("verified", None)
    for name in RECORD_NUMERIC_FIELDS:
        if values.get(name) not in (None, ""):
            values[name] = canonical_mm(values[name])
        else:
            values[name] = None
    return RecordSchema.model_validate(values)


async def save_transaction(
    handle: StorageHandle,
    form: Union[TransactionForm, Mapping[str, Any]],
    *,
    created_at: str | None = None,
    source_img_id: str | None = None,
    model_version: str | None = None,
) -> TransactionResult:
    prepared = build_transaction_row(
        form,
        created_at=created_at,
        source_img_id=source_img_id,
        model_version=model_version,
    )
    if not prepared.validation.is_valid:
        logger.info(
            "Transaction rejected source_img_id=%s errors=%s",
            source_img_id,
            [issue.code.value for issue in prepared.validation.errors()],
        )
        return TransactionResult(record_id=None, validation=prepared.validation)

    record_id = await RecordsRepository(handle).create(_canonical_record(prepared.row))
    logger.info(
        "Transaction saved record_id=%s hard_gate_passed=%s",
        record_id,
        prepared.validation.hard_gate_passed,
    )
    return TransactionResult(record_id=record_id, validation=prepared.validation)


async def verify_record(handle: StorageHandle, record_id: int) -> ValidationState | None:
    """Flip ``verified`` to 1 only for rows that are valid and pass the hard gate."""
    records = RecordsRepository(handle)
    record = await records.find_by_id(record_id)
    if record is None:
        return None
    state = validate_record(record)
    if state.is_valid and state.hard_gate_passed:
        await records.mark_as_verified(record_id)
    else:
        logger.info("Verification refused record_id=%s hard_gate_passed=%s", record_id, state.hard_gate_passed)
    return state


def _event_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


async def save_recognition_result(
    handle: StorageHandle, result: ImageRecognitionResult
) -> RecognitionSaveResult:
    events = [
        RecognitionEventSchema(
            img_id=result.image_id,
            field_id=field_id,
            raw_text=recognition.raw_text,
            value=_event_value(recognition.value),
            conf=recognition.confidence,
            corrected=1 if recognition.corrected else 0,
            created_at=result.created_at,
        )
        for field_id, recognition in result.fields.items()
    ]

    outcome = RecognitionSaveResult()
    for event in events:
        state = validate_recognition_event(event)
        if not state.is_valid:
            outcome.validation[event.field_id] = state
    if outcome.validation:
        logger.info(
            "Recognition result rejected img_id=%s invalid_fields=%s",
            result.image_id,
            sorted(outcome.validation),
        )
        return outcome

    async with handle.transaction() as tx:
        repository = RecognitionEventsRepository(tx)
        for event in events:
            outcome.event_ids.append(await repository.create(event))
    for event in events:
        if event.conf is not None:
            outcome.review_tiers[event.field_id] = classify_confidence(event.conf)
    logger.info(
        "Recognition result saved img_id=%s events=%s low_confidence=%s",
        result.image_id,
        len(outcome.event_ids),
        sum(1 for tier in outcome.review_tiers.values() if tier == "low"),
    )
    return outcome


async def remove_image(handle: StorageHandle, img_id: str) -> int:
    async with handle.transaction() as tx:
        removed = await RecognitionEventsRepository(tx).delete_by_image_id(img_id)
        await ImagesRepository(tx).delete(img_id)
    logger.info("Image removed img_id=%s events_removed=%s", img_id, removed)
    return removed
