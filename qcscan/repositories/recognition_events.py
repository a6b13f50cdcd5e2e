from __future__ import annotations

from sqlalchemy import ColumnElement, case, delete, func, select, update

from qcscan.models.capture import RecognitionEvent
from qcscan.repositories.base import BaseRepository, logger
from qcscan.schemas.capture import ConfidenceStats, RecognitionEventSchema
from qcscan.services.confidence import DEFAULT_CONFIDENCE_THRESHOLD
from qcscan.utils.identifiers import current_timestamp


class RecognitionEventsRepository(BaseRepository[RecognitionEventSchema]):
    table = RecognitionEvent.__table__
    schema = RecognitionEventSchema
    key = "id"

    def _ordering(self) -> tuple[ColumnElement, ...]:
        return (self.table.c.created_at.desc(), self.table.c.id.desc())

    async def create(self, event: RecognitionEventSchema) -> int:
        values = event.model_dump(exclude={"id"})
        if values["created_at"] is None:
            values["created_at"] = current_timestamp()
        outcome = await self._insert(values)
        return int(outcome.last_insert_id)

    async def find_by_image_id(self, img_id: str) -> list[RecognitionEventSchema]:
        return await self._fetch(self._select(self.table.c.img_id == img_id))

    async def find_by_field_id(self, field_id: str) -> list[RecognitionEventSchema]:
        return await self._fetch(self._select(self.table.c.field_id == field_id))

    async def find_low_confidence(
        self, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    ) -> list[RecognitionEventSchema]:
        return await self._fetch(self._select(self.table.c.conf < threshold))

    async def find_corrected(self) -> list[RecognitionEventSchema]:
        return await self._fetch(self._select(self.table.c.corrected == 1))

    async def mark_as_corrected(self, event_id: int, corrected_value: str | None = None) -> None:
        values: dict[str, object] = {"corrected": 1}
        if corrected_value is not None:
            values["value"] = corrected_value
        await self._handle.execute(
            update(self.table).where(self.table.c.id == event_id).values(**values)
        )
        logger.info("Recognition event corrected id=%s value_replaced=%s", event_id, corrected_value is not None)

    async def delete_by_image_id(self, img_id: str) -> int:
        outcome = await self._handle.execute(delete(self.table).where(self.table.c.img_id == img_id))
        logger.info("Recognition events deleted img_id=%s count=%s", img_id, outcome.rows_affected)
        return outcome.rows_affected

    async def get_confidence_stats(self, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD) -> ConfidenceStats:
        t = self.table
        statement = select(
            func.avg(t.c.conf).label("avg_confidence"),
            func.min(t.c.conf).label("min_confidence"),
            func.max(t.c.conf).label("max_confidence"),
            func.count().label("total_events"),
            func.count(t.c.conf).label("scored_events"),
            func.coalesce(func.sum(case((t.c.corrected == 1, 1), else_=0)), 0).label("corrected_events"),
            func.coalesce(func.sum(case((t.c.conf < threshold, 1), else_=0)), 0).label("below_threshold"),
        ).select_from(t)
        rows = await self._handle.query(statement)
        stats = rows[0] if rows else {}
        return ConfidenceStats(threshold=threshold, **stats)
