from __future__ import annotations

from sqlalchemy import ColumnElement, case, func, select, update

from qcscan.models.capture import Record
from qcscan.repositories.base import BaseRepository, logger
from qcscan.schemas.capture import RecordSchema, RecordStats


class RecordsRepository(BaseRepository[RecordSchema]):
    table = Record.__table__
    schema = RecordSchema
    key = "id"

    def _ordering(self) -> tuple[ColumnElement, ...]:
        return (self.table.c.created_at.desc(), self.table.c.id.desc())

    async def create(self, record: RecordSchema) -> int:
        outcome = await self._insert(record.model_dump(exclude={"id"}))
        record_id = int(outcome.last_insert_id)
        logger.info("Record created id=%s source_img_id=%s", record_id, record.source_img_id)
        return record_id

    async def find_by_source_image_id(self, source_img_id: str) -> list[RecordSchema]:
        return await self._fetch(self._select(self.table.c.source_img_id == source_img_id))

    async def find_by_operator(self, operator_id: str) -> list[RecordSchema]:
        return await self._fetch(self._select(self.table.c.operator_id == operator_id))

    async def find_by_batch_no(self, batch_no: str) -> list[RecordSchema]:
        return await self._fetch(self._select(self.table.c.batch_no == batch_no))

    async def find_by_date_range(self, start_date: str, end_date: str) -> list[RecordSchema]:
        return await self._fetch(self._select(self.table.c.created_at.between(start_date, end_date)))

    async def find_unverified(self) -> list[RecordSchema]:
        return await self._fetch(self._select(self.table.c.verified == 0))

    async def mark_as_verified(self, record_id: int) -> None:
        await self._handle.execute(
            update(self.table).where(self.table.c.id == record_id).values(verified=1)
        )
        logger.info("Record verified id=%s", record_id)

    async def get_stats_by_date_range(self, start_date: str, end_date: str) -> RecordStats:
        t = self.table
        statement = (
            select(
                func.count().label("total_records"),
                func.coalesce(func.sum(case((t.c.verified == 1, 1), else_=0)), 0).label("verified_records"),
                func.coalesce(func.sum(func.coalesce(t.c.qc_ok, 0)), 0).label("total_qc_ok"),
                func.coalesce(func.sum(func.coalesce(t.c.qc_ng, 0)), 0).label("total_qc_ng"),
            )
            .select_from(t)
            .where(t.c.created_at.between(start_date, end_date))
        )
        rows = await self._handle.query(statement)
        return RecordStats.model_validate(rows[0]) if rows else RecordStats()
