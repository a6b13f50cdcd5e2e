from __future__ import annotations

import logging
from typing import Any, ClassVar, Generic, Mapping, Protocol, TypeVar

from pydantic import BaseModel
from sqlalchemy import ColumnElement, Select, Table, delete, insert, select, update

from qcscan.db.session import ExecuteResult, Statement
from qcscan.schemas.capture import UpdatePayload

SchemaT = TypeVar("SchemaT", bound=BaseModel)
logger = logging.getLogger("qcscan.repositories")


class SqlExecutor(Protocol):
    async def query(self, statement: Statement, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]: ...

    async def execute(self, statement: Statement, params: Mapping[str, Any] | None = None) -> ExecuteResult: ...


class BaseRepository(Generic[SchemaT]):
    """Typed facade over one table.

    Repositories hold a reference to a ready ``StorageHandle`` (or an open
    ``StorageTransaction``) and nothing else; every statement goes through its
    ``query``/``execute`` primitives.
    """

    table: ClassVar[Table]
    schema: ClassVar[type[BaseModel]]
    key: ClassVar[str]

    def __init__(self, handle: SqlExecutor) -> None:
        self._handle = handle

    def _key_column(self) -> ColumnElement:
        return self.table.c[self.key]

    def _ordering(self) -> tuple[ColumnElement, ...]:
        return (self.table.c.created_at.desc(),)

    def _select(self, *criteria: ColumnElement) -> Select:
        statement = select(self.table)
        for criterion in criteria:
            statement = statement.where(criterion)
        return statement.order_by(*self._ordering())

    async def _fetch(self, statement: Select) -> list[SchemaT]:
        rows = await self._handle.query(statement)
        return [self.schema.model_validate(row) for row in rows]

    async def _insert(self, values: dict[str, Any]) -> ExecuteResult:
        outcome = await self._handle.execute(insert(self.table).values(**values))
        logger.debug("Insert table=%s last_insert_id=%s", self.table.name, outcome.last_insert_id)
        return outcome

    async def find_by_id(self, key: Any) -> SchemaT | None:
        rows = await self._fetch(select(self.table).where(self._key_column() == key))
        return rows[0] if rows else None

    async def find_all(self, limit: int | None = None, offset: int | None = None) -> list[SchemaT]:
        statement = self._select()
        if limit is not None:
            statement = statement.limit(limit)
            if offset is not None:
                statement = statement.offset(offset)
        return await self._fetch(statement)

    async def update(self, key: Any, changes: UpdatePayload) -> None:
        values = changes.changes()
        if not values:
            logger.debug("Update skipped table=%s key=%s reason=no_changes", self.table.name, key)
            return
        outcome = await self._handle.execute(
            update(self.table).where(self._key_column() == key).values(**values)
        )
        logger.debug(
            "Update table=%s key=%s fields=%s rows_affected=%s",
            self.table.name,
            key,
            sorted(values),
            outcome.rows_affected,
        )

    async def delete(self, key: Any) -> None:
        outcome = await self._handle.execute(delete(self.table).where(self._key_column() == key))
        logger.info("Delete table=%s key=%s rows_affected=%s", self.table.name, key, outcome.rows_affected)
