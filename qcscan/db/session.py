from __future__ import annotations

import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Mapping, Union

from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql.expression import Executable

from qcscan.db.errors import (
    IntegrityViolationError,
    StorageInitError,
    StorageNotReadyError,
    StorageQueryError,
)
from qcscan.utils.metrics import STORE_ERRORS, STORE_OPERATION_DURATION

DEFAULT_SQLITE_PATH = "./data/qcscan.db"
DEFAULT_BUSY_TIMEOUT = 30.0

Base = declarative_base()
logger = logging.getLogger("qcscan.db")

Statement = Union[str, Executable]
Params = Union[Mapping[str, Any], None]
# sqlite3 raises OverflowError outside the DBAPI hierarchy for out-of-range integers.
DRIVER_ERRORS = (SQLAlchemyError, OverflowError)


def resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url
    sqlite_path = os.getenv("SQLITE_PATH", DEFAULT_SQLITE_PATH)
    directory = os.path.dirname(sqlite_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return f"sqlite+aiosqlite:///{sqlite_path}"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class StorageState(str, Enum):
    uninitialized = "uninitialized"
    ready = "ready"
    closed = "closed"
    failed = "failed"


@dataclass(frozen=True)
class ExecuteResult:
    rows_affected: int
    last_insert_id: int | None


def _coerce(statement: Statement) -> Executable:
    if isinstance(statement, str):
        return text(statement)
    return statement


def _observe(operation: str, status: str, started: float) -> None:
    STORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
        time.perf_counter() - started
    )


def _translate(operation: str, exc: Exception) -> StorageQueryError:
    if isinstance(exc, IntegrityError):
        STORE_ERRORS.labels(operation=operation, reason="integrity").inc()
        logger.warning("Integrity violation operation=%s detail=%s", operation, exc.orig)
        return IntegrityViolationError(f"integrity_violation: {exc.orig}", exc)
    STORE_ERRORS.labels(operation=operation, reason=type(exc).__name__).inc()
    logger.warning("Store failure operation=%s error=%s", operation, exc)
    return StorageQueryError(f"{operation}_failed: {exc}", exc)


async def _query_rows(conn: AsyncConnection, statement: Statement, params: Params) -> list[dict[str, Any]]:
    result = await conn.execute(_coerce(statement), dict(params) if params else None)
    return [dict(row) for row in result.mappings().all()]


async def _execute(conn: AsyncConnection, statement: Statement, params: Params) -> ExecuteResult:
    result = await conn.execute(_coerce(statement), dict(params) if params else None)
    return ExecuteResult(rows_affected=result.rowcount, last_insert_id=result.lastrowid)


class StorageTransaction:
    """Both primitives bound to one connection; the owning handle commits or rolls back."""

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection

    async def query(self, statement: Statement, params: Params = None) -> list[dict[str, Any]]:
        started = time.perf_counter()
        try:
            rows = await _query_rows(self._connection, statement, params)
        except DRIVER_ERRORS as exc:
            _observe("query", "error", started)
            raise _translate("query", exc) from exc
        _observe("query", "ok", started)
        return rows

    async def execute(self, statement: Statement, params: Params = None) -> ExecuteResult:
        started = time.perf_counter()
        try:
            outcome = await _execute(self._connection, statement, params)
        except DRIVER_ERRORS as exc:
            _observe("execute", "error", started)
            raise _translate("execute", exc) from exc
        _observe("execute", "ok", started)
        return outcome


class StorageHandle:
    def __init__(self, engine: AsyncEngine, url: str) -> None:
        self._engine: AsyncEngine | None = engine
        self.url = url

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise StorageNotReadyError()
        return self._engine

    async def query(self, statement: Statement, params: Params = None) -> list[dict[str, Any]]:
        engine = self._require_engine()
        started = time.perf_counter()
        try:
            async with engine.connect() as conn:
                rows = await _query_rows(conn, statement, params)
        except DRIVER_ERRORS as exc:
            _observe("query", "error", started)
            raise _translate("query", exc) from exc
        _observe("query", "ok", started)
        return rows

    async def execute(self, statement: Statement, params: Params = None) -> ExecuteResult:
        engine = self._require_engine()
        started = time.perf_counter()
        try:
            async with engine.begin() as conn:
                outcome = await _execute(conn, statement, params)
        except DRIVER_ERRORS as exc:
            _observe("execute", "error", started)
            raise _translate("execute", exc) from exc
        _observe("execute", "ok", started)
        logger.debug("Execute rows_affected=%s last_insert_id=%s", outcome.rows_affected, outcome.last_insert_id)
        return outcome

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StorageTransaction]:
        engine = self._require_engine()
        try:
            async with engine.begin() as conn:
                yield StorageTransaction(conn)
        except DRIVER_ERRORS as exc:
            raise _translate("commit", exc) from exc

    async def ping(self) -> bool:
        rows = await self.query("SELECT 1 AS ok")
        return bool(rows and rows[0]["ok"] == 1)

    async def close(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        await engine.dispose()
        logger.info("Storage closed url=%s", self.url)


class StorageManager:
    def __init__(self, database_url: str | None = None, *, echo: bool | None = None) -> None:
        self._database_url = database_url
        self._echo = echo
        self._handle: StorageHandle | None = None
        self.state = StorageState.uninitialized
        # guards every state transition
        self._lock = asyncio.Lock()

    @property
    def handle(self) -> StorageHandle:
        if self.state is not StorageState.ready or self._handle is None:
            raise StorageNotReadyError()
        return self._handle

    async def initialize(self) -> StorageHandle:
        async with self._lock:
            return await self._initialize()

    async def _initialize(self) -> StorageHandle:
        if self.state is StorageState.ready and self._handle is not None:
            return self._handle
        if self.state is StorageState.failed:
            raise StorageInitError("storage_failed_reinitialize_required")

        from qcscan.models import capture  # noqa: F401  registers the tables on Base

        url = self._database_url or resolve_database_url()
        echo = self._echo if self._echo is not None else os.getenv("SQL_ECHO") == "1"
        timeout = float(os.getenv("SQLITE_BUSY_TIMEOUT", DEFAULT_BUSY_TIMEOUT))
        logger.info("Startup: initializing storage url=%s", url)

        engine: AsyncEngine | None = None
        try:
            engine = create_async_engine(url, echo=echo, connect_args={"timeout": timeout})
            event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
            async with engine.begin() as conn:
                enabled = (await conn.execute(text("PRAGMA foreign_keys"))).scalar()
                if enabled != 1:
                    raise StorageInitError("foreign_keys_unavailable")
                await conn.run_sync(Base.metadata.create_all)
        except StorageInitError:
            await self._fail(engine)
            raise
        except (SQLAlchemyError, OSError) as exc:
            logger.exception("Storage initialization failed url=%s", url)
            await self._fail(engine)
            raise StorageInitError("storage_init_failed") from exc

        self._handle = StorageHandle(engine, url)
        self.state = StorageState.ready
        logger.info("Storage ready url=%s", url)
        return self._handle

    async def _fail(self, engine: AsyncEngine | None) -> None:
        self.state = StorageState.failed
        if engine is not None:
            await engine.dispose()

    async def close(self) -> None:
        async with self._lock:
            await self._close()

    async def _close(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            await handle.close()
        if self.state is StorageState.ready:
            self.state = StorageState.closed

    async def reinitialize(self) -> StorageHandle:
        async with self._lock:
            await self._close()
            self.state = StorageState.uninitialized
            return await self._initialize()


storage = StorageManager()
