"""Persistence gateway: table-level operations over SQL or a local JSON store."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path
from typing import Any, NamedTuple, Protocol
from uuid import uuid4

from fastapi import Depends
from pydantic_core import to_jsonable_python
from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import Base, SessionLocal, get_db_session, ping_database
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Filters = Mapping[str, Any]

_MULTI_VALUE_TYPES = (list, tuple, set, frozenset)

# Local-mode keys mirror the browser storage layout of the web client.
_LOCAL_STORE_KEYS = {
    "booking_cancellations": "mock_cancellations",
    "booking_modifications": "mock_modifications",
}


def local_store_key(table: str) -> str:
    """Return local store key holding rows of a table."""
    return _LOCAL_STORE_KEYS.get(table, f"mock_{table}")


class PersistenceBackend(Protocol):
    """Operations every storage backend provides to repositories."""

    async def list(
        self,
        table: str,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Row]:
        """Return rows matching filters."""

    async def count(self, table: str, filters: Filters | None = None) -> int:
        """Count rows matching filters."""

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        """Insert rows and return them with generated fields."""

    async def update(self, table: str, patch: Mapping[str, Any], filters: Filters) -> list[Row]:
        """Apply patch to matching rows and return affected rows."""

    async def delete(self, table: str, filters: Filters) -> int:
        """Delete matching rows and return how many were removed."""

    def savepoint(self) -> AbstractAsyncContextManager[None]:
        """Scope whose writes are discarded if it raises."""

    async def ping(self) -> None:
        """Raise if the backend cannot serve queries."""


class SqlAlchemyBackend:
    """Relational backend issuing SQLAlchemy Core statements on ORM tables."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _table(name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError as exc:
            raise ValueError(f"Unknown table: {name}") from exc

    @staticmethod
    def _where(table: Table, filters: Filters | None) -> list:
        clauses = []
        for column_name, value in (filters or {}).items():
            column = table.c[column_name]
            if value is None:
                clauses.append(column.is_(None))
            elif isinstance(value, _MULTI_VALUE_TYPES):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return clauses

    async def list(
        self,
        table: str,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Row]:
        sa_table = self._table(table)
        stmt = select(sa_table).where(*self._where(sa_table, filters))
        if order_by is not None:
            column = sa_table.c[order_by]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        result = await self.session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def count(self, table: str, filters: Filters | None = None) -> int:
        sa_table = self._table(table)
        stmt = select(func.count()).select_from(sa_table).where(*self._where(sa_table, filters))
        return int((await self.session.scalar(stmt)) or 0)

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        if not rows:
            return []
        sa_table = self._table(table)
        stmt = insert(sa_table).returning(*sa_table.c, sort_by_parameter_order=True)
        result = await self.session.execute(stmt, [dict(row) for row in rows])
        return [dict(row) for row in result.mappings().all()]

    async def update(self, table: str, patch: Mapping[str, Any], filters: Filters) -> list[Row]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        sa_table = self._table(table)
        stmt = (
            update(sa_table)
            .where(*self._where(sa_table, filters))
            .values(**dict(patch))
            .returning(*sa_table.c)
        )
        result = await self.session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]

    async def delete(self, table: str, filters: Filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        sa_table = self._table(table)
        result = await self.session.execute(delete(sa_table).where(*self._where(sa_table, filters)))
        return int(result.rowcount or 0)

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        async with self.session.begin_nested():
            yield

    async def ping(self) -> None:
        await ping_database()


class LocalJsonBackend:
    """Offline backend keeping one JSON array per table key in a single file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    def _load(self) -> dict[str, list[Row]]:
        if not self.path.exists():
            return {}
        content = self.path.read_text(encoding="utf-8")
        if not content.strip():
            return {}
        return json.loads(content)

    def _dump(self, data: dict[str, list[Row]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self.path)

    @staticmethod
    def _encode(value: Any) -> Any:
        return to_jsonable_python(value)

    @classmethod
    def _matches(cls, row: Row, filters: Filters | None) -> bool:
        for key, expected in (filters or {}).items():
            actual = row.get(key)
            if expected is None:
                if actual is not None:
                    return False
            elif isinstance(expected, _MULTI_VALUE_TYPES):
                if actual not in [cls._encode(item) for item in expected]:
                    return False
            elif actual != cls._encode(expected):
                return False
        return True

    async def list(
        self,
        table: str,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Row]:
        async with self._lock:
            rows = self._load().get(local_store_key(table), [])
        matched = [row for row in rows if self._matches(row, filters)]
        if order_by is not None:
            present = [row for row in matched if row.get(order_by) is not None]
            missing = [row for row in matched if row.get(order_by) is None]
            present.sort(key=lambda row: row[order_by], reverse=descending)
            matched = present + missing
        if offset:
            matched = matched[offset:]
        if limit is not None:
            matched = matched[:limit]
        return matched

    async def count(self, table: str, filters: Filters | None = None) -> int:
        return len(await self.list(table, filters))

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        if not rows:
            return []
        now = self._encode(utc_now())
        created: list[Row] = []
        for row in rows:
            encoded = self._encode(dict(row))
            encoded.setdefault("id", str(uuid4()))
            encoded.setdefault("created_at", now)
            encoded.setdefault("updated_at", now)
            created.append(encoded)

        async with self._lock:
            data = self._load()
            data.setdefault(local_store_key(table), []).extend(created)
            self._dump(data)
        return [dict(row) for row in created]

    async def update(self, table: str, patch: Mapping[str, Any], filters: Filters) -> list[Row]:
        if not filters:
            raise ValueError("Refusing to update without filters")
        encoded_patch = self._encode(dict(patch))
        encoded_patch["updated_at"] = self._encode(utc_now())

        affected: list[Row] = []
        async with self._lock:
            data = self._load()
            for row in data.get(local_store_key(table), []):
                if self._matches(row, filters):
                    row.update(encoded_patch)
                    affected.append(dict(row))
            if affected:
                self._dump(data)
        return affected

    async def delete(self, table: str, filters: Filters) -> int:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        async with self._lock:
            data = self._load()
            rows = data.get(local_store_key(table), [])
            kept = [row for row in rows if not self._matches(row, filters)]
            removed = len(rows) - len(kept)
            if removed:
                data[local_store_key(table)] = kept
                self._dump(data)
        return removed

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        # Each local write is already persisted atomically on its own.
        yield

    async def ping(self) -> None:
        async with self._lock:
            self._load()


class BackendProvider(NamedTuple):
    """Request dependency, readiness probe and standalone unit of work for the configured backend."""

    dependency: Callable[..., AsyncGenerator[PersistenceBackend, None]]
    ping: Callable[[], Awaitable[None]]
    unit_of_work: Callable[[], AbstractAsyncContextManager[PersistenceBackend]]


def build_backend_provider(settings: Settings) -> BackendProvider:
    """Select the storage backend once from configuration."""
    if settings.persistence_backend == "local":
        store = LocalJsonBackend(Path(settings.local_store_path))
        logger.info("Using local JSON persistence at %s", store.path)

        async def _local_backend() -> AsyncGenerator[PersistenceBackend, None]:
            yield store

        return BackendProvider(
            dependency=_local_backend,
            ping=store.ping,
            unit_of_work=asynccontextmanager(_local_backend),
        )

    async def _sql_backend(
        session: AsyncSession = Depends(get_db_session),
    ) -> AsyncGenerator[PersistenceBackend, None]:
        yield SqlAlchemyBackend(session)

    @asynccontextmanager
    async def _sql_unit_of_work() -> AsyncIterator[PersistenceBackend]:
        async with SessionLocal() as session:
            try:
                yield SqlAlchemyBackend(session)
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return BackendProvider(dependency=_sql_backend, ping=ping_database, unit_of_work=_sql_unit_of_work)


backend_provider = build_backend_provider(get_settings())
get_persistence_backend = backend_provider.dependency
