"""Write-path session that publishes invalidations after commit."""

from __future__ import annotations

import contextlib
from contextlib import AbstractAsyncContextManager
from typing import Any, Iterable, List, Optional, Sequence, TypeVar

from ..logging import get_logger
from .bus import InvalidationBus, resource_key
from .contracts import AsyncDatabasePort
from .models import DataclassModel, auto_pk_field, model_fields, table_name, to_dict
from .types import ResourceId

log = get_logger("session")

T = TypeVar("T", bound=DataclassModel)


class InvalidatingSession:
    """Async transaction scope that announces touched resources once committed.

    Every write names the resources it touches. They are published on the bus
    only after the surrounding transaction commits; a rollback publishes
    nothing. Writes issued outside `begin()` run in their own transaction.
    """

    def __init__(self, db: AsyncDatabasePort, bus: InvalidationBus):
        self.db = db
        self.bus = bus
        self.d = db.dialect
        self._active_tx: AbstractAsyncContextManager[None] | None = None
        self._touched: List[ResourceId] = []

    @property
    def in_transaction(self) -> bool:
        return self._active_tx is not None

    @contextlib.asynccontextmanager
    async def begin(self):
        """Run writes in one commit/rollback transaction block."""

        async with self:
            yield self

    def touch(self, *resources: ResourceId) -> None:
        """Mark resources as changed by the current (or an immediate) write."""

        key = resource_key(resources)
        if not key:
            return
        if self._active_tx is None:
            self.bus.publish(*resources)
            return
        for resource in resources:
            if resource not in self._touched:
                self._touched.append(resource)

    async def execute(
        self,
        statement: str,
        parameters: Sequence[Any] = (),
        *,
        touches: Iterable[ResourceId],
    ) -> int:
        """Run one write statement and return the affected row count."""

        touched = tuple(touches)
        if not touched:
            raise ValueError("Write statements must name the resources they touch.")
        if self._active_tx is None:
            async with self.begin():
                return await self._execute(statement, parameters, touched)
        return await self._execute(statement, parameters, touched)

    async def insert(self, obj: T) -> T:
        """Insert a dataclass row and populate its auto primary key."""

        if self._active_tx is None:
            async with self.begin():
                return await self._insert(obj)
        return await self._insert(obj)

    async def _execute(
        self,
        statement: str,
        parameters: Sequence[Any],
        touched: Sequence[ResourceId],
    ) -> int:
        count = await self.db.execute_rowcount(statement, tuple(parameters))
        self.touch(*touched)
        return count

    async def _insert(self, obj: T) -> T:
        model = type(obj)
        table = table_name(model)
        data = to_dict(obj)
        auto_pk = auto_pk_field(model) if _has_pk(model) else None
        columns = [f.name for f in model_fields(model)]
        if auto_pk is not None and data.get(auto_pk.name) is None:
            columns = [name for name in columns if name != auto_pk.name]

        column_sql = ", ".join(self.d.q(name) for name in columns)
        placeholders = ", ".join(self.d.placeholder(name) for name in columns)
        sql = f"INSERT INTO {self.d.q(table)} ({column_sql}) VALUES ({placeholders})"
        params = [data[name] for name in columns]

        if auto_pk is not None and data.get(auto_pk.name) is None and self.d.supports_returning:
            row = await self.db.fetchone(sql + self.d.returning_clause(auto_pk.name) + ";", params)
            if row and auto_pk.name in row:
                setattr(obj, auto_pk.name, row[auto_pk.name])
        else:
            await self.db.execute_rowcount(sql + ";", params)
        self.touch(table)
        return obj

    async def __aenter__(self) -> InvalidatingSession:
        if self._active_tx is not None:
            raise RuntimeError("session transaction is already active")
        tx = self.db.transaction()
        await tx.__aenter__()
        self._active_tx = tx
        self._touched = []
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> Optional[bool]:
        tx = self._active_tx
        touched, self._touched = self._touched, []
        self._active_tx = None
        if tx is None:
            return None
        result = await tx.__aexit__(exc_type, exc, tb)
        if exc_type is None and touched:
            log.debug("committed; invalidating %s", touched)
            self.bus.publish(*touched)
        elif touched:
            log.debug("rolled back; %s not invalidated", touched)
        return result


def _has_pk(model: type) -> bool:
    return any(f.metadata.get("pk") for f in model_fields(model))
