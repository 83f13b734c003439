"""Port contracts the executor, bindings, and write path depend on."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, List, Optional, Protocol

from .descriptors import QueryDescriptor, QueryResult
from .types import Cursor, MaybeRow, QueryParams, RowMapping


class DialectPort(Protocol):
    """Dialect behavior required by the write path."""

    name: str
    paramstyle: str
    supports_returning: bool

    def q(self, ident: str) -> str: ...

    def placeholder(self, key: str) -> str: ...

    def returning_clause(self, pk_name: str) -> str: ...


class AsyncDatabasePort(Protocol):
    """Async database adapter behavior required by the executor and sessions."""

    dialect: DialectPort

    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    async def execute(self, sql: str, params: QueryParams = None) -> Any: ...

    async def execute_rowcount(self, sql: str, params: QueryParams = None) -> int: ...

    async def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow: ...

    async def fetchall(self, sql: str, params: QueryParams = None) -> List[RowMapping]: ...


class ExecutorPort(Protocol):
    """Query execution behavior required by live and paged bindings."""

    async def execute(self, descriptor: QueryDescriptor) -> QueryResult[Any]: ...


QueryFactory = Callable[..., Optional[QueryDescriptor]]
"""`factory(*dependencies)`; returning `None` disables the query."""

PageQueryFactory = Callable[..., Optional[QueryDescriptor]]
"""`factory(cursor, *dependencies)` for one page of a paged binding."""

CursorFn = Callable[[QueryResult[Any]], Optional[Cursor]]
"""Maps the last loaded page to the next cursor; `None` ends the sequence."""
