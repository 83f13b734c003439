"""Async store adapter behind the executor and the write session."""

from __future__ import annotations

import contextlib
from typing import Any, List

from ...core._async_utils import _maybe_await
from ...core.types import MaybeRow, QueryParams, RowMapping, Rows
from .dialects import Dialect


class AsyncDatabase:
    """One SQLite connection seen through awaitable calls.

    Accepts an `aiosqlite` connection or a plain `sqlite3` one; awaitable
    results are awaited, plain ones used as-is. Rows come back as dicts keyed
    by column name.
    """

    def __init__(self, conn: Any, dialect: Dialect):
        self._closed = False
        self.conn = conn
        self.dialect = dialect

    def _open_conn(self) -> Any:
        if self._closed:
            raise RuntimeError("connection is closed")
        return self.conn

    @contextlib.asynccontextmanager
    async def transaction(self):
        """Commit on normal exit, roll back when the block raises."""

        conn = self._open_conn()
        # Autocommit connections need an explicit BEGIN to group writes.
        if _isolation_level(conn) is None and not getattr(conn, "in_transaction", False):
            await _maybe_await(conn.execute("BEGIN"))
        try:
            yield
        except BaseException:
            await _maybe_await(conn.rollback())
            raise
        else:
            await _maybe_await(conn.commit())

    async def execute(self, sql: str, params: QueryParams = None) -> Any:
        """Run one statement and return its open cursor."""

        conn = self._open_conn()
        cur = await _maybe_await(conn.cursor())
        try:
            await _maybe_await(cur.execute(sql, () if params is None else params))
        except BaseException:
            await _maybe_await(cur.close())
            raise
        return cur

    async def execute_rowcount(self, sql: str, params: QueryParams = None) -> int:
        """Run a write statement and return the affected row count."""

        cur = await self.execute(sql, params)
        try:
            return int(cur.rowcount)
        finally:
            await _maybe_await(cur.close())

    async def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow:
        """Used for `INSERT ... RETURNING`; `None` when nothing came back."""

        cur = await self.execute(sql, params)
        try:
            row = await _maybe_await(cur.fetchone())
            return None if row is None else _as_dict(_columns(cur), row)
        finally:
            await _maybe_await(cur.close())

    async def fetchall(self, sql: str, params: QueryParams = None) -> Rows:
        cur = await self.execute(sql, params)
        try:
            rows = await _maybe_await(cur.fetchall())
            columns = _columns(cur)
            return [_as_dict(columns, row) for row in rows]
        finally:
            await _maybe_await(cur.close())

    async def aclose(self) -> None:
        """Close the connection; repeated calls are no-ops."""

        if self._closed:
            return
        self._closed = True
        await _maybe_await(self.conn.close())

    async def __aenter__(self) -> AsyncDatabase:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()


def _isolation_level(conn: Any) -> Any:
    return getattr(conn, "isolation_level", "")


def _columns(cursor: Any) -> List[str]:
    return [d[0] for d in cursor.description or ()]


def _as_dict(columns: List[str], row: Any) -> RowMapping:
    # Both plain tuples and sqlite3.Row iterate in column order.
    return dict(zip(columns, row, strict=True))
