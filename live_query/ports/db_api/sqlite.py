"""Non-blocking SQLite connections via `aiosqlite`."""

from __future__ import annotations

from typing import Optional

import aiosqlite

from ...config import get_config
from ...logging import get_logger
from .async_database import AsyncDatabase
from .dialects import SQLiteDialect

log = get_logger("sqlite")


async def open_sqlite(path: Optional[str] = None) -> AsyncDatabase:
    """Open an `aiosqlite` connection wrapped in `AsyncDatabase`.

    Statements run on aiosqlite's worker thread, so awaiting them never
    blocks the event loop.

    Args:
        path: Database file path; defaults to the configured `database_path`.
    """

    target = path or get_config().database_path
    conn = await aiosqlite.connect(target)
    log.info("opened sqlite database %s", target)
    return AsyncDatabase(conn, SQLiteDialect())
