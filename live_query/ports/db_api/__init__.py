"""DB-API adapter and dialect exports."""

from .async_database import AsyncDatabase
from .dialects import Dialect, SQLiteDialect
from .sqlite import open_sqlite

__all__ = [
    "AsyncDatabase",
    "Dialect",
    "SQLiteDialect",
    "open_sqlite",
]
