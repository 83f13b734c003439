"""Public port exports for concrete store adapters."""

from .db_api import AsyncDatabase, Dialect, SQLiteDialect, open_sqlite

__all__ = [
    "AsyncDatabase",
    "Dialect",
    "SQLiteDialect",
    "open_sqlite",
]
