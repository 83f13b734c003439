"""Reactive SQLite query bindings with invalidation and cursor pagination."""

from .config import ErrorPolicy, LiveQueryConfig, get_config, load_config
from .core import (
    BindingClosed,
    BindingState,
    BindingStatus,
    DependencyMisuse,
    ExecutionError,
    InvalidatingSession,
    InvalidationBus,
    LiveQuery,
    LiveQueryError,
    PagedQuery,
    PagedState,
    QueryDescriptor,
    QueryExecutor,
    QueryResult,
    Subscription,
    fingerprint,
)
from .ports import AsyncDatabase, Dialect, SQLiteDialect, open_sqlite

__all__ = [
    "AsyncDatabase",
    "BindingClosed",
    "BindingState",
    "BindingStatus",
    "DependencyMisuse",
    "Dialect",
    "ErrorPolicy",
    "ExecutionError",
    "InvalidatingSession",
    "InvalidationBus",
    "LiveQuery",
    "LiveQueryConfig",
    "LiveQueryError",
    "PagedQuery",
    "PagedState",
    "QueryDescriptor",
    "QueryExecutor",
    "QueryResult",
    "SQLiteDialect",
    "Subscription",
    "fingerprint",
    "get_config",
    "load_config",
    "open_sqlite",
]
