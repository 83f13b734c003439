"""Public core API: executor, invalidation bus, and query bindings."""

from .binding import BindingState, BindingStatus, LiveQuery
from .bus import InvalidationBus, Subscription, resource_key
from .contracts import AsyncDatabasePort, CursorFn, ExecutorPort, PageQueryFactory, QueryFactory
from .descriptors import Outcome, QueryDescriptor, QueryResult, fingerprint
from .errors import (
    BindingClosed,
    DependencyMisuse,
    ExecutionError,
    LiveQueryError,
    StaleResponseDiscarded,
)
from .executor import QueryExecutor
from .models import DataclassModel, auto_pk_field, model_fields, pk_fields, row_to_model, table_name, to_dict
from .paging import PagedQuery, PagedState
from .session import InvalidatingSession

__all__ = [
    "AsyncDatabasePort",
    "BindingClosed",
    "BindingState",
    "BindingStatus",
    "CursorFn",
    "DataclassModel",
    "DependencyMisuse",
    "ExecutionError",
    "ExecutorPort",
    "InvalidatingSession",
    "InvalidationBus",
    "LiveQuery",
    "LiveQueryError",
    "Outcome",
    "PageQueryFactory",
    "PagedQuery",
    "PagedState",
    "QueryDescriptor",
    "QueryExecutor",
    "QueryFactory",
    "QueryResult",
    "StaleResponseDiscarded",
    "Subscription",
    "auto_pk_field",
    "fingerprint",
    "model_fields",
    "pk_fields",
    "resource_key",
    "row_to_model",
    "table_name",
    "to_dict",
]
