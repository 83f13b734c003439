"""Query executor: runs descriptors against the store and shapes results."""

from __future__ import annotations

from typing import Any

from ..logging import get_logger
from .contracts import AsyncDatabasePort
from .descriptors import QueryDescriptor, QueryResult
from .errors import ExecutionError
from .models import row_to_model

log = get_logger("executor")


class QueryExecutor:
    """Sends parameterized statements to the embedded store.

    Safe to share between bindings: each call is an independent awaitable and
    nothing is cached here.
    """

    def __init__(self, db: AsyncDatabasePort):
        self.db = db
        self.calls = 0

    async def execute(self, descriptor: QueryDescriptor) -> QueryResult[Any]:
        """Run one statement and return its rows and row count.

        Raises:
            ExecutionError: The store rejected or failed the statement, or its
                rows do not fit `row_type`.
        """

        self.calls += 1
        log.debug("execute #%d: %s %r", self.calls, descriptor.statement, descriptor.parameters)
        try:
            rows = await self.db.fetchall(descriptor.statement, descriptor.parameters)
            if descriptor.row_type is not None:
                return QueryResult.of([row_to_model(descriptor.row_type, row) for row in rows])
            return QueryResult.of([dict(row) for row in rows])
        except Exception as exc:
            log.warning("statement failed: %s", exc)
            raise ExecutionError(
                str(exc),
                statement=descriptor.statement,
                parameters=descriptor.parameters,
            ) from exc
