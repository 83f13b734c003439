"""Error kinds raised by the executor and the query bindings."""

from __future__ import annotations

from typing import Any, Optional, Sequence


class LiveQueryError(Exception):
    """Base class for every error raised by `live_query`."""


class ExecutionError(LiveQueryError):
    """The store rejected or failed a statement.

    Carries the underlying store message; the original exception is chained
    as `__cause__`.
    """

    def __init__(
        self,
        message: str,
        *,
        statement: Optional[str] = None,
        parameters: Optional[Sequence[Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.statement = statement
        self.parameters = tuple(parameters) if parameters is not None else None

    @classmethod
    def wrapping(
        cls,
        exc: BaseException,
        *,
        statement: Optional[str] = None,
        parameters: Optional[Sequence[Any]] = None,
    ) -> "ExecutionError":
        """Build an error for `exc` with `exc` chained as its cause."""

        error = cls(str(exc) or type(exc).__name__, statement=statement, parameters=parameters)
        error.__cause__ = exc
        return error


class StaleResponseDiscarded(LiveQueryError):
    """A response tagged with an older generation reached a binding.

    Used only for the stale-response decision inside bindings.
    """

    def __init__(self, generation: int, current: int):
        super().__init__(
            f"response for generation {generation} discarded (current is {current})"
        )
        self.generation = generation
        self.current = current


class DependencyMisuse(LiveQueryError):
    """A caller-supplied function broke the pagination ordering contract."""


class BindingClosed(LiveQueryError):
    """Operation invoked on a binding that was already torn down."""
