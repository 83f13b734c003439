"""Query descriptors, query results, and dependency fingerprints."""

from __future__ import annotations

from collections.abc import Mapping, Set
from dataclasses import dataclass, fields, is_dataclass
from typing import Any, Generic, Iterable, Iterator, Optional, Sequence, Tuple, Type, TypeVar

from .errors import ExecutionError

R = TypeVar("R")


@dataclass(frozen=True)
class QueryDescriptor:
    """One parameterized statement against the embedded store.

    `parameters` are bound positionally (`?` placeholders). When `row_type`
    is a dataclass, each row is mapped to it; otherwise rows are mappings
    keyed by column name.
    """

    statement: str
    parameters: Tuple[Any, ...] = ()
    row_type: Optional[Type[Any]] = None

    def __post_init__(self) -> None:
        if not isinstance(self.statement, str) or not self.statement.strip():
            raise ValueError("statement must be a non-empty string.")
        if isinstance(self.parameters, (str, bytes, Mapping)):
            raise TypeError("parameters must be an ordered sequence of scalar values.")
        object.__setattr__(self, "parameters", tuple(self.parameters))


@dataclass(frozen=True)
class QueryResult(Generic[R]):
    """Rows returned by one statement, in store order."""

    rows: Tuple[R, ...] = ()
    row_count: int = 0

    @classmethod
    def of(cls, rows: Iterable[R]) -> QueryResult[R]:
        items = tuple(rows)
        return cls(items, len(items))

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0

    def first(self) -> Optional[R]:
        return self.rows[0] if self.rows else None

    def last(self) -> Optional[R]:
        return self.rows[-1] if self.rows else None

    def __len__(self) -> int:
        return self.row_count

    def __iter__(self) -> Iterator[R]:
        return iter(self.rows)


@dataclass(frozen=True)
class Outcome(Generic[R]):
    """Executor result or error, tagged with the generation that requested it."""

    generation: int
    result: Optional[QueryResult[R]] = None
    error: Optional[ExecutionError] = None


def _freeze(value: Any) -> Any:
    if isinstance(value, (str, bytes, int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return (
            "mapping",
            tuple(sorted(((_freeze(k), _freeze(v)) for k, v in value.items()), key=repr)),
        )
    if isinstance(value, Set):
        return ("set", frozenset(_freeze(v) for v in value))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if is_dataclass(value) and not isinstance(value, type):
        return (type(value),) + tuple(_freeze(getattr(value, f.name)) for f in fields(value))
    return value


def fingerprint(dependencies: Sequence[Any]) -> Tuple[Any, ...]:
    """Structural snapshot of a dependency list.

    Structurally equal lists (same values, containers compared by content)
    produce equal fingerprints.
    """

    return tuple(_freeze(d) for d in dependencies)
