"""Shared core type aliases used across contracts, executor, and bindings."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

NamedParams = Dict[str, Any]
PositionalParams = Sequence[Any]
QueryParams = Union[NamedParams, PositionalParams, None]

RowMapping = Mapping[str, Any]
Rows = List[RowMapping]
MaybeRow = Optional[RowMapping]

ResourceId = str
Cursor = Any
