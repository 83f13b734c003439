"""Paginated query binding: cursor-driven pages over an ordered result set."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Generic, Iterable, Optional, Sequence, Tuple, TypeVar

from ..config import LiveQueryConfig
from ..logging import get_logger
from .binding import _Binding
from .bus import InvalidationBus
from .contracts import CursorFn, ExecutorPort, PageQueryFactory
from .descriptors import Outcome, QueryResult
from .errors import DependencyMisuse, ExecutionError
from .types import Cursor, ResourceId

log = get_logger("paging")

R = TypeVar("R")


@dataclass(frozen=True)
class PagedState(Generic[R]):
    """Snapshot handed to consumers of a `PagedQuery`."""

    pages: Tuple[QueryResult[R], ...] = ()
    is_finished: bool = False
    is_loading: bool = False
    is_refreshing: bool = False
    error: Optional[ExecutionError] = None

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def rows(self) -> Tuple[R, ...]:
        """All loaded rows, page after page."""

        return tuple(row for page in self.pages for row in page.rows)


class PagedQuery(_Binding[PagedState[R]]):
    """Loads an ordered result set one page at a time.

    `factory(cursor, *dependencies)` builds the query for the page that starts
    after `cursor`; `next_cursor(page)` derives the cursor following a loaded
    page. The first page uses `initial_cursor`. A page with fewer than
    `page_size` rows ends the sequence, as does `next_cursor` returning `None`.

    An invalidation reloads from the first page without raising
    `is_refreshing`. Loaded pages stay visible until that page arrives; it then
    replaces all of them, so the list shrinks back to one page and the consumer
    fetches further pages again as it scrolls.

    Cursors must move strictly forward (backward when `descending`) in the
    same order the query sorts by; a regression raises `DependencyMisuse`.
    """

    def __init__(
        self,
        executor: ExecutorPort,
        factory: PageQueryFactory,
        next_cursor: CursorFn,
        dependencies: Sequence[Any] = (),
        *,
        page_size: Optional[int] = None,
        initial_cursor: Cursor = None,
        descending: bool = False,
        bus: Optional[InvalidationBus] = None,
        resources: Iterable[ResourceId] = (),
        config: Optional[LiveQueryConfig] = None,
        name: Optional[str] = None,
    ):
        super().__init__(
            executor,
            PagedState(),
            bus=bus,
            resources=resources,
            config=config,
            name=name,
        )
        page_size = self.config.page_size if page_size is None else page_size
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
            raise ValueError(f"page_size must be a positive int, got {page_size!r}.")
        self.page_size = page_size
        self._factory = factory
        self._next_cursor = next_cursor
        self._initial_cursor = initial_cursor
        self._descending = descending
        self._last_cursor: Cursor = initial_cursor
        self._activate(dependencies)

    def fetch_next_page(self) -> Optional["asyncio.Task[None]"]:
        """Load the page after the last loaded one.

        No-op (returns `None`) while a fetch is in flight or once finished.

        Raises:
            DependencyMisuse: `next_cursor` did not advance past the cursor of
                the last loaded page.
        """

        self._ensure_open()
        state = self._state
        if state.is_finished or state.is_loading:
            return None
        if not state.pages:
            return self._restart(refreshing=False)

        cursor = self._next_cursor(state.pages[-1])
        if cursor is None:
            log.debug("%s: cursor function ended the sequence", self.name)
            self._set_state(replace(state, is_finished=True))
            return None
        self._check_order(cursor)

        generation = self._next_generation()
        descriptor = self._factory(cursor, *self._dependencies)
        if descriptor is None:
            return self._disable()
        self._set_state(replace(state, is_loading=True))
        return self._dispatch(generation, descriptor, cursor, False)

    def refresh(self) -> Optional["asyncio.Task[None]"]:
        """Drop every page and load the first one again."""

        self._ensure_open()
        log.info("%s: refresh", self.name)
        return self._restart(refreshing=True)

    def _on_dependencies_changed(self) -> None:
        self._restart(refreshing=False)

    def _on_invalidation(self) -> None:
        # Loaded pages stay visible until the new first page replaces them.
        self._restart(refreshing=False, keep_pages=True)

    def _restart(self, *, refreshing: bool, keep_pages: bool = False) -> Optional["asyncio.Task[None]"]:
        generation = self._next_generation()
        cursor = self._initial_cursor
        descriptor = self._factory(cursor, *self._dependencies)
        if descriptor is None:
            return self._disable()
        state = self._state
        self._set_state(
            PagedState(
                pages=state.pages if keep_pages else (),
                is_finished=state.is_finished if keep_pages else False,
                is_loading=True,
                is_refreshing=refreshing,
                error=state.error,
            )
        )
        return self._dispatch(generation, descriptor, cursor, True)

    def _disable(self) -> None:
        self._task = None
        self._set_state(PagedState(is_finished=True))
        return None

    def _check_order(self, cursor: Cursor) -> None:
        previous = self._last_cursor
        if previous is None:
            return
        try:
            advanced = cursor < previous if self._descending else cursor > previous
        except TypeError:
            raise DependencyMisuse(
                f"{self.name}: cursor {cursor!r} is not comparable with {previous!r}."
            ) from None
        if not advanced:
            direction = "before" if self._descending else "after"
            raise DependencyMisuse(
                f"{self.name}: next cursor {cursor!r} is not {direction} {previous!r}; "
                "pages must follow the query's ordering key."
            )

    def _apply(self, outcome: Outcome[R], *context: Any) -> None:
        cursor, restart = context
        state = self._state
        if outcome.error is not None:
            log.debug("%s: page fetch failed: %s", self.name, outcome.error)
            self._set_state(
                replace(state, is_loading=False, is_refreshing=False, error=outcome.error)
            )
            return

        page = outcome.result if outcome.result is not None else QueryResult()
        pages = (page,) if restart else state.pages + (page,)
        self._last_cursor = cursor
        self._set_state(
            PagedState(
                pages=pages,
                is_finished=page.row_count < self.page_size,
            )
        )
