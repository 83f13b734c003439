"""Live query binding: one query's latest state, kept fresh and race-free."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

from ..config import ErrorPolicy, LiveQueryConfig, get_config
from ..logging import get_logger
from .bus import InvalidationBus, Subscription, resource_key
from .contracts import ExecutorPort, QueryFactory
from .descriptors import Outcome, QueryDescriptor, QueryResult, fingerprint
from .errors import BindingClosed, ExecutionError, StaleResponseDiscarded
from .types import ResourceId
from ._async_utils import spawn

log = get_logger("binding")

R = TypeVar("R")
S = TypeVar("S")

_UNSET = object()


class BindingStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class BindingState(Generic[R]):
    """Snapshot handed to consumers of a `LiveQuery`."""

    data: Optional[QueryResult[R]] = None
    is_loading: bool = False
    error: Optional[ExecutionError] = None

    @property
    def status(self) -> BindingStatus:
        if self.is_loading:
            return BindingStatus.LOADING
        if self.error is not None:
            return BindingStatus.FAILED
        if self.data is not None:
            return BindingStatus.SUCCESS
        return BindingStatus.IDLE


class _Binding(Generic[S]):
    """Generation, subscription, and listener machinery shared by bindings."""

    def __init__(
        self,
        executor: ExecutorPort,
        initial_state: S,
        *,
        bus: Optional[InvalidationBus] = None,
        resources: Iterable[ResourceId] = (),
        config: Optional[LiveQueryConfig] = None,
        name: Optional[str] = None,
    ):
        self._executor = executor
        self._bus = bus
        self.config = config if config is not None else get_config()
        self.name = name or type(self).__name__
        self._state = initial_state
        self._generation = 0
        self._fingerprint: Any = _UNSET
        self._dependencies: Tuple[Any, ...] = ()
        self._task: Optional["asyncio.Task[None]"] = None
        self._listeners: List[Callable[[S], None]] = []
        self._subscription: Optional[Subscription] = None
        self._closed = False
        self._requested_resources = resource_key(resources)

    @property
    def state(self) -> S:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def dependencies(self) -> Tuple[Any, ...]:
        return self._dependencies

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def resources(self) -> frozenset:
        if self._subscription is None:
            return frozenset()
        return self._subscription.dependency_key

    def reconcile(self, dependencies: Sequence[Any] = ()) -> bool:
        """Adopt a new dependency list; re-fetch only if its fingerprint changed.

        Returns:
            `True` when a new fetch was started (or the query was disabled).
        """

        self._ensure_open()
        dependencies = tuple(dependencies)
        new_fingerprint = fingerprint(dependencies)
        if new_fingerprint == self._fingerprint:
            return False
        self._dependencies = dependencies
        self._fingerprint = new_fingerprint
        log.debug("%s: dependencies changed to %r", self.name, dependencies)
        self._on_dependencies_changed()
        return True

    def set_resources(self, resources: Iterable[ResourceId]) -> None:
        """Replace the resource interest this binding is invalidated by."""

        self._ensure_open()
        key = resource_key(resources)
        current = self._subscription
        if current is not None and current.dependency_key == key:
            return
        if key and self._bus is None:
            raise ValueError("resources require an InvalidationBus.")
        if current is not None and self._bus is not None:
            self._bus.unsubscribe(current)
            self._subscription = None
        if key and self._bus is not None:
            self._subscription = self._bus.subscribe(key, self._on_invalidated)

    def add_listener(self, listener: Callable[[S], None]) -> Callable[[], None]:
        """Call `listener(state)` after every state change; returns a remover."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def settled(self) -> S:
        """Wait until no fetch is in flight and return the resulting state."""

        while self._task is not None and not self._task.done():
            await self._task
        return self._state

    def close(self) -> None:
        """Tear down: stop invalidation delivery and drop late responses."""

        if self._closed:
            return
        if self._subscription is not None and self._bus is not None:
            self._bus.unsubscribe(self._subscription)
        self._subscription = None
        self._generation += 1
        self._closed = True
        self._listeners.clear()
        log.debug("%s: closed", self.name)

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _activate(self, dependencies: Sequence[Any]) -> None:
        # Last step of construction: subscribe, then run the first reconcile.
        try:
            self.set_resources(self._requested_resources)
            self.reconcile(dependencies)
        except BaseException:
            self.close()
            raise

    def _ensure_open(self) -> None:
        if self._closed:
            raise BindingClosed(f"{self.name} is closed.")

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _check_current(self, generation: int) -> None:
        if self._closed or generation != self._generation:
            raise StaleResponseDiscarded(generation, self._generation)

    def _set_state(self, state: S) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    def _dispatch(self, generation: int, descriptor: QueryDescriptor, *context: Any) -> "asyncio.Task[None]":
        self._task = spawn(
            self._run(generation, descriptor, *context),
            name=f"{self.name}#{generation}",
        )
        return self._task

    async def _run(self, generation: int, descriptor: QueryDescriptor, *context: Any) -> None:
        try:
            result = await self._executor.execute(descriptor)
        except ExecutionError as exc:
            outcome: Outcome[Any] = Outcome(generation, error=exc)
        except Exception as exc:
            log.warning("%s: executor raised %r", self.name, exc)
            error = ExecutionError.wrapping(
                exc, statement=descriptor.statement, parameters=descriptor.parameters
            )
            outcome = Outcome(generation, error=error)
        else:
            outcome = Outcome(generation, result=result)
        try:
            self._check_current(outcome.generation)
        except StaleResponseDiscarded as stale:
            log.debug("%s: %s", self.name, stale)
            return
        self._apply(outcome, *context)

    def _on_invalidated(self, resource: ResourceId) -> None:
        if self._closed:
            return
        log.debug("%s: invalidated by %r", self.name, resource)
        self._on_invalidation()

    def _on_dependencies_changed(self) -> None:
        raise NotImplementedError

    def _on_invalidation(self) -> None:
        raise NotImplementedError

    def _apply(self, outcome: Outcome[Any], *context: Any) -> None:
        raise NotImplementedError


class LiveQuery(_Binding[BindingState[R]]):
    """Binds one query's loading/data/error state to its dependencies.

    `factory(*dependencies)` builds the descriptor; `None` disables the query.
    A fetch starts on construction, whenever `reconcile` sees a structurally
    different dependency list, on `refresh()`, and on every invalidation of a
    subscribed resource. Only the response of the latest fetch is applied.

    Must be created while an asyncio event loop is running.
    """

    def __init__(
        self,
        executor: ExecutorPort,
        factory: QueryFactory,
        dependencies: Sequence[Any] = (),
        *,
        bus: Optional[InvalidationBus] = None,
        resources: Iterable[ResourceId] = (),
        config: Optional[LiveQueryConfig] = None,
        error_policy: Optional[ErrorPolicy] = None,
        name: Optional[str] = None,
    ):
        super().__init__(
            executor,
            BindingState(),
            bus=bus,
            resources=resources,
            config=config,
            name=name,
        )
        self._factory = factory
        self.error_policy = ErrorPolicy(error_policy or self.config.error_policy)
        self._activate(dependencies)

    def refresh(self) -> Optional["asyncio.Task[None]"]:
        """Re-run the current query regardless of dependency equality."""

        self._ensure_open()
        log.info("%s: refresh", self.name)
        return self._start()

    def _on_dependencies_changed(self) -> None:
        self._start()

    def _on_invalidation(self) -> None:
        self._start()

    def _start(self) -> Optional["asyncio.Task[None]"]:
        generation = self._next_generation()
        descriptor = self._factory(*self._dependencies)
        if descriptor is None:
            self._task = None
            self._set_state(BindingState())
            return None
        self._set_state(replace(self._state, is_loading=True))
        return self._dispatch(generation, descriptor)

    def _apply(self, outcome: Outcome[R], *context: Any) -> None:
        if outcome.error is None:
            self._set_state(BindingState(data=outcome.result))
            return
        data = self._state.data if self.error_policy is ErrorPolicy.KEEP_DATA else None
        self._set_state(BindingState(data=data, error=outcome.error))
