"""Invalidation bus: resource-keyed publish/subscribe for stale-data signals."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, FrozenSet, Iterable, List, Optional, Tuple, Union

from ..logging import get_logger
from .types import ResourceId

log = get_logger("bus")

Notify = Callable[[ResourceId], None]


def resource_key(resources: Union[ResourceId, Iterable[ResourceId]]) -> FrozenSet[ResourceId]:
    """Normalize one resource id or an iterable of ids to a frozen key."""

    items = (resources,) if isinstance(resources, str) else tuple(resources)
    for item in items:
        if not isinstance(item, str) or not item:
            raise TypeError(f"Resource ids must be non-empty strings, got {item!r}.")
    return frozenset(items)


@dataclass(eq=False)
class Subscription:
    """Live interest of one binding in a set of resources."""

    dependency_key: FrozenSet[ResourceId]
    notify: Notify
    active: bool = True


class InvalidationBus:
    """Delivers invalidation events to subscriptions keyed by resource id.

    Deliveries run synchronously inside `publish`. A `publish` made while a
    delivery is running is queued and delivered after it, never nested.
    """

    def __init__(self) -> None:
        self._subscriptions: List[Subscription] = []
        self._pending: Deque[Tuple[ResourceId, ...]] = deque()
        self._delivering = False

    def subscribe(
        self,
        dependency_key: Union[ResourceId, Iterable[ResourceId]],
        notify: Notify,
    ) -> Subscription:
        """Register `notify` for every resource in `dependency_key`."""

        key = resource_key(dependency_key)
        if not key:
            raise ValueError("dependency_key must name at least one resource.")
        if not callable(notify):
            raise TypeError("notify must be callable.")
        subscription = Subscription(key, notify)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription; unknown or already removed handles are ignored."""

        if not subscription.active:
            return
        subscription.active = False
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    def subscriber_count(self, resource_id: Optional[ResourceId] = None) -> int:
        if resource_id is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions if resource_id in s.dependency_key)

    def publish(self, *resource_ids: ResourceId) -> None:
        """Notify every live subscription interested in any of `resource_ids`.

        Each matching subscription is notified once per call, with the first
        matching id. If a callback raises, remaining subscriptions are still
        notified and the first error is re-raised afterwards.
        """

        ids = tuple(dict.fromkeys(resource_ids))
        resource_key(ids)
        if not ids:
            return
        self._pending.append(ids)
        if self._delivering:
            log.debug("publish %s queued behind running delivery", ids)
            return

        self._delivering = True
        errors: List[Exception] = []
        try:
            while self._pending:
                errors.extend(self._deliver(self._pending.popleft()))
        finally:
            self._delivering = False
        if errors:
            raise errors[0]

    def _deliver(self, ids: Tuple[ResourceId, ...]) -> List[Exception]:
        log.debug("publish %s", ids)
        errors: List[Exception] = []
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            matched = next((r for r in ids if r in subscription.dependency_key), None)
            if matched is None:
                continue
            try:
                subscription.notify(matched)
            except Exception as exc:
                log.error("invalidation callback for %r failed", matched, exc_info=exc)
                errors.append(exc)
        return errors
