"""Internal async helpers shared by the executor, bindings, and store adapter."""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Coroutine, Optional

from ..logging import get_logger

log = get_logger("tasks")


async def _maybe_await(value: Any) -> Any:
    """Await awaitables and return non-awaitable values unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


def _report_failure(task: "asyncio.Task[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        log.error("task %s failed", task.get_name(), exc_info=exc)


def spawn(coro: Coroutine[Any, Any, Any], *, name: Optional[str] = None) -> "asyncio.Task[Any]":
    """Schedule `coro` on the running loop as a new task.

    Never runs any part of `coro` inline. Unexpected task errors are logged.

    Raises:
        RuntimeError: When called without a running event loop.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coro.close()
        raise RuntimeError("live_query bindings require a running asyncio event loop") from None
    task = loop.create_task(coro, name=name)
    task.add_done_callback(_report_failure)
    return task
