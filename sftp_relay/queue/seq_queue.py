"""Awaitable-friendly sequential work queue.

Units of work run strictly one at a time, in the order they were pushed. The
next unit is always started on a fresh event-loop turn so that a finishing unit
never re-enters the queue from its own stack.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Deque, List, Optional, Union

LOGGER = logging.getLogger(__name__)

TaskFn = Callable[[], Union[Any, Awaitable[Any]]]
Hook = Callable[[], Optional[Awaitable[None]]]


class QueueClosedError(RuntimeError):
    """Raised when work is pushed onto a queue that has been cancelled."""


@dataclass
class QueuedTask:
    """A pending unit of work and the future handed back to its caller."""

    fn: TaskFn
    future: asyncio.Future

    def done(self, value: Any) -> None:
        if not self.future.done():
            self.future.set_result(value)

    def error(self, exc: BaseException) -> None:
        if not self.future.done():
            self.future.set_exception(exc)

    def cancel(self) -> None:
        # Cancellation is not a failure: the caller simply gets no value.
        if not self.future.done():
            self.future.set_result(None)


def _log_hook_failure(event: str, future: asyncio.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        LOGGER.error("Queue %s hook failed", event, exc_info=exc)


class SequentialQueue:
    """FIFO queue that executes at most one unit of work at a time."""

    def __init__(self) -> None:
        self._pending: Optional[Deque[QueuedTask]] = deque()
        self._running = False
        self._current: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._empty_hooks: List[Hook] = []
        self._cancel_hooks: List[Hook] = []

    @property
    def closed(self) -> bool:
        return self._pending is None

    @property
    def pending(self) -> int:
        return len(self._pending) if self._pending is not None else 0

    @property
    def running(self) -> bool:
        return self._running

    def add_empty_hook(self, hook: Hook) -> None:
        """Register a hook invoked each time the queue drains to idle."""
        self._empty_hooks.append(hook)

    def add_cancel_hook(self, hook: Hook) -> None:
        """Register a hook invoked once when the queue is cancelled."""
        self._cancel_hooks.append(hook)

    def push(self, fn: TaskFn) -> asyncio.Future:
        """Append a unit of work and return a future for its outcome.

        ``fn`` is called with no arguments once every earlier unit has settled.
        It may return a plain value or an awaitable; an awaitable is awaited
        before the queue advances. Raises ``QueueClosedError`` once the queue
        has been cancelled.
        """

        if self._pending is None:
            raise QueueClosedError("Queue has been cancelled")
        loop = asyncio.get_running_loop()
        self._loop = loop
        task = QueuedTask(fn=fn, future=loop.create_future())
        self._pending.append(task)
        if not self._running:
            self._running = True
            loop.call_soon(self._run_next)
        return task.future

    def cancel(self) -> None:
        """Resolve all not-yet-started work with ``None`` and close the queue.

        A unit that is already running is left to finish.
        """

        pending = self._pending
        if pending is None:
            return
        self._pending = None
        for task in pending:
            task.cancel()
        LOGGER.debug("Queue cancelled with %s pending task(s)", len(pending))
        self._emit(self._cancel_hooks, "cancelled")

    def _run_next(self) -> None:
        pending = self._pending
        if not pending:
            self._running = False
            return
        task = pending.popleft()
        if task.future.done():
            # Caller gave up on the unit before it started.
            self._advance()
            return
        try:
            result = task.fn()
        except Exception as exc:  # noqa: BLE001
            task.error(exc)
            self._advance()
            return
        if inspect.isawaitable(result):
            current = asyncio.ensure_future(result)
            self._current = current
            current.add_done_callback(partial(self._settle, task))
            return
        task.done(result)
        self._advance()

    def _settle(self, task: QueuedTask, current: asyncio.Future) -> None:
        self._current = None
        if current.cancelled():
            task.future.cancel()
        else:
            exc = current.exception()
            if exc is not None:
                task.error(exc)
            else:
                task.done(current.result())
        self._advance()

    def _advance(self) -> None:
        if self._pending is None:
            self._running = False
            return
        if self._pending:
            assert self._loop is not None
            self._loop.call_soon(self._run_next)
            return
        self._running = False
        self._emit(self._empty_hooks, "empty")

    def _emit(self, hooks: List[Hook], event: str) -> None:
        for hook in list(hooks):
            try:
                result = hook()
                if inspect.isawaitable(result):
                    future = asyncio.ensure_future(result)
                    future.add_done_callback(partial(_log_hook_failure, event))
            except Exception:  # noqa: BLE001
                LOGGER.exception("Queue %s hook failed: %s", event, hook)
