"""Typed signals for session and server notifications.

A Signal is a named, multi-fire channel. Listeners subscribe explicitly and
get back an unsubscribe function:

    unsubscribe = session.events.response.connect(on_response)
    ...
    unsubscribe()

Listeners may be plain functions or coroutine functions; coroutines are
scheduled on the running loop. A listener that raises is logged and does
not prevent delivery to the others.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .protocol import Hangup, Response

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], Any]


class Signal(Generic[T]):
    """Multi-fire notification channel carrying one payload per emission."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: list[Listener[T]] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"Signal({self.name!r}, listeners={len(self._listeners)})"

    def connect(self, listener: Listener[T]) -> Callable[[], None]:
        """Subscribe a listener.

        Args:
            listener: Called with the payload of every emission

        Returns:
            Unsubscribe function
        """
        if not callable(listener):
            raise TypeError(f"Listener for {self.name!r} must be callable")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, payload: T) -> None:
        """Deliver a payload to all current listeners, in subscription order."""
        logger.debug(f"emitted: {self.name}")

        # Copy so listeners can unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                result = listener(payload)
            except Exception:
                logger.exception(f"Error in listener for {self.name}")
                continue
            if inspect.isawaitable(result):
                self._schedule(result)

    async def wait(self) -> T:
        """Wait for the next emission and return its payload."""
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()

        def resolve(payload: T) -> None:
            if not future.done():
                future.set_result(payload)

        unsubscribe = self.connect(resolve)
        try:
            return await future
        finally:
            unsubscribe()

    async def stream(self) -> AsyncIterator[T]:
        """Yield payloads as they are emitted.

        Usage:
            async for response in session.events.response.stream():
                ...
        """
        queue: asyncio.Queue[T] = asyncio.Queue()
        unsubscribe = self.connect(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

    def _schedule(self, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Error in async listener for {self.name}", exc_info=exc)


@dataclass
class SessionEvents:
    """The notification surface of a session."""

    variables: Signal[dict[str, str]] = field(default_factory=lambda: Signal("variables"))
    response: Signal[Response] = field(default_factory=lambda: Signal("response"))
    hangup: Signal[Hangup] = field(default_factory=lambda: Signal("hangup"))
    error: Signal[BaseException] = field(default_factory=lambda: Signal("error"))
    close: Signal[None] = field(default_factory=lambda: Signal("close"))

    def clear(self) -> None:
        """Drop every listener on every signal."""
        for signal in (self.variables, self.response, self.hangup, self.error, self.close):
            signal.clear()
