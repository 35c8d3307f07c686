"""Onion-style middleware composition.

Handlers take the context and a ``next`` continuation. Code before
``await next()`` runs on the way in, code after it on the way out:

    async def timing(ctx, next):
        started = time.monotonic()
        await next()
        logger.info(f"call took {time.monotonic() - started:.2f}s")

``compose`` freezes the handler list. The dispatch cursor is created per
call, so one composed pipeline can serve many connections at once.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from .errors import NextCalledMultipleTimesError

T = TypeVar("T")

Next = Callable[[], Awaitable[Any]]
Middleware = Callable[[T, Next], Any]
ComposedMiddleware = Callable[..., Awaitable[Any]]


def compose(middlewares: Sequence[Middleware[T]]) -> ComposedMiddleware:
    """Compose handlers into a single dispatcher.

    Args:
        middlewares: Handlers in call order; each may be sync or async

    Returns:
        ``async composed(context, next=None)``. ``next`` is an optional
        terminal handler run after the last one, with the same signature.

    Raises:
        TypeError: The stack is not a list/tuple or holds a non-callable
    """
    if not isinstance(middlewares, (list, tuple)):
        raise TypeError("Middleware stack must be a list or tuple")
    for fn in middlewares:
        if not callable(fn):
            raise TypeError("Middleware must be composed of callables")

    stack = tuple(middlewares)

    async def composed(context: T, next: Middleware[T] | None = None) -> Any:
        index = -1

        async def dispatch(i: int) -> Any:
            nonlocal index
            if i <= index:
                raise NextCalledMultipleTimesError()
            index = i

            fn = stack[i] if i < len(stack) else None
            if i == len(stack):
                fn = next
            if fn is None:
                return None

            result = fn(context, lambda: dispatch(i + 1))
            if inspect.isawaitable(result):
                result = await result
            return result

        return await dispatch(0)

    return composed
