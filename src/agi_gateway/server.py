"""FastAGI server.

Accepts TCP connections from Asterisk and runs the registered middleware
pipeline once per call:

    app = AgiServer()

    @app.use
    async def hello(ctx: Context, next):
        await ctx.answer()
        await ctx.stream_file("hello-world")

    await app.listen(port=4573)
    await app.serve_forever()

Per connection: handshake -> pipeline -> close. A failing handler aborts
that connection only; the error is delivered to ``app.errors`` and, unless
the server is silent, logged.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from collections.abc import Awaitable, Callable
from typing import Any

from .compose import ComposedMiddleware, Middleware, compose
from .config import ServerConfig
from .context import Context
from .errors import SessionClosedError
from .events import Signal
from .session import SessionState

logger = logging.getLogger(__name__)

ClientCallback = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


class AgiServer:
    """Middleware-driven FastAGI application."""

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        silent: bool | None = None,
        context_class: type[Context] = Context,
    ) -> None:
        """Initialize the server.

        Args:
            config: Server configuration (default: ServerConfig())
            silent: Override ``config.silent``
            context_class: Context type built for each connection
        """
        self.config = config or ServerConfig()
        self.silent = self.config.silent if silent is None else silent
        self.context_class = context_class

        # Error sink: called with (exception, context) for every failed call
        self.errors: Signal[tuple[BaseException, Context]] = Signal("errors")

        self._middlewares: list[Middleware[Context]] = []
        self._server: asyncio.AbstractServer | None = None
        self._connections: set[asyncio.Task[Any]] = set()

    @property
    def middlewares(self) -> tuple[Middleware[Context], ...]:
        return tuple(self._middlewares)

    @property
    def sockets(self) -> tuple[Any, ...]:
        """Listening sockets, empty before ``listen``."""
        if self._server is None:
            return ()
        return tuple(self._server.sockets)

    def use(self, fn: Middleware[Context]) -> Middleware[Context]:
        """Register a handler.

        Returns the handler, so ``use`` also works as a decorator.

        Raises:
            TypeError: fn is not callable
        """
        if not callable(fn):
            raise TypeError("middleware must be callable")
        logger.debug(f"use {getattr(fn, '__name__', '-')}")
        self._middlewares.append(fn)
        return fn

    def callback(self) -> ClientCallback:
        """Build the connection callback for ``asyncio.start_server``.

        Handlers registered after this call are not part of the pipeline.
        """
        composed = compose(self._middlewares)

        async def handle_connection(
            reader: asyncio.StreamReader, writer: asyncio.StreamWriter
        ) -> None:
            task = asyncio.current_task()
            if task is not None:
                self._connections.add(task)
            try:
                ctx = self.context_class(
                    reader,
                    writer,
                    encoding=self.config.encoding,
                    chunk_size=self.config.read_chunk_size,
                )
                await self.handle(ctx, composed)
            finally:
                if task is not None:
                    self._connections.discard(task)

        return handle_connection

    async def handle(self, ctx: Context, composed: ComposedMiddleware) -> None:
        """Run one call: handshake, pipeline, close."""
        ctx.start()
        try:
            variables = await ctx.wait_for_variables()
            logger.debug(f"call started: {variables.get('uniqueid', '-')}")
            await composed(ctx)
        except SessionClosedError as e:
            if ctx.state is SessionState.HANDSHAKE:
                logger.debug(f"connection dropped before handshake: {e}")
            else:
                self.on_error(e, ctx)
        except Exception as e:
            self.on_error(e, ctx)
        finally:
            await ctx.end()

    def on_error(self, err: BaseException, ctx: Context) -> None:
        """Deliver a handler failure to the error sink and report it."""
        self.errors.emit((err, ctx))
        if self.silent:
            return
        text = "".join(traceback.format_exception(err)).rstrip()
        indented = "\n".join(f"  {line}" for line in text.splitlines())
        logger.error(f"Unhandled error in AGI handler:\n{indented}")

    async def listen(
        self, host: str | None = None, port: int | None = None
    ) -> asyncio.AbstractServer:
        """Start accepting connections.

        Args:
            host: Address to bind (default: config.host)
            port: Port to bind, 0 for any (default: config.port)
        """
        host = self.config.host if host is None else host
        port = self.config.port if port is None else port
        logger.debug(f"listen {host}:{port}")

        self._server = await asyncio.start_server(self.callback(), host, port)
        for sock in self._server.sockets:
            logger.info(f"AGI server listening on {sock.getsockname()}")
        return self._server

    async def serve_forever(self) -> None:
        server = self._server or await self.listen()
        await server.serve_forever()

    async def close(self) -> None:
        """Stop accepting and cancel calls still in progress."""
        if self._server is not None:
            self._server.close()

        for task in list(self._connections):
            task.cancel()
        if self._connections:
            await asyncio.gather(*self._connections, return_exceptions=True)

        if self._server is not None:
            await self._server.wait_closed()
            self._server = None
            logger.info("AGI server stopped")

    async def __aenter__(self) -> AgiServer:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
