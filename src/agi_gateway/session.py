"""AGI session over one asyncio stream pair.

A Session owns the connection to a single peer:
- feeds inbound bytes through the ProtocolParser
- collects the handshake variables
- correlates each outbound command with the next response line
- relays stream errors and closure as signals

The protocol is strictly half-duplex, so correlation needs no identifiers:
there is a single pending slot, and the next response line belongs to
whichever command occupies it.

Wire trace (DEBUG level):
    ---> GET VARIABLE CALLERID(num)
    <--- {"code":200,"result":"1","value":"1000"}
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
from collections.abc import Mapping
from types import MappingProxyType

from .errors import AgiError, CommandPendingError, HangupError, SessionClosedError
from .events import SessionEvents
from .protocol import Hangup, ParserState, ProtocolParser, Response, VariablesParsed

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
DEFAULT_CHUNK_SIZE = 4096

SessionState = ParserState


def _sent(data: str) -> str:
    return f"---> {data}"


def _received(data: str) -> str:
    return f"<--- {data}"


def _error(data: str) -> str:
    return f"!!!!! {data}"


class Session:
    """One AGI conversation with a remote peer.

    Usage:
        session = Session(reader, writer)
        session.start()
        variables = await session.wait_for_variables()
        response = await session.send_command("ANSWER")
        await session.end()

    Signals (see ``session.events``):
        variables: handshake complete, payload is the variables dict
        response: every parsed response line, pending command or not
        hangup: a line that is not a response
        error: exception raised by the underlying stream
        close: the stream is closed (fires once)
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        encoding: str = ENCODING,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.reader = reader
        self.writer = writer
        self.events = SessionEvents()

        self._encoding = encoding
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._parser = ProtocolParser()

        # Single pending slot: the protocol allows one command in flight
        self._pending: asyncio.Future[Response] | None = None
        self._pending_command: str | None = None

        self._variables_waiter: asyncio.Future[Mapping[str, str]] | None = None
        self._pump: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def state(self) -> SessionState:
        return self._parser.state

    @property
    def variables(self) -> Mapping[str, str]:
        """Handshake variables, without the ``agi_`` prefix."""
        return MappingProxyType(self._parser.variables)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_pending(self) -> bool:
        """True while a command is waiting for its response."""
        return self._pending is not None

    @property
    def pending_command(self) -> str | None:
        return self._pending_command

    # =========================================================================
    # Outbound
    # =========================================================================

    async def send_command(self, command: str) -> Response:
        """Send one command line and wait for its response.

        Args:
            command: Command text without the trailing newline

        Returns:
            The response line parsed for this command

        Raises:
            SessionClosedError: The session is closed
            CommandPendingError: Another command is still waiting for its response
            HangupError: The peer hung up before responding
        """
        if self._closed:
            raise SessionClosedError(f"Cannot send {command!r}: session is closed")
        if self._pending is not None:
            raise CommandPendingError(command)

        logger.debug(_sent(command))
        future: asyncio.Future[Response] = asyncio.get_running_loop().create_future()
        self._pending = future
        self._pending_command = command

        try:
            self.writer.write(f"{command}\n".encode(self._encoding))
            await self.writer.drain()
            return await future
        except AgiError as e:
            logger.debug(_error(str(e)))
            raise
        finally:
            # Write failure or cancellation: free the slot
            if self._pending is future:
                self._take_pending()

    async def wait_for_variables(self) -> Mapping[str, str]:
        """Wait until the handshake block has been received.

        Raises:
            SessionClosedError: The stream closed before the handshake completed
        """
        if self.state is SessionState.STREAMING:
            return self.variables
        if self._closed:
            raise SessionClosedError("Connection closed before the handshake completed")

        if self._variables_waiter is None:
            self._variables_waiter = asyncio.get_running_loop().create_future()
        return await asyncio.shield(self._variables_waiter)

    # =========================================================================
    # Inbound
    # =========================================================================

    def start(self) -> asyncio.Task[None]:
        """Start reading from the stream. Idempotent."""
        if self._pump is None:
            self._pump = asyncio.create_task(self._read_loop())
        return self._pump

    def feed(self, data: bytes | str) -> None:
        """Process one inbound chunk.

        Bytes are decoded incrementally, so a multi-byte character split
        across two chunks is handled.
        """
        text = self._decoder.decode(data) if isinstance(data, bytes) else data
        if not text:
            return

        for event in self._parser.feed(text):
            match event:
                case VariablesParsed(variables=variables):
                    self._on_variables(variables)
                case Hangup():
                    self._on_hangup(event)
                case Response():
                    self._on_response(event)

    async def _read_loop(self) -> None:
        try:
            while True:
                data = await self.reader.read(self._chunk_size)
                if not data:
                    break
                self.feed(data)
        except Exception as e:
            logger.debug(_error(f"{type(e).__name__}: {e}"))
            self.events.error.emit(e)
        finally:
            self._mark_closed()

    def _on_variables(self, variables: dict[str, str]) -> None:
        logger.debug(_received(f"{len(variables)} variables"))
        waiter = self._variables_waiter
        if waiter is not None and not waiter.done():
            waiter.set_result(self.variables)
        self.events.variables.emit(variables)

    def _on_response(self, response: Response) -> None:
        logger.debug(_received(response.model_dump_json()))
        future, _ = self._take_pending()
        if future is not None and not future.done():
            future.set_result(response)
        self.events.response.emit(response)

    def _on_hangup(self, hangup: Hangup) -> None:
        logger.debug(_received(hangup.line))
        future, command = self._take_pending()
        if future is not None and not future.done():
            future.set_exception(HangupError(command or "", hangup.line))
        self.events.hangup.emit(hangup)

    def _take_pending(self) -> tuple[asyncio.Future[Response] | None, str | None]:
        future, command = self._pending, self._pending_command
        self._pending = None
        self._pending_command = None
        return future, command

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def end(self) -> None:
        """Close the stream. Safe to call more than once."""
        if not self.writer.is_closing():
            self.writer.close()
            with contextlib.suppress(ConnectionError):
                await self.writer.wait_closed()

        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._pump

        self._mark_closed()

    def _mark_closed(self) -> None:
        if self._closed:
            return
        self._closed = True

        waiter = self._variables_waiter
        if waiter is not None and not waiter.done():
            waiter.set_exception(
                SessionClosedError("Connection closed before the handshake completed")
            )
        self.events.close.emit(None)
