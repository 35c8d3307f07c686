"""Incremental parser for the AGI wire protocol.

The peer first sends a handshake block of ``agi_<name>: value`` lines
terminated by a blank line, then one response line per command:

    agi_network: yes
    agi_uniqueid: 13507138.14
    <blank line>
    200 result=0
    200 result=1 (dtmf)
    HANGUP

The parser is a two-state machine (HANDSHAKE -> STREAMING) over a text
buffer. It performs no I/O: callers feed decoded text chunks and receive
the parse events found so far.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .response import Response

logger = logging.getLogger(__name__)

HANDSHAKE_TERMINATOR = "\n\n"
NEWLINE = "\n"

# Every handshake key carries this fixed-width prefix ("agi_")
VARIABLE_PREFIX_LENGTH = 4

# Status codes are exactly three ASCII digits
RESPONSE_PATTERN = re.compile(r"^([0-9]{3}) result=([^(]*)(?:\((.*)\))?")


class ParserState(str, Enum):
    """Protocol phases. The transition is one-way."""

    HANDSHAKE = "handshake"
    STREAMING = "streaming"


@dataclass(frozen=True)
class VariablesParsed:
    """The handshake block was fully received."""

    variables: dict[str, str]


@dataclass(frozen=True)
class Hangup:
    """A line that is not a response: the peer signalled hangup."""

    line: str


ParseEvent = VariablesParsed | Response | Hangup


def parse_variable_line(line: str) -> tuple[str, str]:
    """Split a handshake line into (name, value).

    The key is split on the first colon and loses its 4 character prefix;
    the value is trimmed. A line without a colon yields an empty value.
    """
    key, _, value = line.partition(":")
    return key[VARIABLE_PREFIX_LENGTH:], value.strip()


def parse_response_line(line: str) -> Response | None:
    """Parse a single response line.

    Returns:
        The Response, or None when the line does not match the grammar
    """
    match = RESPONSE_PATTERN.match(line)
    if match is None:
        return None
    code, result, value = match.groups()
    return Response(code=int(code), result=result.strip(), value=value or None)


class ProtocolParser:
    """Line-buffering state machine for one connection.

    Usage:
        parser = ProtocolParser()
        for event in parser.feed(chunk):
            ...

    A single chunk may complete the handshake and carry response lines
    after it; both are parsed in the same ``feed`` call.

    Only complete lines are consumed. Text after the last newline stays in
    the buffer until a later chunk completes it, instead of the buffer
    being cleared after every pass.
    """

    def __init__(self) -> None:
        self.state = ParserState.HANDSHAKE
        self.variables: dict[str, str] = {}
        self._buffer = ""

    @property
    def buffer(self) -> str:
        """Text received but not consumed yet."""
        return self._buffer

    def feed(self, data: str) -> list[ParseEvent]:
        """Append a chunk and return the events it completes."""
        self._buffer += data
        events: list[ParseEvent] = []

        if self.state is ParserState.HANDSHAKE:
            if HANDSHAKE_TERMINATOR not in self._buffer:
                return events
            events.append(self._read_variables())

        if NEWLINE not in self._buffer:
            return events
        events.extend(self._read_responses())
        return events

    def _read_variables(self) -> VariablesParsed:
        block, _, rest = self._buffer.partition(HANDSHAKE_TERMINATOR)
        for line in block.split(NEWLINE):
            line = line.rstrip("\r")
            if not line:
                continue
            name, value = parse_variable_line(line)
            self.variables[name] = value

        self._buffer = rest
        self.state = ParserState.STREAMING
        logger.debug(f"Handshake complete: {len(self.variables)} variables")
        return VariablesParsed(variables=dict(self.variables))

    def _read_responses(self) -> list[ParseEvent]:
        complete, _, tail = self._buffer.rpartition(NEWLINE)
        self._buffer = tail

        events: list[ParseEvent] = []
        for line in complete.split(NEWLINE):
            line = line.rstrip("\r")
            if not line:
                continue
            response = parse_response_line(line)
            if response is None:
                events.append(Hangup(line=line))
            else:
                events.append(response)
        return events
