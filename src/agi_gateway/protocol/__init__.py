"""AGI wire protocol.

Pure parsing layer, independent of any transport:
- Response: one parsed ``DDD result=...`` line
- ProtocolParser: handshake capture followed by response lines
- Hangup / VariablesParsed: the other parse events
"""

from .parser import (
    Hangup,
    ParseEvent,
    ParserState,
    ProtocolParser,
    VariablesParsed,
    parse_response_line,
    parse_variable_line,
)
from .response import Response

__all__ = [
    "Hangup",
    "ParseEvent",
    "ParserState",
    "ProtocolParser",
    "Response",
    "VariablesParsed",
    "parse_response_line",
    "parse_variable_line",
]
