"""agi-gateway: FastAGI session engine for Asterisk.

Key pieces:
- AgiServer: accepts connections and runs middleware per call
- Context: the session handed to handlers, with AGI command helpers
- Session: handshake parsing and half-duplex command/response correlation
- compose: onion-style middleware composition
"""

from .compose import ComposedMiddleware, Middleware, Next, compose
from .config import ServerConfig
from .context import Context
from .errors import (
    AgiError,
    CommandPendingError,
    ConfigError,
    HangupError,
    MiddlewareError,
    NextCalledMultipleTimesError,
    SessionClosedError,
)
from .events import SessionEvents, Signal
from .protocol import Hangup, ProtocolParser, Response
from .server import AgiServer
from .session import Session, SessionState

__version__ = "0.1.0"

__all__ = [
    "AgiError",
    "AgiServer",
    "CommandPendingError",
    "ComposedMiddleware",
    "ConfigError",
    "Context",
    "Hangup",
    "HangupError",
    "Middleware",
    "MiddlewareError",
    "Next",
    "NextCalledMultipleTimesError",
    "ProtocolParser",
    "Response",
    "ServerConfig",
    "Session",
    "SessionClosedError",
    "SessionEvents",
    "SessionState",
    "Signal",
    "compose",
]
