"""Exceptions raised by the gateway.

Protocol anomalies are not exceptions: a malformed response line is
delivered as a ``hangup`` signal on the session.
"""

from __future__ import annotations


class AgiError(Exception):
    """Base class for all gateway errors."""


class SessionClosedError(AgiError):
    """The session's stream is closed."""


class CommandPendingError(AgiError):
    """A command was sent while another one is still awaiting its response."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Cannot send {command!r}: another command is still pending")
        self.command = command


class HangupError(AgiError):
    """The peer signalled hangup while a command was pending."""

    def __init__(self, command: str, line: str) -> None:
        super().__init__(f"Hangup received while waiting for {command!r}: {line!r}")
        self.command = command
        self.line = line


class MiddlewareError(AgiError):
    """Misuse of the middleware pipeline during dispatch."""


class NextCalledMultipleTimesError(MiddlewareError):
    """A continuation was invoked more than once."""

    def __init__(self) -> None:
        super().__init__("next() called multiple times")


class ConfigError(AgiError, ValueError):
    """Invalid configuration value or file."""
