"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio

import pytest

from agi_gateway import Context

HANDSHAKE = "agi_network: yes\nagi_uniqueid: 13507138.14\nagi_arg_1: test\n\n"


class FakeWriter:
    """Stand-in for asyncio.StreamWriter that records what was written."""

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.closed = False
        self.fail_with: Exception | None = None

    def write(self, data: bytes) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.buffer.extend(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    async def wait_closed(self) -> None:
        pass

    @property
    def sent(self) -> str:
        return self.buffer.decode("utf-8")

    def clear(self) -> None:
        self.buffer.clear()


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def make_context():
    """Factory for a Context over an in-memory reader and a FakeWriter.

    Must be awaited inside a running event loop. The handshake is fed
    unless ``handshake=None``.
    """

    async def factory(handshake: str | None = HANDSHAKE) -> tuple[Context, FakeWriter]:
        writer = FakeWriter()
        ctx = Context(asyncio.StreamReader(), writer)
        if handshake is not None:
            ctx.feed(handshake)
        return ctx, writer

    return factory
