"""Shared test doubles for the serial line."""

from __future__ import annotations

import pytest


class FakeTransport:
    """Scripted duplex stream.

    ``chunks`` are returned by successive reads. ``replies`` maps a written
    command to the chunks that follow it, replacing anything still pending.
    A chunk that is an exception instance is raised from ``read``. Reads
    with nothing pending return ``b""``.
    """

    def __init__(self, chunks=(), replies=None, write_result=None):
        self.pending = list(chunks)
        self.replies = dict(replies or {})
        self.write_result = write_result
        self.written: list[bytes] = []
        self.read_sizes: list[int] = []

    def write(self, data: bytes) -> int:
        data = bytes(data)
        self.written.append(data)
        if data in self.replies:
            self.pending = list(self.replies[data])
        if self.write_result is not None:
            return self.write_result
        return len(data)

    def read(self, max_bytes: int) -> bytes:
        self.read_sizes.append(max_bytes)
        if not self.pending:
            return b""
        chunk = self.pending.pop(0)
        if isinstance(chunk, BaseException):
            raise chunk
        return chunk[:max_bytes]


class FakeConnection(FakeTransport):
    """FakeTransport with the SerialConnection lifecycle methods."""

    port = "/dev/ttyFAKE"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.opened = False
        self.closed = False

    def open(self) -> None:
        self.opened = True

    def drain(self, settle_s: float = 0.05) -> bytes:
        return b""

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """Monotonic clock that advances ``step`` seconds per call."""

    def __init__(self, step: float = 0.5):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def fake_transport():
    return FakeTransport


@pytest.fixture
def fake_connection():
    return FakeConnection


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    """List that records requested sleep durations; pass ``sleeps.append``."""
    return []
