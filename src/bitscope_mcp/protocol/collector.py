"""Response collection for the BitScope command protocol.

The instrument never says when a reply is finished, so each command is
paired with a completion policy:

- :class:`FixedDelay` -- register writes and short queries. Wait for the
  settle time, read once.
- :class:`CRCountTerminated` -- multi-line status reports (trace). Read
  until the buffer holds a known number of carriage returns.
- :class:`SizeBoundedWait` -- binary sample dumps. Wait long enough for
  the known payload to arrive, then read once. Polling for CRs here would
  stop early on any sample byte equal to 0x0D.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

from ..errors import BitScopeError, IncompleteWriteError, ReadError, ResponseTimeout, TransportError
from ..transport.serial_connection import BAUD_RATE, Transport
from ..utils.printable import render

logger = logging.getLogger(__name__)

CR = 0x0D
SETTLE_MS = 2
DEFAULT_READ_SIZE = 256
CR_TIMEOUT_MS = 5000
DUMP_OVERHEAD = 256
DUMP_MIN_WAIT_MS = 100

TraceSink = Callable[[str, bytes], None]


def _check_read_size(name: str, value: int) -> None:
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {value}")


@dataclass(frozen=True)
class FixedDelay:
    """Sleep ``wait_ms``, then read once (up to ``max_bytes``)."""

    wait_ms: float = SETTLE_MS
    max_bytes: int = DEFAULT_READ_SIZE

    def __post_init__(self) -> None:
        _check_read_size("max_bytes", self.max_bytes)


@dataclass(frozen=True)
class CRCountTerminated:
    """Read until at least ``required_cr_count`` CR bytes have arrived.

    ``timeout_ms`` bounds the whole collection; ``None`` waits forever.
    """

    required_cr_count: int
    timeout_ms: float | None = CR_TIMEOUT_MS
    chunk_size: int = DEFAULT_READ_SIZE

    def __post_init__(self) -> None:
        if self.required_cr_count < 1:
            raise ValueError(
                f"required_cr_count must be at least 1, got {self.required_cr_count}"
            )
        _check_read_size("chunk_size", self.chunk_size)


@dataclass(frozen=True)
class SizeBoundedWait:
    """Sleep ``wait_ms``, then read once into a ``max_bytes`` buffer."""

    wait_ms: float
    max_bytes: int

    def __post_init__(self) -> None:
        _check_read_size("max_bytes", self.max_bytes)

    @classmethod
    def for_samples(
        cls,
        count: int,
        baudrate: int = BAUD_RATE,
        overhead: int = DUMP_OVERHEAD,
        min_wait_ms: float = DUMP_MIN_WAIT_MS,
    ) -> SizeBoundedWait:
        """Policy for a dump of ``count`` sample bytes.

        The wait is the settle floor plus the line time of the payload
        (10 bits per byte on an 8N1 link).
        """
        if count < 0:
            raise ValueError(f"Sample count must be non-negative, got {count}")
        line_ms = count * 10 * 1000 / baudrate
        return cls(wait_ms=min_wait_ms + line_ms, max_bytes=count + overhead)


CompletionPolicy = Union[FixedDelay, CRCountTerminated, SizeBoundedWait]
POLICY_TYPES = (FixedDelay, CRCountTerminated, SizeBoundedWait)


class CollectorState(Enum):
    IDLE = "idle"
    SENT = "sent"
    COLLECTING = "collecting"
    COMPLETE = "complete"
    FAILED = "failed"


class ResponseCollector:
    """Sends one command and collects its response under one policy.

    A collector is single use: create a new one for every command.
    """

    def __init__(
        self,
        transport: Transport,
        policy: CompletionPolicy,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        trace: TraceSink | None = None,
    ) -> None:
        # Checked before anything is written.
        if not isinstance(policy, POLICY_TYPES):
            raise TypeError(f"Unknown completion policy: {policy!r}")
        self._transport = transport
        self._policy = policy
        self._sleep = sleep
        self._clock = clock
        self._trace = trace
        self.state = CollectorState.IDLE

    def run(self, command: bytes) -> bytes:
        """Write ``command`` and return the collected response.

        Raises:
            IncompleteWriteError: The command was only partly written; no
                read is attempted.
            ReadError: A read failed. ``partial`` holds the bytes so far.
            ResponseTimeout: A CR-terminated response missed its deadline.
        """
        if self.state is not CollectorState.IDLE:
            raise RuntimeError(f"ResponseCollector already used (state {self.state.value})")

        command = bytes(command)
        try:
            self._send(command)
            self.state = CollectorState.SENT
            self.state = CollectorState.COLLECTING
            response = self._collect()
        except BitScopeError as e:
            self.state = CollectorState.FAILED
            if e.partial:
                self._emit("rx", e.partial)
            raise

        self.state = CollectorState.COMPLETE
        self._emit("rx", response)
        return response

    def _emit(self, direction: str, data: bytes) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s %s", direction, render(data))
        if self._trace is not None:
            self._trace(direction, data)

    def _send(self, command: bytes) -> None:
        try:
            written = self._transport.write(command)
        except BitScopeError:
            raise
        except OSError as e:
            raise TransportError(f"Write failed: {e}") from e

        if written is not None and written != len(command):
            raise IncompleteWriteError(written, len(command))
        self._emit("tx", command)

    def _read(self, max_bytes: int, collected: bytes) -> bytes:
        try:
            return bytes(self._transport.read(max_bytes))
        except BitScopeError as e:
            e.partial = bytes(collected)
            raise
        except OSError as e:
            raise ReadError(f"Read failed: {e}", partial=bytes(collected)) from e

    def _collect(self) -> bytes:
        policy = self._policy
        if isinstance(policy, FixedDelay):
            self._sleep(policy.wait_ms / 1000)
            return self._read(policy.max_bytes, b"")
        if isinstance(policy, SizeBoundedWait):
            self._sleep(policy.wait_ms / 1000)
            return self._read(policy.max_bytes, b"")
        return self._collect_cr(policy)

    def _collect_cr(self, policy: CRCountTerminated) -> bytes:
        deadline = None
        if policy.timeout_ms is not None:
            deadline = self._clock() + policy.timeout_ms / 1000

        buf = bytearray()
        while True:
            buf += self._read(policy.chunk_size, buf)
            # Several CRs may arrive in one chunk; count over the whole buffer.
            if buf.count(CR) >= policy.required_cr_count:
                return bytes(buf)
            if deadline is not None and self._clock() >= deadline:
                raise ResponseTimeout(
                    f"Got {buf.count(CR)} of {policy.required_cr_count} line "
                    f"terminators within {policy.timeout_ms} ms",
                    partial=bytes(buf),
                )
