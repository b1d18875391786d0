"""Single entry point for talking to the instrument."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from ..errors import BitScopeError
from ..transport.serial_connection import Transport
from .collector import CompletionPolicy, FixedDelay, ResponseCollector, TraceSink

logger = logging.getLogger(__name__)


class ProtocolSession:
    """Half-duplex command session over one transport.

    Every :meth:`submit` writes a command and fully resolves its response
    before returning. Errors are never retried here; after any error the
    session is flagged ``unreliable`` until the caller has reset the
    instrument and called :meth:`mark_reset`.
    """

    def __init__(
        self,
        transport: Transport,
        trace: TraceSink | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._trace = trace
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self.last_error: BitScopeError | None = None
        self.unreliable = False

    @property
    def transport(self) -> Transport:
        return self._transport

    def submit(self, command: bytes, policy: CompletionPolicy | None = None) -> bytes:
        """Send ``command`` and collect its response under ``policy``.

        ``policy`` defaults to :class:`FixedDelay` with the standard settle
        time. Errors raised carry the bytes collected so far in ``partial``.
        """
        if policy is None:
            policy = FixedDelay()

        if not self._lock.acquire(blocking=False):
            raise RuntimeError("Another command is already in flight on this session")
        try:
            collector = ResponseCollector(
                self._transport,
                policy,
                sleep=self._sleep,
                clock=self._clock,
                trace=self._trace,
            )
            return collector.run(command)
        except BitScopeError as e:
            logger.debug("Command %r failed: %s", bytes(command), e)
            self.last_error = e
            self.unreliable = True
            raise
        finally:
            self._lock.release()

    def mark_reset(self) -> None:
        """Clear the error state after the instrument has been reset."""
        self.last_error = None
        self.unreliable = False
