"""High-level BitScope operations (BS05 / BS10).

Every operation is a short sequence of register writes sent through a
:class:`ProtocolSession`. Typical use::

    with Scope.open("0") as scope:
        scope.reset()
        scope.vertical("2v")
        scope.horizontal(1, 40)        # 40 MHz / 40 = 1 MHz
        scope.trigger_timing(0, 0, 1)
        scope.trace(0, 1000, 0)
        samples = scope.dump(1024)
"""

from __future__ import annotations

import logging

from .errors import BitScopeError
from .models.identity import ScopeIdentity, identify_model, parse_identity_reply
from .models.ranges import parse_voltage, vertical_command
from .protocol.collector import (
    CR_TIMEOUT_MS,
    SETTLE_MS,
    CRCountTerminated,
    FixedDelay,
    SizeBoundedWait,
    TraceSink,
)
from .protocol.commands import (
    DUMP_PRELUDE,
    DUMP_TRAILER,
    TRACE_PRELUDE,
    TRACE_TRIGGER_SETUP,
    Opcode,
    build_dump_size,
    build_led,
    build_timebase,
    build_trace_delay,
    build_trace_post,
    build_trace_pre,
    build_trigger_level,
    build_trigger_logic,
    build_trigger_mode,
    build_trigger_timing,
)
from .protocol.session import ProtocolSession
from .transport.serial_connection import SerialConnection

logger = logging.getLogger(__name__)

TRACE_CR_COUNT = 5
TRACE_TIMEOUT_MS = CR_TIMEOUT_MS

# Trigger mode bits (SpockOption register)
MODE_EDGE = 0x20
MODE_FALLING = 0x10
MODE_SOURCE_B = 0x04
MODE_COMPARATOR = 0x01


def _check_range(name: str, value: int, bits: int) -> None:
    limit = (1 << bits) - 1
    if not 0 <= value <= limit:
        raise ValueError(f"{name} must be 0-{limit}, got {value}")


class Scope:
    """A connected BitScope instrument."""

    def __init__(
        self,
        session: ProtocolSession,
        identity: ScopeIdentity | None = None,
        connection: SerialConnection | None = None,
        settle_ms: float = SETTLE_MS,
        trace_timeout_ms: float | None = TRACE_TIMEOUT_MS,
    ) -> None:
        self._session = session
        self._connection = connection
        self._settle_ms = settle_ms
        self._trace_timeout_ms = trace_timeout_ms
        self._trigger_source = "a"
        self.identity = identity

    @classmethod
    def open(cls, port: str = "", trace: TraceSink | None = None, **kwargs) -> Scope:
        """Open the serial line and identify the instrument.

        Raises:
            TransportOpenError: If the port cannot be opened.
            UnsupportedModelError: If the identity is not a known model.
        """
        conn = SerialConnection(port)
        conn.open()
        try:
            conn.drain()
            scope = cls(ProtocolSession(conn, trace=trace), connection=conn, **kwargs)
            scope.identity = identify_model(scope.identify())
        except BitScopeError:
            conn.close()
            raise
        logger.info("Connected to %s (%s) on %s", scope.identity.raw, scope.model, conn.port)
        return scope

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()

    def __enter__(self) -> Scope:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    @property
    def session(self) -> ProtocolSession:
        return self._session

    @property
    def model(self) -> str:
        if self.identity is None:
            raise RuntimeError("Instrument has not been identified")
        return self.identity.model

    def _call(self, command: bytes) -> bytes:
        return self._session.submit(command, FixedDelay(self._settle_ms))

    # ─── Control ────────────────────────────────────────────────────────

    def identify(self) -> str:
        """Ask the instrument for its identity string (e.g. ``BS001003``)."""
        return parse_identity_reply(self._call(Opcode.IDENTIFY))

    def reset(self) -> None:
        """Soft reset. Clears the session's error state."""
        self._call(Opcode.RESET)
        self._session.mark_reset()

    def stop(self) -> None:
        """Terminate a running command sequence."""
        self._call(Opcode.STOP)

    def led(self, colour: str, intensity: int) -> None:
        """Set the intensity of one BS10 LED (``r``, ``g`` or ``y``)."""
        _check_range("LED intensity", intensity, 8)
        self._call(build_led(colour, intensity))

    # ─── Horizontal / vertical ──────────────────────────────────────────

    def horizontal(self, prescaler: int, divisor: int) -> None:
        """Set the sample clock prescaler and divisor."""
        _check_range("Prescaler", prescaler, 16)
        _check_range("Divisor", divisor, 16)
        self._call(build_timebase(prescaler, divisor))

    def vertical(self, range_text: str) -> float:
        """Select the smallest voltage range covering ``range_text``.

        Returns the requested full-scale voltage in volts.
        """
        volts = parse_voltage(range_text)
        self._call(vertical_command(self.model, volts))
        return volts

    # ─── Trigger ────────────────────────────────────────────────────────

    def trigger(self, source: str, level: int) -> None:
        """Select the analog trigger channel (``a``/``b``) and level."""
        if source not in ("a", "b"):
            raise ValueError(f"Trigger source must be 'a' or 'b', got {source!r}")
        _check_range("Trigger level", level, 16)
        self._trigger_source = source
        self._call(build_trigger_level(level))

    def trigger_logic(self, level: int, mask: int) -> None:
        """Logic trigger on ``level``; set bits in ``mask`` are ignored."""
        _check_range("Trigger logic level", level, 8)
        _check_range("Trigger mask", mask, 8)
        self._call(build_trigger_logic(level, mask))

    def trigger_mode(self, edge: bool, falling: bool, comparator: bool) -> int:
        """Program level/edge mode, edge direction and hardware comparator.

        Returns the mode byte written.
        """
        mode = 0
        if edge:
            mode |= MODE_EDGE
        if falling:
            mode |= MODE_FALLING
        if comparator:
            mode |= MODE_COMPARATOR
        if self._trigger_source == "b":
            mode |= MODE_SOURCE_B
        self._call(build_trigger_mode(mode))
        return mode

    def trigger_timing(self, hold_off: int, hold_on: int, timeout: int) -> None:
        """Hold-off and hold-on in sample ticks, timeout in 6.4 us ticks.

        The trigger condition must be false for ``hold_off`` then true for
        ``hold_on``. A ``timeout`` of 0 waits for the trigger forever.
        """
        _check_range("Hold-off", hold_off, 16)
        _check_range("Hold-on", hold_on, 16)
        _check_range("Timeout", timeout, 16)
        self._call(build_trigger_timing(hold_off, hold_on, timeout))

    # ─── Acquisition ────────────────────────────────────────────────────

    def trace_terminate(self) -> None:
        """End an acquisition without waiting for a trigger."""
        self._call(Opcode.TRACE_TERMINATE)

    def trace(self, pre: int, post: int, delay: int) -> bytes:
        """Acquire samples and wait for the trace report.

        ``pre`` and ``post`` are pre-/post-trigger sample counts; ``delay``
        is a window after the trigger in which nothing is recorded.

        Raises:
            ResponseTimeout: If the report is not complete in time, e.g.
                the trigger never fired and no trigger timeout was set.
        """
        _check_range("Pre-trigger samples", pre, 16)
        _check_range("Post-trigger samples", post, 16)
        _check_range("Delay", delay, 32)

        for command in TRACE_PRELUDE:
            self._call(command)
        self._call(build_trace_delay(delay))
        self._call(build_trace_pre(pre))
        self._call(build_trace_post(post))
        for command in TRACE_TRIGGER_SETUP:
            self._call(command)

        self._call(Opcode.ARM)
        self._call(Opcode.UPDATE)

        policy = CRCountTerminated(TRACE_CR_COUNT, timeout_ms=self._trace_timeout_ms)
        return self._session.submit(Opcode.TRACE_WAIT, policy)

    def dump(self, size: int) -> bytes:
        """Read ``size`` bytes of acquired samples."""
        _check_range("Dump size", size, 16)

        self._call(DUMP_PRELUDE)
        self._call(build_dump_size(size))
        self._call(DUMP_TRAILER)

        return self._session.submit(Opcode.DUMP, SizeBoundedWait.for_samples(size))
