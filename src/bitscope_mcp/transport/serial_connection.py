"""Serial connection to a BitScope instrument.

The instrument enumerates as a USB serial adapter (``/dev/ttyUSB<n>`` on
Linux). pyserial opens the port in raw mode: no line buffering, no echo,
no CR/LF translation, which is what the binary dump responses need.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

import serial

from ..errors import IncompleteWriteError, ReadError, TransportError, TransportOpenError

logger = logging.getLogger(__name__)

DEFAULT_PORT_BASE = "/dev/ttyUSB"
BAUD_RATE = 115200
READ_TIMEOUT_S = 0.5
WRITE_TIMEOUT_S = 1.0


class Transport(Protocol):
    """Raw duplex byte stream used by the protocol engine."""

    def write(self, data: bytes) -> int:
        ...

    def read(self, max_bytes: int) -> bytes:
        ...


def resolve_port(dev: str = "") -> str:
    """Expand a short device name.

    ``""`` gives ``/dev/ttyUSB0``; ``"1"`` or ``"12"`` give
    ``/dev/ttyUSB1`` / ``/dev/ttyUSB12``; anything longer is used as is.
    """
    if len(dev) == 0:
        return DEFAULT_PORT_BASE + "0"
    if len(dev) <= 2:
        return DEFAULT_PORT_BASE + dev
    return dev


class SerialConnection:
    """Owns the serial handle for one instrument session.

    Usage::

        with SerialConnection("0") as conn:
            conn.write(b"?")
            reply = conn.read(256)
    """

    def __init__(
        self,
        port: str = "",
        baudrate: int = BAUD_RATE,
        read_timeout: float = READ_TIMEOUT_S,
    ) -> None:
        self._port = resolve_port(port)
        self._baudrate = baudrate
        self._read_timeout = read_timeout
        self._serial: serial.Serial | None = None

    @property
    def port(self) -> str:
        return self._port

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """Open the serial port.

        Raises:
            TransportOpenError: If the port is missing or cannot be opened.
        """
        if self.connected:
            return
        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                timeout=self._read_timeout,
                write_timeout=WRITE_TIMEOUT_S,
            )
        except (serial.SerialException, OSError) as e:
            self._serial = None
            raise TransportOpenError(f"Could not open {self._port}: {e}") from e

        self._serial.reset_input_buffer()
        logger.info("Opened %s at %d baud", self._port, self._baudrate)

    def close(self) -> None:
        """Close the port. Safe to call more than once."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except (serial.SerialException, OSError) as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._serial = None
            logger.info("Closed %s", self._port)

    def __enter__(self) -> SerialConnection:
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _handle(self) -> serial.Serial:
        if self._serial is None:
            raise ConnectionError("Serial port is not open")
        return self._serial

    def write(self, data: bytes) -> int:
        """Write ``data`` in full.

        Raises:
            IncompleteWriteError: If only part of ``data`` was accepted.
            TransportError: If the port reports an error.
        """
        ser = self._handle()
        try:
            written = ser.write(data)
            ser.flush()
        except (serial.SerialException, OSError) as e:
            raise TransportError(f"Write to {self._port} failed: {e}") from e

        if written is None:
            written = len(data)
        if written != len(data):
            raise IncompleteWriteError(written, len(data))
        return written

    def read(self, max_bytes: int) -> bytes:
        """Return the bytes currently available, at most ``max_bytes``.

        Blocks up to the read timeout for the first byte, then drains
        whatever is already buffered without waiting further. An empty
        result means nothing arrived in time.

        Raises:
            ReadError: If the port reports an error.
        """
        ser = self._handle()
        if max_bytes < 1:
            return b""
        try:
            data = ser.read(1)
            if data and max_bytes > 1:
                available = min(ser.in_waiting, max_bytes - 1)
                if available:
                    data += ser.read(available)
        except (serial.SerialException, OSError) as e:
            raise ReadError(f"Read from {self._port} failed: {e}") from e
        return data

    def drain(self, settle_s: float = 0.05) -> bytes:
        """Discard anything left in the input buffer after ``settle_s``."""
        ser = self._handle()
        time.sleep(settle_s)
        try:
            stale = ser.read(ser.in_waiting) if ser.in_waiting else b""
        except (serial.SerialException, OSError) as e:
            raise ReadError(f"Read from {self._port} failed: {e}") from e
        if stale:
            logger.debug("Discarded %d stale bytes from %s", len(stale), self._port)
        return stale
