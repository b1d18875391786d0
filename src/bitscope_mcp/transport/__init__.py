"""Transport layer: the serial line to the instrument."""

from .serial_connection import SerialConnection, Transport, resolve_port
