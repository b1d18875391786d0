"""Exceptions raised by the protocol engine and the instrument layer.

Any error raised while a command is on the wire leaves the instrument in an
unknown state. Callers should reset the instrument before continuing.
"""

from __future__ import annotations


class BitScopeError(Exception):
    """Base class for all BitScope errors.

    ``partial`` holds whatever response bytes were collected before the
    failure (empty when nothing was read).
    """

    def __init__(self, message: str, partial: bytes = b"") -> None:
        super().__init__(message)
        self.partial = partial


class TransportOpenError(BitScopeError, ConnectionError):
    """The serial line could not be opened."""


class TransportError(BitScopeError, IOError):
    """The serial line failed during a write or read."""


class ReadError(TransportError):
    """Reading from the serial line failed (e.g. the device was unplugged)."""


class IncompleteWriteError(TransportError):
    """Fewer bytes were written than the command length."""

    def __init__(self, written: int, expected: int) -> None:
        super().__init__(f"Not all bytes were written ({written} of {expected})")
        self.written = written
        self.expected = expected


class ResponseTimeout(BitScopeError, TimeoutError):
    """The instrument did not finish its response before the deadline."""


class UnsupportedModelError(BitScopeError):
    """The identity string does not match a supported model."""


class TemplateError(ValueError):
    """A command template's placeholder layout is inconsistent."""
