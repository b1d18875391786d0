"""ASCII-hex encoding of register values into command buffers.

Register-write units carry their value as hex digit pairs, one pair per
byte, least significant byte first. Bytes beyond the first are separated
by a one-character operator owned by the template::

    22@00z00z00z00s
       ^^ ^^ ^^ ^^
       b0 b1 b2 b3      (stride of 3 characters per byte)

``Layout.PLAIN`` is the contiguous, most-significant-first form
(``2e@1a2bs``) for templates that spell a value as one hex number.
"""

from __future__ import annotations

from enum import Enum

HEX_DIGITS = b"0123456789abcdef"
VALID_WIDTHS = (1, 2, 3, 4)
REGISTER_STRIDE = 3


class Layout(Enum):
    """How a value's digit pairs are placed in the buffer."""

    REGISTER = "register"
    PLAIN = "plain"


def field_positions(offset: int, width: int, layout: Layout = Layout.REGISTER) -> list[int]:
    """Return the buffer positions written by a field, most significant digit
    of each byte first.

    For ``Layout.REGISTER`` the list is ordered byte 0, byte 1, ...; for
    ``Layout.PLAIN`` it is simply the contiguous window.
    """
    if width not in VALID_WIDTHS:
        raise ValueError(f"Width must be one of {VALID_WIDTHS}, got {width}")
    if layout is Layout.PLAIN:
        return list(range(offset, offset + 2 * width))
    positions: list[int] = []
    for i in range(width):
        start = offset + REGISTER_STRIDE * i
        positions.extend((start, start + 1))
    return positions


def encode_hex(
    value: int,
    width: int,
    buffer: bytearray,
    offset: int,
    layout: Layout = Layout.REGISTER,
) -> None:
    """Write ``value`` as ``width`` hex digit pairs into ``buffer``.

    The value is masked to ``width * 8`` bits. Separator characters between
    digit pairs are left untouched.

    Raises:
        ValueError: If ``width`` is not 1-4 or the field does not fit in
            ``buffer`` starting at ``offset``.
    """
    positions = field_positions(offset, width, layout)
    if offset < 0 or positions[-1] >= len(buffer):
        raise ValueError(
            f"{width}-byte field at offset {offset} does not fit "
            f"in a {len(buffer)}-byte buffer"
        )

    value &= (1 << (8 * width)) - 1
    if layout is Layout.PLAIN:
        byte_values = value.to_bytes(width, "big")
    else:
        byte_values = value.to_bytes(width, "little")

    for i, b in enumerate(byte_values):
        hi, lo = positions[2 * i], positions[2 * i + 1]
        buffer[hi] = HEX_DIGITS[b >> 4]
        buffer[lo] = HEX_DIGITS[b & 0x0F]


def decode_hex(
    buffer: bytes | bytearray,
    offset: int,
    width: int,
    layout: Layout = Layout.REGISTER,
) -> int:
    """Read back a value written by :func:`encode_hex`."""
    positions = field_positions(offset, width, layout)
    digits = bytes(buffer[p] for p in positions).decode("ascii")
    byte_values = bytes.fromhex(digits)
    order = "big" if layout is Layout.PLAIN else "little"
    return int.from_bytes(byte_values, order)
