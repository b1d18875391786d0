"""Command templates and register-write command builders.

A register-write unit has the form ``<addr>@<value digits>s``. Several units
may be concatenated into one transmit buffer; the instrument applies them
in the order received, so builders keep the order they are given.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from ..errors import TemplateError
from .hexcodec import HEX_DIGITS, Layout, VALID_WIDTHS, encode_hex, field_positions


class Opcode(bytes, Enum):
    """Single-character instrument commands."""

    RESET = b"!"
    STOP = b"."
    IDENTIFY = b"?"
    ARM = b">"
    UPDATE = b"U"
    TRACE_TERMINATE = b"K"
    TRACE = b"T"
    TRACE_WAIT = b"D"
    DUMP = b"A"


@dataclass(frozen=True)
class HexField:
    """Placeholder window for one encoded value."""

    offset: int
    width: int
    layout: Layout = Layout.REGISTER

    def positions(self) -> list[int]:
        return field_positions(self.offset, self.width, self.layout)


@dataclass(frozen=True)
class CommandTemplate:
    """A literal command skeleton plus the placeholder fields it carries.

    The layout is validated once, here: every field must sit on ``0``
    placeholder digits inside the skeleton and fields may not overlap.
    """

    skeleton: bytes
    fields: tuple[HexField, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "skeleton", bytes(self.skeleton))
        object.__setattr__(self, "fields", tuple(self.fields))

        taken: set[int] = set()
        for f in self.fields:
            if f.width not in VALID_WIDTHS:
                raise TemplateError(
                    f"Field width must be one of {VALID_WIDTHS}, got {f.width}"
                )
            for pos in f.positions():
                if not 0 <= pos < len(self.skeleton):
                    raise TemplateError(
                        f"Field at offset {f.offset} (width {f.width}) runs past "
                        f"the end of {self.skeleton!r}"
                    )
                if self.skeleton[pos] not in HEX_DIGITS:
                    raise TemplateError(
                        f"Position {pos} of {self.skeleton!r} is not a hex "
                        f"placeholder"
                    )
                if pos in taken:
                    raise TemplateError(
                        f"Fields overlap at position {pos} of {self.skeleton!r}"
                    )
                taken.add(pos)

    def render(self, *values: int) -> bytes:
        """Return the skeleton with ``values`` encoded into its fields."""
        if len(values) != len(self.fields):
            raise ValueError(
                f"Template {self.skeleton!r} takes {len(self.fields)} "
                f"value(s), got {len(values)}"
            )
        buf = bytearray(self.skeleton)
        for f, value in zip(self.fields, values):
            encode_hex(value, f.width, buf, f.offset, f.layout)
        return bytes(buf)


@dataclass(frozen=True)
class CommandUnit:
    """A template together with the values to embed in it."""

    template: CommandTemplate
    values: tuple[int, ...] = field(default_factory=tuple)

    def render(self) -> bytes:
        return self.template.render(*self.values)


def register_template(address: int, width: int = 1) -> CommandTemplate:
    """Template writing a ``width``-byte value starting at register ``address``.

    ``register_template(0x22, 4)`` gives ``22@00z00z00z00s``.
    """
    if not 0 <= address <= 0xFF:
        raise ValueError(f"Register address must be 0-255, got {address}")
    if width not in VALID_WIDTHS:
        raise ValueError(f"Width must be one of {VALID_WIDTHS}, got {width}")
    skeleton = f"{address:02x}@" + "00z" * (width - 1) + "00s"
    return CommandTemplate(skeleton.encode("ascii"), (HexField(3, width),))


def unit(template: CommandTemplate, *values: int) -> CommandUnit:
    return CommandUnit(template, tuple(values))


def build_command(units: Iterable[CommandUnit | bytes]) -> bytes:
    """Concatenate rendered units into one transmit buffer, in order.

    Literal ``bytes`` (opcodes, fixed register preludes) may be mixed in.
    """
    parts = []
    for u in units:
        parts.append(bytes(u) if isinstance(u, (bytes, bytearray)) else u.render())
    return b"".join(parts)


# Registers

REG_TRIGGER_LOGIC = 0x05
REG_TRIGGER_MASK = 0x06
REG_SPOCK_OPTION = 0x07
REG_TIMEBASE_PRESCALER = 0x14
REG_DUMP_SIZE = 0x1C
REG_TRACE_DELAY = 0x22
REG_TRACE_PRE = 0x26
REG_TRACE_POST = 0x2A
REG_TRIGGER_TIMEOUT = 0x2C
REG_TIMEBASE_DIVISOR = 0x2E
REG_TRIGGER_INTRO = 0x32
REG_TRIGGER_OUTRO = 0x34
REG_TRIGGER_LEVEL = 0x68
REG_LED_RED = 0xFA
REG_LED_GREEN = 0xFB
REG_LED_YELLOW = 0xFC

LED_REGISTERS: dict[str, int] = {
    "r": REG_LED_RED,
    "g": REG_LED_GREEN,
    "y": REG_LED_YELLOW,
}

# Fixed register writes sent verbatim before a trace.
TRACE_PRELUDE: Sequence[bytes] = (
    b"[7b]@[80]s",  # KitchenSinkA: enable hardware comparators
    b"[7c]@[80]s",  # KitchenSinkB: enable analog filter
    b"[37]@[01]s",  # AnalogEnable: channel A input
    b"[31]@[00]s",  # BufferMode
    b"[21]@[00]s",  # TraceMode
)

TRACE_TRIGGER_SETUP: Sequence[bytes] = (
    b"[06]@[7f]s",  # TriggerMask
    b"[05]@[80]s",  # TriggerLogic
    b"[44]@[00]s[45]@[00]s",  # TriggerValue
    b"[68]@[f5]s[69]@[68]s",  # TriggerLevel
    b"[07]@[21]s",  # SpockOption: edge triggered comparator
    b"[3a]@[00]s[3b]@[00]s",  # Prelude: buffer default value
    b"[08]@[00]s[09]@[00]s[0a]@[00]s",  # trace start address
)

DUMP_PRELUDE = (
    b"[31]@[00]s"  # BufferMode
    b"[08]@[cc]s[09]@[00]s[0a]@[00]s"  # start address
    b"[1e]@[00]s"  # DumpMode raw
    b"[30]@[00]s"  # DumpChan
)

DUMP_TRAILER = (
    b"[16]@[01]s[17]@[00]s"  # DumpRepeat
    b"[18]@[01]s[19]@[00]s"  # DumpSend
    b"[1a]@[ff]s[1b]@[ff]s"  # DumpSkip
    + Opcode.ARM.value
)


def build_led(colour: str, intensity: int) -> bytes:
    """Set one LED's intensity (0-255). ``colour`` is ``r``, ``g`` or ``y``."""
    if colour not in LED_REGISTERS:
        raise ValueError(f"Unknown LED '{colour}'. Valid: {list(LED_REGISTERS)}")
    return register_template(LED_REGISTERS[colour]).render(intensity)


def build_timebase(prescaler: int, divisor: int) -> bytes:
    return build_command([
        unit(register_template(REG_TIMEBASE_PRESCALER, 2), prescaler),
        unit(register_template(REG_TIMEBASE_DIVISOR, 2), divisor),
    ])


def build_trigger_level(level: int) -> bytes:
    return register_template(REG_TRIGGER_LEVEL, 2).render(level)


def build_trigger_logic(level: int, mask: int) -> bytes:
    """TriggerLogic then TriggerMask. Mask bits mark levels to ignore."""
    return build_command([
        unit(register_template(REG_TRIGGER_LOGIC), level),
        unit(register_template(REG_TRIGGER_MASK), mask),
    ])


def build_trigger_mode(mode: int) -> bytes:
    return register_template(REG_SPOCK_OPTION).render(mode)


def build_trigger_timing(hold_off: int, hold_on: int, timeout: int) -> bytes:
    """TriggerIntro, TriggerOutro and trigger timeout, in that order."""
    return build_command([
        unit(register_template(REG_TRIGGER_INTRO, 2), hold_off),
        unit(register_template(REG_TRIGGER_OUTRO, 2), hold_on),
        unit(register_template(REG_TRIGGER_TIMEOUT, 2), timeout),
    ])


def build_trace_delay(delay: int) -> bytes:
    return register_template(REG_TRACE_DELAY, 4).render(delay)


def build_trace_pre(pre: int) -> bytes:
    return register_template(REG_TRACE_PRE, 2).render(pre)


def build_trace_post(post: int) -> bytes:
    return register_template(REG_TRACE_POST, 2).render(post)


def build_dump_size(size: int) -> bytes:
    return register_template(REG_DUMP_SIZE, 2).render(size)
