"""Protocol layer: hex encoding, command templates, response collection."""

from .hexcodec import Layout, decode_hex, encode_hex
from .commands import CommandTemplate, CommandUnit, HexField, Opcode, build_command
from .collector import (
    CollectorState,
    CompletionPolicy,
    CRCountTerminated,
    FixedDelay,
    ResponseCollector,
    SizeBoundedWait,
)
from .session import ProtocolSession
