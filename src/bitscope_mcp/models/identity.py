"""Identity string returned by the ``?`` command."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import UnsupportedModelError

ID_LENGTH = 8

# Identity prefix -> model key used by the range tables.
MODEL_PREFIXES: dict[str, str] = {
    "BS0010": "bs10",
    "BS0005": "bs05",
}


@dataclass
class ScopeIdentity:
    """Parsed identity: ``BS00`` family prefix followed by 4 version chars."""

    raw: str
    model: str

    @property
    def prefix(self) -> str:
        return self.raw[:4]

    @property
    def version(self) -> str:
        return self.raw[4:ID_LENGTH]

    def to_dict(self) -> dict:
        return {
            "id": self.raw,
            "model": self.model,
            "prefix": self.prefix,
            "version": self.version,
        }


def parse_identity_reply(reply: bytes) -> str:
    """Extract the identity text from a ``?`` reply.

    The first byte echoes the command and is dropped; surrounding
    whitespace and CRs are stripped. An empty reply gives ``""``.
    """
    if not reply:
        return ""
    return reply[1:].decode("ascii", errors="replace").strip()


def identify_model(ident: str) -> ScopeIdentity:
    """Map an identity string to a supported model.

    Raises:
        UnsupportedModelError: If the prefix is not a known model.
    """
    for prefix, model in MODEL_PREFIXES.items():
        if ident.startswith(prefix):
            return ScopeIdentity(raw=ident, model=model)
    raise UnsupportedModelError(f"Unsupported model: {ident!r}")
