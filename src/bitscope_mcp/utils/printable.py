"""Rendering of raw instrument traffic for diagnostics."""

from __future__ import annotations


def render(data: bytes, placeholder: str = "_") -> str:
    """Return ``data`` as text with control bytes replaced by ``placeholder``.

    Bytes outside 7-bit ASCII are shown as ``\\xNN``.
    """
    out = []
    for b in data:
        if b < 32:
            out.append(placeholder)
        elif b < 127:
            out.append(chr(b))
        else:
            out.append(f"\\x{b:02x}")
    return "".join(out)
