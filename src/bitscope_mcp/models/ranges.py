"""Vertical (voltage) range tables for each model.

Each entry pairs the largest full-scale voltage a setting covers with the
pre-encoded register writes (offset/gain registers 0x64 and 0x66) that
select it. Entries are ordered by voltage; the first one that covers the
request is used.
"""

from __future__ import annotations

VERTICAL_RANGES: dict[str, list[tuple[float, bytes]]] = {
    "bs10": [
        (0.52, b"64@54z65s" b"66@96x6cs"),
        (1.1, b"64@47z61s" b"66@a2z70s"),
        (3.5, b"64@86z50s" b"66@64z81s"),
        (5.2, b"64@a7z44s" b"66@42z8ds"),
        (11.0, b"64@28z1cs" b"66@c1zb5s"),
    ],
    "bs05": [
        (1.1, b"64@d6z65s" b"66@bcz69s"),
        (3.5, b"64@62z52s" b"66@3fz7ds"),
        (5.2, b"64@68z44s" b"66@ffz8as"),
        (11.0, b"64@6az12s" b"66@8czbas"),
    ],
}


def parse_voltage(text: str) -> float:
    """Parse ``"2v"``, ``"500mV"``, ``"1.1"`` into volts.

    Raises:
        ValueError: If the number cannot be parsed.
    """
    rng = text.strip().lower()
    millivolts = False
    if rng.endswith("v"):
        rng = rng[:-1]
    if rng.endswith("m"):
        rng = rng[:-1]
        millivolts = True

    try:
        volts = float(rng)
    except ValueError:
        raise ValueError(f"Cannot parse voltage range {text!r}") from None
    if millivolts:
        volts /= 1000.0
    return volts


def vertical_command(model: str, volts: float) -> bytes:
    """Return the register writes selecting the smallest range covering ``volts``.

    Raises:
        ValueError: For an unknown model or an out-of-range voltage.
    """
    if model not in VERTICAL_RANGES:
        raise ValueError(f"Unsupported model '{model}'. Valid: {list(VERTICAL_RANGES)}")
    for limit, command in VERTICAL_RANGES[model]:
        if volts <= limit:
            return command
    raise ValueError(
        f"Unsupported vertical range {volts} V for {model} "
        f"(max {VERTICAL_RANGES[model][-1][0]} V)"
    )
