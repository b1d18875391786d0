"""MCP server entry point for BitScope BS05/BS10 oscilloscopes.

Exposes the instrument operations as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any

from mcp.server.fastmcp import FastMCP

from .errors import BitScopeError
from .scope import Scope

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "bitscope",
    instructions="Control a BitScope BS05/BS10 USB oscilloscope: configure, trace and dump samples.",
)

PORT_ENV = "BITSCOPE_PORT"

# Global connection state
_scope: Scope | None = None


def _get_scope() -> Scope:
    """Get the connected scope, raising if not connected."""
    if _scope is None:
        raise RuntimeError(
            "Not connected to device. Use the 'connect' tool first."
        )
    return _scope


def _failure(e: BitScopeError) -> dict[str, Any]:
    result: dict[str, Any] = {
        "error": str(e),
        "hint": "Protocol state unknown; call 'reset' before continuing.",
    }
    if e.partial:
        result["partial_hex"] = e.partial.hex(" ")
    return result


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str | None = None) -> dict[str, Any]:
    """Open the serial line to a BitScope and identify it.

    Args:
        port: Device path or ttyUSB index ("0", "1", ...). Defaults to the
              BITSCOPE_PORT environment variable, then /dev/ttyUSB0.
    """
    global _scope
    if _scope is not None:
        return {
            "connected": True,
            "message": "Already connected",
            "model": _scope.model,
        }

    if port is None:
        port = os.environ.get(PORT_ENV, "")

    try:
        _scope = Scope.open(port)
    except BitScopeError as e:
        return {"connected": False, "error": str(e)}

    result: dict[str, Any] = {"connected": True}
    result.update(_scope.identity.to_dict())
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial line to the scope."""
    global _scope
    if _scope is None:
        return {"disconnected": True}
    _scope.close()
    _scope = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Query the identity string (model and VM revision) again."""
    scope = _get_scope()
    try:
        ident = scope.identify()
    except BitScopeError as e:
        return _failure(e)
    if not ident:
        return {"error": "No response from device"}
    return {"id": ident, "model": scope.model}


# ─── CONTROL TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def reset() -> dict[str, Any]:
    """Soft-reset the instrument."""
    scope = _get_scope()
    try:
        scope.reset()
    except BitScopeError as e:
        return _failure(e)
    return {"reset": True}


@mcp.tool()
def stop() -> dict[str, Any]:
    """Terminate the running command sequence."""
    scope = _get_scope()
    try:
        scope.stop()
    except BitScopeError as e:
        return _failure(e)
    return {"stopped": True}


@mcp.tool()
def set_led(colour: str, intensity: int) -> dict[str, Any]:
    """Set the intensity of one BS10 LED.

    Args:
        colour: "r" (red), "g" (green) or "y" (yellow).
        intensity: 0-255.
    """
    if not 0 <= intensity <= 255:
        return {"error": "Intensity must be 0-255"}
    scope = _get_scope()
    try:
        scope.led(colour, intensity)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    return {"colour": colour, "intensity": intensity}


# ─── ACQUISITION SETUP TOOLS ──────────────────────────────────────────

@mcp.tool()
def set_timebase(prescaler: int, divisor: int) -> dict[str, Any]:
    """Set the sample clock prescaler and divisor.

    Args:
        prescaler: 0-65535.
        divisor: 0-65535 (e.g. 40 with prescaler 1 gives 1 MHz).
    """
    scope = _get_scope()
    try:
        scope.horizontal(prescaler, divisor)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    return {"prescaler": prescaler, "divisor": divisor}


@mcp.tool()
def set_vertical(voltage_range: str) -> dict[str, Any]:
    """Select the voltage range, e.g. "2v", "500mv" or "10".

    Args:
        voltage_range: Full-scale voltage with optional v / mv suffix.
    """
    scope = _get_scope()
    try:
        volts = scope.vertical(voltage_range)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    return {"volts": volts, "model": scope.model}


@mcp.tool()
def set_trigger(source: str, level: int) -> dict[str, Any]:
    """Set the analog trigger channel and level.

    Args:
        source: "a" or "b".
        level: 0-65535.
    """
    scope = _get_scope()
    try:
        scope.trigger(source, level)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    return {"source": source, "level": level}


@mcp.tool()
def set_trigger_logic(level: int, mask: int) -> dict[str, Any]:
    """Switch to a logic trigger.

    Args:
        level: Bit levels to match (0-255).
        mask: Bits whose state is ignored (0-255).
    """
    scope = _get_scope()
    try:
        scope.trigger_logic(level, mask)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    return {"level": level, "mask": mask}


@mcp.tool()
def set_trigger_mode(edge: bool, falling: bool = False, comparator: bool = False) -> dict[str, Any]:
    """Set the trigger mode.

    Args:
        edge: True for edge triggering, False for level.
        falling: True to trigger on true-to-false transitions.
        comparator: True to use the hardware comparator.
    """
    scope = _get_scope()
    try:
        mode = scope.trigger_mode(edge, falling, comparator)
    except BitScopeError as e:
        return _failure(e)
    return {"mode": f"0x{mode:02x}"}


@mcp.tool()
def set_trigger_timing(hold_off: int, hold_on: int, timeout: int) -> dict[str, Any]:
    """Set trigger hold-off, hold-on (sample ticks) and timeout (6.4 us ticks).

    Args:
        hold_off: 0-65535.
        hold_on: 0-65535.
        timeout: 0-65535, 0 disables the timeout.
    """
    scope = _get_scope()
    try:
        scope.trigger_timing(hold_off, hold_on, timeout)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    return {"hold_off": hold_off, "hold_on": hold_on, "timeout": timeout}


# ─── ACQUISITION TOOLS ────────────────────────────────────────────────

@mcp.tool()
def trace(pre: int = 0, post: int = 1000, delay: int = 0) -> dict[str, Any]:
    """Run an acquisition and wait for its completion report.

    Args:
        pre: Pre-trigger samples (0-65535).
        post: Post-trigger samples (0-65535).
        delay: Post-trigger dead time (0-2^32-1).
    """
    scope = _get_scope()
    try:
        report = scope.trace(pre, post, delay)
    except ValueError as e:
        return {"error": str(e)}
    except BitScopeError as e:
        return _failure(e)
    lines = report.decode("ascii", errors="replace").split("\r")
    return {"report": [line for line in lines if line]}


@mcp.tool()
def trace_terminate() -> dict[str, Any]:
    """End the current acquisition without waiting for a trigger."""
    scope = _get_scope()
    try:
        scope.trace_terminate()
    except BitScopeError as e:
        return _failure(e)
    return {"terminated": True}


@mcp.tool()
def dump(size: int = 256) -> dict[str, Any]:
    """Read acquired samples from the instrument buffer.

    Args:
        size: Number of sample bytes to read (1-65535).
    """
    if not 1 <= size <= 0xFFFF:
        return {"error": "Size must be 1-65535"}
    scope = _get_scope()
    try:
        data = scope.dump(size)
    except BitScopeError as e:
        return _failure(e)
    return {"size": len(data), "samples": list(data)}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("bitscope://device/info")
def resource_device_info() -> str:
    """Identity and model of the connected scope."""
    if _scope is None or _scope.identity is None:
        return json.dumps({"connected": False})
    info = {"connected": True}
    info.update(_scope.identity.to_dict())
    return json.dumps(info)


@mcp.resource("bitscope://device/status")
def resource_device_status() -> str:
    """Connection state and protocol health."""
    if _scope is None:
        return json.dumps({"connected": False})
    session = _scope.session
    return json.dumps({
        "connected": True,
        "unreliable": session.unreliable,
        "last_error": str(session.last_error) if session.last_error else None,
    })


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
