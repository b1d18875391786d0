"""Tests for command templates and register-write builders."""

import pytest

from bitscope_mcp.errors import TemplateError
from bitscope_mcp.protocol.commands import (
    DUMP_TRAILER,
    CommandTemplate,
    HexField,
    Opcode,
    build_command,
    build_dump_size,
    build_led,
    build_timebase,
    build_trace_delay,
    build_trace_post,
    build_trigger_logic,
    build_trigger_timing,
    register_template,
    unit,
)
from bitscope_mcp.protocol.hexcodec import Layout


def test_opcode_values():
    assert Opcode.RESET == b"!"
    assert Opcode.STOP == b"."
    assert Opcode.IDENTIFY == b"?"
    assert Opcode.ARM == b">"
    assert Opcode.TRACE_WAIT == b"D"
    assert Opcode.DUMP == b"A"


def test_register_template_skeletons():
    assert register_template(0xFA).skeleton == b"fa@00s"
    assert register_template(0x26, 2).skeleton == b"26@00z00s"
    assert register_template(0x22, 4).skeleton == b"22@00z00z00z00s"


def test_register_template_bad_address():
    with pytest.raises(ValueError):
        register_template(0x100)


def test_plain_template_render():
    template = CommandTemplate(b"2e@0000s", (HexField(3, 2, Layout.PLAIN),))
    assert template.render(0x1A2B) == b"2e@1a2bs"


def test_template_rejects_field_past_end():
    with pytest.raises(TemplateError, match="past the end"):
        CommandTemplate(b"2e@00z00s", (HexField(6, 2),))


def test_template_rejects_field_on_syntax():
    with pytest.raises(TemplateError, match="not a hex placeholder"):
        CommandTemplate(b"2e@00z00s", (HexField(2, 1),))


def test_template_rejects_overlap():
    with pytest.raises(TemplateError, match="overlap"):
        CommandTemplate(b"2e@0000s", (HexField(3, 1), HexField(4, 1)))


def test_template_rejects_bad_width():
    with pytest.raises(TemplateError):
        CommandTemplate(b"00000000000000", (HexField(0, 5),))


def test_render_wrong_value_count():
    with pytest.raises(ValueError):
        register_template(0x14, 2).render(1, 2)


def test_build_command_matches_concatenation():
    a = unit(register_template(0x14, 2), 1)
    b = unit(register_template(0x2E, 2), 40)
    assert build_command([a, b]) == build_command([a]) + build_command([b])


def test_build_command_preserves_order():
    a = unit(register_template(0x05), 0x80)
    b = unit(register_template(0x06), 0x7F)
    assert build_command([b, a]) == b"06@7fs05@80s"


def test_build_command_mixes_literals():
    cmd = build_command([b"[31]@[00]s", unit(register_template(0x1C, 2), 256), Opcode.ARM])
    assert cmd == b"[31]@[00]s1c@00z01s>"


def test_build_led():
    assert build_led("r", 0x10) == b"fa@10s"
    assert build_led("g", 0x80) == b"fb@80s"
    assert build_led("y", 0xC0) == b"fc@c0s"


def test_build_led_unknown_colour():
    with pytest.raises(ValueError):
        build_led("b", 1)


def test_build_timebase():
    assert build_timebase(1, 40) == b"14@01z00s2e@28z00s"


def test_build_trigger_logic():
    assert build_trigger_logic(0x80, 0x7F) == b"05@80s06@7fs"


def test_build_trigger_timing():
    assert build_trigger_timing(0, 0, 1) == b"32@00z00s34@00z00s2c@01z00s"


def test_build_trace_registers():
    assert build_trace_delay(0x01020304) == b"22@04z03z02z01s"
    assert build_trace_post(1000) == b"2a@e8z03s"


def test_build_dump_size():
    assert build_dump_size(1024) == b"1c@00z04s"


def test_dump_trailer_ends_with_arm():
    assert DUMP_TRAILER.endswith(b">")
