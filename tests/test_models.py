"""Tests for identity parsing and vertical range tables."""

import pytest

from bitscope_mcp.errors import UnsupportedModelError
from bitscope_mcp.models.identity import identify_model, parse_identity_reply
from bitscope_mcp.models.ranges import parse_voltage, vertical_command


def test_parse_identity_reply_drops_echo():
    assert parse_identity_reply(b"?BS001003\r") == "BS001003"


def test_parse_identity_reply_empty():
    assert parse_identity_reply(b"") == ""


def test_identify_bs10():
    ident = identify_model("BS001003")
    assert ident.model == "bs10"
    assert ident.prefix == "BS00"
    assert ident.version == "1003"
    assert ident.to_dict()["id"] == "BS001003"


def test_identify_bs05():
    assert identify_model("BS000501").model == "bs05"


def test_identify_unsupported():
    with pytest.raises(UnsupportedModelError):
        identify_model("BS032400")
    with pytest.raises(UnsupportedModelError):
        identify_model("")


@pytest.mark.parametrize(
    "text,volts",
    [("2v", 2.0), ("2V", 2.0), ("500mv", 0.5), ("500mV", 0.5), ("10", 10.0), (" 1.1 ", 1.1)],
)
def test_parse_voltage(text, volts):
    assert parse_voltage(text) == pytest.approx(volts)


def test_parse_voltage_invalid():
    with pytest.raises(ValueError):
        parse_voltage("lots")


def test_vertical_command_picks_smallest_covering_range():
    assert vertical_command("bs10", 2.0) == b"64@86z50s66@64z81s"
    assert vertical_command("bs10", 0.5) == b"64@54z65s66@96x6cs"
    assert vertical_command("bs05", 0.5) == b"64@d6z65s66@bcz69s"
    assert vertical_command("bs05", 11) == b"64@6az12s66@8czbas"


def test_vertical_command_out_of_range():
    with pytest.raises(ValueError):
        vertical_command("bs10", 12)


def test_vertical_command_unknown_model():
    with pytest.raises(ValueError):
        vertical_command("bs20", 1)
