"""Data models for instrument identity and range tables."""

from .identity import ScopeIdentity, identify_model, parse_identity_reply
from .ranges import VERTICAL_RANGES, parse_voltage, vertical_command
