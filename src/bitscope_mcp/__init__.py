"""Driver and MCP server for BitScope BS05/BS10 USB oscilloscopes."""

__version__ = "0.1.0"
