"""Small helpers shared across the package."""

from .printable import render
