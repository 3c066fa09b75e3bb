"""Trend signal analysis & pattern classification engine."""

__version__ = "0.1.0"
