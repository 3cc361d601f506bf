"""Messer - a terminal client for your messages."""

__version__ = "0.4.0"
