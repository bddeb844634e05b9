"""Shared daily task board with carry-over and remote synchronization."""

__version__ = "0.3.0"
