"""Immersion Facilitée — Agency platform (PE referential sync, operator API)."""

__version__ = "0.1.0"
