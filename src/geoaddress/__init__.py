"""Polymorphic address storage with queued geocoding."""

__version__ = "0.1.0"
