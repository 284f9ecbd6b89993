"""LMS - municipal land and tax record management backend."""

__version__ = "1.0.0"
