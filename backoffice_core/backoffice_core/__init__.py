"""Core domain layer for the translation back-office services."""

__version__ = "0.1.0"
