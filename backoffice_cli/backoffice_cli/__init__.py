"""Operator CLI for the back-office services."""

__version__ = "0.1.0"
