"""Starlette middleware for the back-office API."""
