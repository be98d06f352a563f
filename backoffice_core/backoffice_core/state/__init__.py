"""State persistence layer (PostgreSQL in production, SQLite locally)."""

from backoffice_core.state.database import get_engine, get_session
from backoffice_core.state.repository import (
    CustomerRepository,
    InvoiceRepository,
    LineItemRepository,
    LoginSessionRepository,
    OrderRepository,
    hash_token,
)

__all__ = [
    "CustomerRepository",
    "InvoiceRepository",
    "LineItemRepository",
    "LoginSessionRepository",
    "OrderRepository",
    "get_engine",
    "get_session",
    "hash_token",
]
