"""Shared fixtures for back-office core tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from backoffice_core.models.invoice import (
    BillingContact,
    InvoiceDocument,
    InvoiceLineItem,
    ShippingAddress,
)
from backoffice_core.state.sqlite_adapter import create_local_tables, get_local_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine with every table created."""
    eng = get_local_engine(":memory:")
    await create_local_tables(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture()
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


# ---------------------------------------------------------------------------
# Invoice fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def invoice() -> InvoiceDocument:
    """An unpaid invoice: 145.29 + 5% tax = 152.55."""
    return InvoiceDocument(
        id="inv-1",
        invoice_number="INV-2026-0001",
        order_id="ord-1",
        customer_id="cust-1",
        subtotal=Decimal("145.29"),
        tax_rate=Decimal("0.05"),
        tax_amount=Decimal("7.26"),
        total_amount=Decimal("152.55"),
        amount_paid=Decimal("0"),
        balance_due=Decimal("152.55"),
        status="issued",
        invoice_date=date(2026, 3, 7),
        due_date=date(2026, 4, 6),
    )


@pytest.fixture()
def order() -> ShippingAddress:
    return ShippingAddress(
        order_number="ORD-1001",
        shipping_name="Jane Doe",
        shipping_address_line1="100 King St W",
        shipping_city="Toronto",
        shipping_state="ON",
        shipping_postal_code="M5X 1A9",
        shipping_country="Canada",
    )


@pytest.fixture()
def customer() -> BillingContact:
    return BillingContact(
        full_name="Jane Doe",
        email="jane@example.com",
        phone="+1 416 555 0100",
        company_name=None,
    )


@pytest.fixture()
def line_items() -> list[InvoiceLineItem]:
    return [
        InvoiceLineItem(
            file_name="birth_certificate.pdf",
            source_language="Spanish",
            target_language="English",
            word_count=412,
            rate_per_word=Decimal("0.08"),
            subtotal=Decimal("32.96"),
        ),
        InvoiceLineItem(
            file_name="diploma.pdf",
            source_language="Spanish",
            target_language="English",
            word_count=None,
            rate_per_word=None,
            subtotal=None,
        ),
    ]
