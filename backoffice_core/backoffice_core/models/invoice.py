"""Invoice value objects consumed by the PDF layout.

The layout never touches ORM rows directly; the invoice service projects
the ``customer_invoices``, ``orders``, ``customers`` and ``quote_files``
rows into these models first.  All money fields are ``Decimal`` so that
formatting can round half-up without float drift.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class InvoiceDocument(BaseModel):
    """Header, dates and money columns of a single invoice."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_number: str = Field(..., min_length=1)
    order_id: str
    customer_id: str
    quote_id: str | None = None

    subtotal: Decimal = Field(default=Decimal("0"), ge=0)
    certification_total: Decimal = Field(default=Decimal("0"), ge=0)
    rush_fee: Decimal = Field(default=Decimal("0"), ge=0)
    delivery_fee: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0)
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0)
    balance_due: Decimal = Field(default=Decimal("0"), ge=0)

    status: str = "issued"
    invoice_date: date
    due_date: date
    notes: str | None = None


class BillingContact(BaseModel):
    """The customer block printed under "Bill To"."""

    model_config = ConfigDict(from_attributes=True)

    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    company_name: str | None = None


class ShippingAddress(BaseModel):
    """The order's shipping block printed under "Ship To"."""

    model_config = ConfigDict(from_attributes=True)

    order_number: str | None = None
    shipping_name: str | None = None
    shipping_address_line1: str | None = None
    shipping_address_line2: str | None = None
    shipping_city: str | None = None
    shipping_state: str | None = None
    shipping_postal_code: str | None = None
    shipping_country: str | None = None

    def locality(self) -> str:
        """``"City, State, Postal"`` with missing parts skipped."""
        return ", ".join(part for part in (self.shipping_city, self.shipping_state, self.shipping_postal_code) if part)


class InvoiceLineItem(BaseModel):
    """One billable file on the invoice."""

    model_config = ConfigDict(from_attributes=True)

    file_name: str | None = None
    source_language: str | None = None
    target_language: str | None = None
    word_count: int | None = None
    rate_per_word: Decimal | None = None
    subtotal: Decimal | None = None

    def description(self) -> str:
        """``"file (src > tgt)"`` as printed in the Description column."""
        return f"{self.file_name or 'Translation'} ({self.source_language or '?'} > {self.target_language or '?'})"
