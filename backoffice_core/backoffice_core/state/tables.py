"""SQLAlchemy 2.0 ORM table definitions for the back-office state store.

All tables use the ``Mapped`` / ``mapped_column`` declaration style.  The
``Base`` declarative base is exported for use by Alembic migrations and the
repository layer.  Only the columns read or written by the auth and invoice
services are declared; the hosted schema carries more.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Declarative base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base for all back-office tables."""


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


class CustomerTable(Base):
    """Customer accounts.

    ``auth_user_id`` and ``notes`` are internal and must never leave the
    service; callers only ever see the sanitized projection.
    """

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_type: Mapped[str] = mapped_column(String(32), nullable=False, default="individual")
    company_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    auth_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    magic_link_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_customers_email", "email", unique=True),)


# ---------------------------------------------------------------------------
# Login sessions (magic links + issued browser sessions)
# ---------------------------------------------------------------------------

SESSION_KIND_MAGIC_LINK = "magic_link"
SESSION_KIND_SESSION = "session"


class LoginSessionTable(Base):
    """Hashed login credentials for customers.

    A row of kind ``magic_link`` is a single-use emailed token; a row of
    kind ``session`` is the browser session issued when a magic link is
    exchanged.  Only the SHA-256 hex digest of a token is stored.
    ``used_at`` is set exactly once (consumption or logout).
    """

    __tablename__ = "customer_sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default=SESSION_KIND_MAGIC_LINK)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "kind IN ('magic_link','session')",
            name="ck_customer_sessions_kind",
        ),
        Index("ix_customer_sessions_token", "token_hash", unique=True),
        Index("ix_customer_sessions_customer", "customer_id"),
        Index("ix_customer_sessions_expires", "expires_at"),
    )


# ---------------------------------------------------------------------------
# Orders (shipping projection only)
# ---------------------------------------------------------------------------


class OrderTable(Base):
    """Orders, reduced to the identity and shipping columns invoices print."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    order_number: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    shipping_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    shipping_address_line1: Mapped[str | None] = mapped_column(String(256), nullable=True)
    shipping_address_line2: Mapped[str | None] = mapped_column(String(256), nullable=True)
    shipping_city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    shipping_state: Mapped[str | None] = mapped_column(String(128), nullable=True)
    shipping_postal_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    shipping_country: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_orders_customer", "customer_id"),)


# ---------------------------------------------------------------------------
# Quote files (invoice line items)
# ---------------------------------------------------------------------------

BILLABLE_FILE_CATEGORY = "to_translate"


class QuoteFileTable(Base):
    """Documents attached to a quote.

    Only files in the ``to_translate`` category are billable; reference
    material and other categories share the table but never appear on an
    invoice.
    """

    __tablename__ = "quote_files"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    quote_id: Mapped[str] = mapped_column(String(64), nullable=False)
    file_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    source_language: Mapped[str | None] = mapped_column(String(64), nullable=True)
    target_language: Mapped[str | None] = mapped_column(String(64), nullable=True)
    word_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rate_per_word: Mapped[Decimal | None] = mapped_column(Numeric(10, 4), nullable=True)
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    category_slug: Mapped[str] = mapped_column(String(64), nullable=False, default=BILLABLE_FILE_CATEGORY)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_quote_files_quote_category", "quote_id", "category_slug"),)


# ---------------------------------------------------------------------------
# Customer invoices
# ---------------------------------------------------------------------------

INVOICE_STATUSES = ("draft", "issued", "sent", "partial", "paid", "void", "cancelled")


class InvoiceTable(Base):
    """Customer invoices.

    Amounts are copied from the order at invoice time.  The PDF columns are
    populated by the invoice renderer after a successful upload.
    """

    __tablename__ = "customer_invoices"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    quote_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    certification_total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    rush_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    delivery_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(5, 4), nullable=False, default=Decimal("0.05"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    balance_due: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="issued")
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    pdf_storage_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','issued','sent','partial','paid','void','cancelled')",
            name="ck_customer_invoices_status",
        ),
        Index("ix_customer_invoices_number", "invoice_number", unique=True),
        Index("ix_customer_invoices_order_created", "order_id", "created_at"),
        Index("ix_customer_invoices_customer", "customer_id"),
    )
