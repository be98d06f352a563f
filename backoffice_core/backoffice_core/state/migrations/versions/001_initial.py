"""Initial back-office schema.

Creates ``customers``, ``customer_sessions``, ``orders``, ``quote_files``
and ``customer_invoices`` with the columns the auth and invoice services
use.

Revision ID: 001
Revises: None
Create Date: 2026-02-15 00:00:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ------------------------------------------------------------------
    # customers
    # ------------------------------------------------------------------
    op.create_table(
        "customers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("full_name", sa.String(256), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("customer_type", sa.String(32), nullable=False, server_default="individual"),
        sa.Column("company_name", sa.String(256), nullable=True),
        sa.Column("auth_user_id", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("magic_link_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)

    # ------------------------------------------------------------------
    # customer_sessions
    # ------------------------------------------------------------------
    op.create_table(
        "customer_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False, server_default="magic_link"),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("kind IN ('magic_link','session')", name="ck_customer_sessions_kind"),
    )
    op.create_index("ix_customer_sessions_token", "customer_sessions", ["token_hash"], unique=True)
    op.create_index("ix_customer_sessions_customer", "customer_sessions", ["customer_id"])
    op.create_index("ix_customer_sessions_expires", "customer_sessions", ["expires_at"])

    # ------------------------------------------------------------------
    # orders
    # ------------------------------------------------------------------
    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("shipping_name", sa.String(256), nullable=True),
        sa.Column("shipping_address_line1", sa.String(256), nullable=True),
        sa.Column("shipping_address_line2", sa.String(256), nullable=True),
        sa.Column("shipping_city", sa.String(128), nullable=True),
        sa.Column("shipping_state", sa.String(128), nullable=True),
        sa.Column("shipping_postal_code", sa.String(32), nullable=True),
        sa.Column("shipping_country", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_orders_customer", "orders", ["customer_id"])

    # ------------------------------------------------------------------
    # quote_files
    # ------------------------------------------------------------------
    op.create_table(
        "quote_files",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("quote_id", sa.String(64), nullable=False),
        sa.Column("file_name", sa.String(512), nullable=True),
        sa.Column("source_language", sa.String(64), nullable=True),
        sa.Column("target_language", sa.String(64), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=True),
        sa.Column("rate_per_word", sa.Numeric(10, 4), nullable=True),
        sa.Column("subtotal", sa.Numeric(10, 2), nullable=True),
        sa.Column("category_slug", sa.String(64), nullable=False, server_default="to_translate"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_quote_files_quote_category", "quote_files", ["quote_id", "category_slug"])

    # ------------------------------------------------------------------
    # customer_invoices
    # ------------------------------------------------------------------
    money = sa.Numeric(10, 2)
    op.create_table(
        "customer_invoices",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("invoice_number", sa.String(50), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("quote_id", sa.String(64), nullable=True),
        sa.Column("subtotal", money, nullable=False, server_default="0"),
        sa.Column("certification_total", money, nullable=False, server_default="0"),
        sa.Column("rush_fee", money, nullable=False, server_default="0"),
        sa.Column("delivery_fee", money, nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric(5, 4), nullable=False, server_default="0.05"),
        sa.Column("tax_amount", money, nullable=False, server_default="0"),
        sa.Column("total_amount", money, nullable=False, server_default="0"),
        sa.Column("amount_paid", money, nullable=False, server_default="0"),
        sa.Column("balance_due", money, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="issued"),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("pdf_storage_path", sa.Text(), nullable=True),
        sa.Column("pdf_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft','issued','sent','partial','paid','void','cancelled')",
            name="ck_customer_invoices_status",
        ),
    )
    op.create_index("ix_customer_invoices_number", "customer_invoices", ["invoice_number"], unique=True)
    op.create_index("ix_customer_invoices_order_created", "customer_invoices", ["order_id", "created_at"])
    op.create_index("ix_customer_invoices_customer", "customer_invoices", ["customer_id"])


def downgrade() -> None:
    op.drop_index("ix_customer_invoices_customer")
    op.drop_index("ix_customer_invoices_order_created")
    op.drop_index("ix_customer_invoices_number")
    op.drop_table("customer_invoices")
    op.drop_index("ix_quote_files_quote_category")
    op.drop_table("quote_files")
    op.drop_index("ix_orders_customer")
    op.drop_table("orders")
    op.drop_index("ix_customer_sessions_expires")
    op.drop_index("ix_customer_sessions_customer")
    op.drop_index("ix_customer_sessions_token")
    op.drop_table("customer_sessions")
    op.drop_index("ix_customers_email")
    op.drop_table("customers")
