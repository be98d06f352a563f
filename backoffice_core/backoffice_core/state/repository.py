"""Repository classes providing access to the back-office state store.

Each repository takes an ``AsyncSession`` at construction time and operates
within the caller's transaction boundary.  All writes call ``session.flush()``
so that generated defaults are populated; the caller is responsible for calling
``session.commit()`` (or relying on the ``get_session`` context manager).
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice_core.state.tables import (
    BILLABLE_FILE_CATEGORY,
    SESSION_KIND_MAGIC_LINK,
    CustomerTable,
    InvoiceTable,
    LoginSessionTable,
    OrderTable,
    QuoteFileTable,
)

logger = logging.getLogger(__name__)


def hash_token(plaintext: str) -> str:
    """Return the lowercase hex SHA-256 digest under which a token is stored."""
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# CustomerRepository
# ---------------------------------------------------------------------------


class CustomerRepository:
    """Lookups and login bookkeeping for the ``customers`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        email: str,
        *,
        full_name: str | None = None,
        phone: str | None = None,
        customer_type: str = "individual",
        company_name: str | None = None,
        customer_id: str | None = None,
    ) -> CustomerTable:
        """Insert a customer row (used by seeding and tests)."""
        row = CustomerTable(
            id=customer_id or uuid.uuid4().hex,
            email=email.lower().strip(),
            full_name=full_name,
            phone=phone,
            customer_type=customer_type,
            company_name=company_name,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_by_id(self, customer_id: str) -> CustomerTable | None:
        stmt = select(CustomerTable).where(CustomerTable.id == customer_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> CustomerTable | None:
        """Fetch a customer by email address (case-insensitive)."""
        stmt = select(CustomerTable).where(CustomerTable.email == email.lower().strip())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def touch_last_login(self, customer_id: str) -> bool:
        """Record the current time as the customer's last login.

        Runs inside a SAVEPOINT so a failure leaves the enclosing
        transaction usable.  Returns ``False`` instead of raising.
        """
        stmt = update(CustomerTable).where(CustomerTable.id == customer_id).values(last_login_at=datetime.now(UTC))
        try:
            async with self._session.begin_nested():
                await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            logger.warning("Could not update last_login_at for customer=%s: %s", customer_id, exc)
            return False
        return True

    async def mark_magic_link_sent(self, customer_id: str) -> None:
        stmt = (
            update(CustomerTable).where(CustomerTable.id == customer_id).values(magic_link_sent_at=datetime.now(UTC))
        )
        await self._session.execute(stmt)
        await self._session.flush()


# ---------------------------------------------------------------------------
# LoginSessionRepository
# ---------------------------------------------------------------------------


class LoginSessionRepository:
    """Hashed magic-link and session rows in ``customer_sessions``.

    Plaintext tokens never reach this class; callers pass the output of
    :func:`hash_token`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        customer_id: str,
        token_hash: str,
        expires_at: datetime,
        *,
        kind: str = SESSION_KIND_MAGIC_LINK,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginSessionTable:
        row = LoginSessionTable(
            id=uuid.uuid4().hex,
            customer_id=customer_id,
            kind=kind,
            token_hash=token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_by_token_hash(self, token_hash: str, *, kind: str) -> LoginSessionTable | None:
        """Fetch the single row with *token_hash* of the given *kind*."""
        stmt = select(LoginSessionTable).where(
            LoginSessionTable.token_hash == token_hash,
            LoginSessionTable.kind == kind,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def consume(self, session_id: str) -> bool:
        """Set ``used_at`` only if it is still NULL.

        The conditional UPDATE is the replay guard: of any number of
        concurrent callers exactly one sees an affected row.  Returns
        ``True`` for that caller.
        """
        stmt = (
            update(LoginSessionTable)
            .where(
                LoginSessionTable.id == session_id,
                LoginSessionTable.used_at.is_(None),
            )
            .values(used_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def invalidate_unused(self, customer_id: str, *, kind: str = SESSION_KIND_MAGIC_LINK) -> int:
        """Mark every unused row of *kind* for the customer as used."""
        stmt = (
            update(LoginSessionTable)
            .where(
                LoginSessionTable.customer_id == customer_id,
                LoginSessionTable.kind == kind,
                LoginSessionTable.used_at.is_(None),
            )
            .values(used_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# OrderRepository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Read access to the shipping projection of ``orders``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, order_number: str, customer_id: str, **shipping: Any) -> OrderTable:
        """Insert an order row (used by seeding and tests)."""
        row = OrderTable(id=uuid.uuid4().hex, order_number=order_number, customer_id=customer_id, **shipping)
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, order_id: str) -> OrderTable | None:
        stmt = select(OrderTable).where(OrderTable.id == order_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# LineItemRepository
# ---------------------------------------------------------------------------


class LineItemRepository:
    """Billable quote files, i.e. invoice line items."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        quote_id: str,
        file_name: str,
        *,
        source_language: str | None = None,
        target_language: str | None = None,
        word_count: int | None = None,
        rate_per_word: Decimal | None = None,
        subtotal: Decimal | None = None,
        category_slug: str = BILLABLE_FILE_CATEGORY,
    ) -> QuoteFileTable:
        """Insert a quote file row (used by seeding and tests)."""
        row = QuoteFileTable(
            id=uuid.uuid4().hex,
            quote_id=quote_id,
            file_name=file_name,
            source_language=source_language,
            target_language=target_language,
            word_count=word_count,
            rate_per_word=rate_per_word,
            subtotal=subtotal,
            category_slug=category_slug,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def list_billable(self, quote_id: str) -> list[QuoteFileTable]:
        """Return the ``to_translate`` files of a quote in upload order."""
        stmt = (
            select(QuoteFileTable)
            .where(
                QuoteFileTable.quote_id == quote_id,
                QuoteFileTable.category_slug == BILLABLE_FILE_CATEGORY,
            )
            .order_by(QuoteFileTable.created_at, QuoteFileTable.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# InvoiceRepository
# ---------------------------------------------------------------------------


class InvoiceRepository:
    """Read access to ``customer_invoices`` plus the PDF bookkeeping columns."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        *,
        invoice_number: str,
        order_id: str,
        customer_id: str,
        invoice_date: date,
        due_date: date,
        quote_id: str | None = None,
        status: str = "issued",
        notes: str | None = None,
        created_at: datetime | None = None,
        **amounts: Decimal,
    ) -> InvoiceTable:
        """Insert an invoice row (used by seeding and tests).

        *amounts* accepts the money columns by name (``subtotal``,
        ``rush_fee``, ``total_amount`` ...); omitted ones default to zero.
        """
        row = InvoiceTable(
            id=uuid.uuid4().hex,
            invoice_number=invoice_number,
            order_id=order_id,
            customer_id=customer_id,
            quote_id=quote_id,
            status=status,
            invoice_date=invoice_date,
            due_date=due_date,
            notes=notes,
            **amounts,
        )
        if created_at is not None:
            row.created_at = created_at
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, invoice_id: str) -> InvoiceTable | None:
        stmt = select(InvoiceTable).where(InvoiceTable.id == invoice_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_for_order(self, order_id: str) -> InvoiceTable | None:
        """Return the most recently created invoice for *order_id*."""
        stmt = (
            select(InvoiceTable)
            .where(InvoiceTable.order_id == order_id)
            .order_by(InvoiceTable.created_at.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def mark_pdf_generated(self, invoice_id: str, storage_path: str) -> bool:
        """Record where the rendered PDF lives.  Returns True if updated."""
        stmt = (
            update(InvoiceTable)
            .where(InvoiceTable.id == invoice_id)
            .values(pdf_storage_path=storage_path, pdf_generated_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0  # type: ignore[attr-defined]
