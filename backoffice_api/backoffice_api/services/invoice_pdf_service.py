"""Invoice PDF rendering and storage.

Resolves an invoice (directly or as the latest invoice of an order),
gathers the order, customer and line-item projections, renders the PDF
with :mod:`backoffice_core.pdf`, uploads it to the configured blob store
and finally records the storage path on the invoice row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backoffice_core.errors import MissingInputError, NotFoundError
from backoffice_core.models.invoice import (
    BillingContact,
    InvoiceDocument,
    InvoiceLineItem,
    ShippingAddress,
)
from backoffice_core.pdf.invoice_layout import (
    DEFAULT_BRAND_NAME,
    DEFAULT_SUPPORT_EMAIL,
    build_invoice_pdf,
)
from backoffice_core.state.repository import (
    CustomerRepository,
    InvoiceRepository,
    LineItemRepository,
    OrderRepository,
)
from backoffice_core.state.tables import InvoiceTable
from backoffice_core.storage.blob_store import BlobStore, invoice_object_key
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

INVOICE_NOT_FOUND = "Invoice not found"
NO_INVOICE_FOR_ORDER = "No invoice found for this order"
MISSING_IDENTIFIER = "Must provide invoice_id or order_id"


@dataclass(frozen=True)
class RenderedInvoice:
    """Outcome of a successful render + upload."""

    invoice_id: str
    invoice_number: str
    storage_path: str
    pdf_bytes: bytes

    @property
    def filename(self) -> str:
        return f"{self.invoice_number}.pdf"


class InvoicePdfService:
    """Renders invoices to PDF and stores them.

    Parameters
    ----------
    session:
        An async database session (caller manages transaction).
    blob_store:
        Upload sink for the rendered bytes.
    brand_name, support_email:
        Branding printed in the header and footer.
    """

    def __init__(
        self,
        session: AsyncSession,
        blob_store: BlobStore,
        *,
        brand_name: str = DEFAULT_BRAND_NAME,
        support_email: str = DEFAULT_SUPPORT_EMAIL,
    ) -> None:
        self._session = session
        self._blob_store = blob_store
        self._brand_name = brand_name
        self._support_email = support_email
        self._invoices = InvoiceRepository(session)
        self._orders = OrderRepository(session)
        self._customers = CustomerRepository(session)
        self._line_items = LineItemRepository(session)

    async def render(
        self,
        *,
        invoice_id: str | None = None,
        order_id: str | None = None,
    ) -> RenderedInvoice:
        """Render, upload and record the PDF for one invoice.

        ``invoice_id`` wins when both identifiers are given.

        Raises
        ------
        MissingInputError
            If neither identifier is given.
        NotFoundError
            If the invoice (or any invoice for the order) does not exist.
        StorageFailureError
            If the upload fails.  The invoice row is left untouched.
        """
        invoice = await self._resolve_invoice(invoice_id, order_id)

        pdf_bytes = await self._render_pdf(invoice)
        key = invoice_object_key(invoice.customer_id, invoice.invoice_number)
        storage_path = await self._blob_store.put(key, pdf_bytes, content_type="application/pdf")

        await self._invoices.mark_pdf_generated(invoice.id, storage_path)
        logger.info(
            "Invoice PDF generated: invoice=%s number=%s (%d bytes)",
            invoice.id,
            invoice.invoice_number,
            len(pdf_bytes),
        )
        return RenderedInvoice(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            storage_path=storage_path,
            pdf_bytes=pdf_bytes,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _resolve_invoice(self, invoice_id: str | None, order_id: str | None) -> InvoiceTable:
        if invoice_id:
            invoice = await self._invoices.get(invoice_id)
            if invoice is None:
                raise NotFoundError(INVOICE_NOT_FOUND)
            return invoice
        if order_id:
            invoice = await self._invoices.get_latest_for_order(order_id)
            if invoice is None:
                raise NotFoundError(NO_INVOICE_FOR_ORDER)
            return invoice
        raise MissingInputError(MISSING_IDENTIFIER)

    async def _render_pdf(self, invoice: InvoiceTable) -> bytes:
        order_row = await self._orders.get(invoice.order_id)
        customer_row = await self._customers.get_by_id(invoice.customer_id)
        item_rows = await self._line_items.list_billable(invoice.quote_id) if invoice.quote_id else []

        return build_invoice_pdf(
            InvoiceDocument.model_validate(invoice),
            ShippingAddress.model_validate(order_row) if order_row is not None else None,
            BillingContact.model_validate(customer_row) if customer_row is not None else None,
            [InvoiceLineItem.model_validate(row) for row in item_rows],
            brand_name=self._brand_name,
            support_email=self._support_email,
        )
