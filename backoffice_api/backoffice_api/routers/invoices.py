"""Invoice PDF endpoints.

``POST /invoices/pdf`` renders and stores the PDF and answers with JSON;
``GET /invoices/pdf`` does the same and streams the PDF back as a download.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from backoffice_api.dependencies import InvoicePdfServiceDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


class RenderInvoiceRequest(BaseModel):
    """Identify the invoice directly or through its order."""

    invoice_id: str | None = Field(default=None, description="Invoice to render.")
    order_id: str | None = Field(default=None, description="Render the order's latest invoice.")


class RenderInvoiceResponse(BaseModel):
    success: bool = True
    invoice_id: str
    invoice_number: str
    pdf_storage_path: str


@router.post("/pdf", response_model=RenderInvoiceResponse)
async def generate_invoice_pdf(
    body: RenderInvoiceRequest,
    service: InvoicePdfServiceDep,
    session: SessionDep,
) -> dict[str, Any]:
    """Render and store an invoice PDF."""
    rendered = await service.render(invoice_id=body.invoice_id, order_id=body.order_id)
    await session.commit()
    return {
        "success": True,
        "invoice_id": rendered.invoice_id,
        "invoice_number": rendered.invoice_number,
        "pdf_storage_path": rendered.storage_path,
    }


@router.get("/pdf")
async def download_invoice_pdf(
    service: InvoicePdfServiceDep,
    session: SessionDep,
    invoice_id: str | None = Query(default=None),
    order_id: str | None = Query(default=None),
) -> Response:
    """Render and store an invoice PDF, then return it as an attachment."""
    rendered = await service.render(invoice_id=invoice_id, order_id=order_id)
    await session.commit()
    return Response(
        content=rendered.pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{rendered.filename}"'},
    )
