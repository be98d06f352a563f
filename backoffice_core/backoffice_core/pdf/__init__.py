"""Hand-built PDF output for invoices."""

from backoffice_core.pdf.invoice_layout import build_invoice_pdf, format_money
from backoffice_core.pdf.writer import PdfWriter, build_single_page_document, escape_pdf_text

__all__ = [
    "PdfWriter",
    "build_invoice_pdf",
    "build_single_page_document",
    "escape_pdf_text",
    "format_money",
]
