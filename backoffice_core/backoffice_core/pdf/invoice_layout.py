"""Single-page invoice layout.

Builds the content stream for an invoice top-down on an A4 page using
absolute coordinates, then wraps it with :func:`build_single_page_document`.
Text is set in Helvetica (``F1``) and Helvetica-Bold (``F2``).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from backoffice_core.models.invoice import (
    BillingContact,
    InvoiceDocument,
    InvoiceLineItem,
    ShippingAddress,
)
from backoffice_core.pdf.writer import (
    A4_WIDTH,
    build_single_page_document,
    encode_text,
    escape_pdf_text,
    format_number,
)

DEFAULT_BRAND_NAME = "CETHOS Translation Services"
DEFAULT_SUPPORT_EMAIL = "support@cethos.com"

LEFT_MARGIN = 50
RIGHT_COLUMN = 350
TOTALS_LABEL_X = 380
TOTALS_VALUE_X = 470

# Columns of the line-item table.
COL_DESCRIPTION = LEFT_MARGIN + 5
COL_QUANTITY = 300
COL_RATE = 390
COL_AMOUNT = 470

DESCRIPTION_MAX_CHARS = 45
NOTES_MAX_CHARS = 80
# Rows beyond this are folded into a summary row so totals stay on the page.
MAX_TABLE_ROWS = 18

BRAND_COLOR = (0.118, 0.251, 0.686)
TABLE_HEADER_SHADE = (0.95, 0.95, 0.95)
BLACK = (0, 0, 0)
WHITE = (1, 1, 1)

_CENTS = Decimal("0.01")
_RATE_PLACES = Decimal("0.0001")
_PERCENT_PLACES = Decimal("0.1")


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _to_decimal(value: Decimal | float | int | str | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def format_money(value: Decimal | float | int | str | None) -> str:
    """``$`` plus two decimals, rounded half-up."""
    return f"${_to_decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP)}"


def format_rate(value: Decimal | float | int | str | None) -> str:
    """Per-word rate with four decimals, e.g. ``$0.0800``."""
    return f"${_to_decimal(value).quantize(_RATE_PLACES, rounding=ROUND_HALF_UP)}"


def format_percent(rate: Decimal | float | int | str | None) -> str:
    """Fractional rate as a one-decimal percentage: ``0.13`` -> ``13.0%``."""
    pct = (_to_decimal(rate) * 100).quantize(_PERCENT_PLACES, rounding=ROUND_HALF_UP)
    return f"{pct}%"


def format_date(value: date) -> str:
    """US short date without zero padding (``3/7/2026``)."""
    return f"{value.month}/{value.day}/{value.year}"


def _is_positive(value: Decimal | None) -> bool:
    return value is not None and value > 0


# ---------------------------------------------------------------------------
# Content stream
# ---------------------------------------------------------------------------


class ContentStream:
    """Accumulates page-description operators, one per line."""

    def __init__(self) -> None:
        self._ops: list[bytes] = []

    def text(self, x: float, y: float, value: str, *, size: int = 10, font: str = "F1") -> None:
        prefix = f"BT /{font} {size} Tf {format_number(x)} {format_number(y)} Td (".encode("ascii")
        self._ops.append(prefix + encode_text(escape_pdf_text(value)) + b") Tj ET")

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        coords = " ".join(format_number(v) for v in (x1, y1))
        target = " ".join(format_number(v) for v in (x2, y2))
        self._ops.append(f"{coords} m {target} l S".encode("ascii"))

    def fill_color(self, rgb: tuple[float, float, float]) -> None:
        self._ops.append(f"{' '.join(format_number(c) for c in rgb)} rg".encode("ascii"))

    def fill_rect(self, x: float, y: float, width: float, height: float, rgb: tuple[float, float, float]) -> None:
        """Paint a filled rectangle, then reset the fill colour to black."""
        color = " ".join(format_number(c) for c in rgb)
        box = " ".join(format_number(v) for v in (x, y, width, height))
        self._ops.append(f"{color} rg {box} re f".encode("ascii"))
        self.fill_color(BLACK)

    def to_bytes(self) -> bytes:
        return b"\n".join(self._ops)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------


def _truncate(value: str, limit: int) -> str:
    return value[:limit]


def _layout_header(stream: ContentStream, brand_name: str) -> None:
    stream.fill_rect(0, 780, A4_WIDTH, 62, BRAND_COLOR)
    stream.fill_color(WHITE)
    stream.text(LEFT_MARGIN, 800, brand_name, size=18, font="F2")
    stream.fill_color(BLACK)


def _layout_metadata(stream: ContentStream, invoice: InvoiceDocument, order: ShippingAddress | None) -> float:
    stream.text(LEFT_MARGIN, 760, "INVOICE", size=24, font="F2")

    left_y = 740
    stream.text(LEFT_MARGIN, left_y, f"Invoice #: {invoice.invoice_number}", font="F2")
    if order is not None and order.order_number:
        left_y -= 15
        stream.text(LEFT_MARGIN, left_y, f"Order #: {order.order_number}")

    right_y = 740
    stream.text(RIGHT_COLUMN, right_y, f"Date: {format_date(invoice.invoice_date)}")
    right_y -= 15
    stream.text(RIGHT_COLUMN, right_y, f"Due Date: {format_date(invoice.due_date)}")
    right_y -= 15
    stream.text(RIGHT_COLUMN, right_y, f"Status: {(invoice.status or 'draft').upper()}", font="F2")

    return min(left_y, right_y) - 25


def _layout_parties(
    stream: ContentStream,
    y: float,
    customer: BillingContact | None,
    order: ShippingAddress | None,
) -> float:
    """Render Bill To (left) and Ship To (right) from the same top line."""
    bill_y = y
    stream.text(LEFT_MARGIN, bill_y, "Bill To:", font="F2")
    bill_y -= 15
    if customer is not None:
        if customer.company_name:
            stream.text(LEFT_MARGIN, bill_y, customer.company_name)
            bill_y -= 14
        stream.text(LEFT_MARGIN, bill_y, customer.full_name or "")
        bill_y -= 14
        stream.text(LEFT_MARGIN, bill_y, customer.email or "")
        bill_y -= 14
        if customer.phone:
            stream.text(LEFT_MARGIN, bill_y, customer.phone)
            bill_y -= 14

    ship_y = y
    if order is not None:
        stream.text(RIGHT_COLUMN, ship_y, "Ship To:", font="F2")
        ship_y -= 15
        lines = [
            order.shipping_name,
            order.shipping_address_line1,
            order.shipping_address_line2,
            order.locality(),
            order.shipping_country,
        ]
        for value in lines:
            if value:
                stream.text(RIGHT_COLUMN, ship_y, value)
                ship_y -= 14

    return min(bill_y, ship_y) - 20


def _layout_line_items(
    stream: ContentStream,
    y: float,
    invoice: InvoiceDocument,
    line_items: Sequence[InvoiceLineItem],
) -> float:
    right_edge = A4_WIDTH - LEFT_MARGIN
    stream.line(LEFT_MARGIN, y, right_edge, y)
    y -= 5

    stream.fill_rect(LEFT_MARGIN, y - 12, A4_WIDTH - LEFT_MARGIN * 2, 16, TABLE_HEADER_SHADE)
    stream.text(COL_DESCRIPTION, y, "Description", size=9, font="F2")
    stream.text(COL_QUANTITY, y, "Qty/Words", size=9, font="F2")
    stream.text(COL_RATE, y, "Rate", size=9, font="F2")
    stream.text(COL_AMOUNT, y, "Amount", size=9, font="F2")
    y -= 20

    if line_items:
        shown = list(line_items)
        overflow: list[InvoiceLineItem] = []
        if len(shown) > MAX_TABLE_ROWS:
            shown, overflow = shown[: MAX_TABLE_ROWS - 1], shown[MAX_TABLE_ROWS - 1 :]

        for item in shown:
            stream.text(COL_DESCRIPTION, y, _truncate(item.description(), DESCRIPTION_MAX_CHARS), size=9)
            stream.text(COL_QUANTITY, y, str(item.word_count) if item.word_count else "-", size=9)
            stream.text(COL_RATE, y, format_rate(item.rate_per_word) if item.rate_per_word else "-", size=9)
            stream.text(COL_AMOUNT, y, format_money(item.subtotal) if item.subtotal else "-", size=9)
            y -= 16

        if overflow:
            rest = sum((_to_decimal(item.subtotal) for item in overflow), Decimal("0"))
            stream.text(COL_DESCRIPTION, y, f"+ {len(overflow)} more files", size=9)
            stream.text(COL_AMOUNT, y, format_money(rest), size=9)
            y -= 16
    else:
        stream.text(COL_DESCRIPTION, y, "Translation Services", size=9)
        stream.text(COL_AMOUNT, y, format_money(invoice.subtotal), size=9)
        y -= 16

    y -= 10
    stream.line(LEFT_MARGIN, y, right_edge, y)
    return y - 20


def _layout_totals(stream: ContentStream, y: float, invoice: InvoiceDocument) -> float:
    def row(label: str, amount: Decimal, *, size: int = 10, font: str = "F1") -> None:
        stream.text(TOTALS_LABEL_X, y, label, size=size, font=font)
        stream.text(TOTALS_VALUE_X, y, format_money(amount), size=size, font=font)

    row("Subtotal:", invoice.subtotal)
    y -= 16

    optional_rows = [
        ("Certification:", invoice.certification_total),
        ("Rush Fee:", invoice.rush_fee),
        ("Delivery Fee:", invoice.delivery_fee),
    ]
    for label, amount in optional_rows:
        if _is_positive(amount):
            row(label, amount)
            y -= 16

    if _is_positive(invoice.tax_amount):
        row(f"Tax ({format_percent(invoice.tax_rate)}):", invoice.tax_amount)
        y -= 16

    stream.line(TOTALS_LABEL_X, y + 2, A4_WIDTH - LEFT_MARGIN, y + 2)
    y -= 4
    row("Total:", invoice.total_amount, size=12, font="F2")
    y -= 18

    if _is_positive(invoice.amount_paid):
        row("Amount Paid:", invoice.amount_paid)
        y -= 16

    if _is_positive(invoice.balance_due):
        row("Balance Due:", invoice.balance_due, size=12, font="F2")
        y -= 16

    return y


def _layout_notes(stream: ContentStream, y: float, notes: str | None) -> None:
    if not notes:
        return
    y -= 20
    stream.text(LEFT_MARGIN, y, "Notes:", font="F2")
    y -= 15
    stream.text(LEFT_MARGIN, y, _truncate(notes, NOTES_MAX_CHARS), size=9)


def _layout_footer(stream: ContentStream, brand_name: str, support_email: str) -> None:
    stream.text(LEFT_MARGIN, 40, f"Thank you for choosing {brand_name}.", size=9)
    stream.text(LEFT_MARGIN, 28, f"Questions? Contact us at {support_email}", size=8)


def render_invoice_content(
    invoice: InvoiceDocument,
    order: ShippingAddress | None,
    customer: BillingContact | None,
    line_items: Sequence[InvoiceLineItem] = (),
    *,
    brand_name: str = DEFAULT_BRAND_NAME,
    support_email: str = DEFAULT_SUPPORT_EMAIL,
) -> bytes:
    """Return the raw (uncompressed) content stream for *invoice*."""
    stream = ContentStream()
    _layout_header(stream, brand_name)
    y = _layout_metadata(stream, invoice, order)
    stream.line(LEFT_MARGIN, y, A4_WIDTH - LEFT_MARGIN, y)
    y = _layout_parties(stream, y - 20, customer, order)
    y = _layout_line_items(stream, y, invoice, line_items)
    y = _layout_totals(stream, y, invoice)
    _layout_notes(stream, y, invoice.notes)
    _layout_footer(stream, brand_name, support_email)
    return stream.to_bytes()


def build_invoice_pdf(
    invoice: InvoiceDocument,
    order: ShippingAddress | None,
    customer: BillingContact | None,
    line_items: Sequence[InvoiceLineItem] = (),
    *,
    brand_name: str = DEFAULT_BRAND_NAME,
    support_email: str = DEFAULT_SUPPORT_EMAIL,
) -> bytes:
    """Render *invoice* as a complete single-page PDF 1.4 document.

    Parameters
    ----------
    invoice:
        Header, dates and money columns.
    order:
        Shipping projection of the invoiced order, or ``None`` to omit the
        Ship To block and order number.
    customer:
        Billing contact, or ``None`` to print an empty Bill To block.
    line_items:
        Billable files.  When empty a single "Translation Services" row
        priced at the invoice subtotal is printed instead.

    Returns
    -------
    bytes
        The PDF file, starting with ``%PDF-1.4`` and ending with ``%%EOF``.
    """
    content = render_invoice_content(
        invoice,
        order,
        customer,
        line_items,
        brand_name=brand_name,
        support_email=support_email,
    )
    return build_single_page_document(content)
