"""Minimal PDF 1.4 object writer.

Documents are assembled as an arena of numbered indirect objects.  Object
numbers can be reserved before their bodies are known so that forward
references (Catalog -> Pages -> Page) resolve without a second pass.  The
cross-reference table is computed from the real byte offsets of each
``N 0 obj`` header as the file is serialized.
"""

from __future__ import annotations

import re

PDF_HEADER = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n"

# A4 in PostScript points.
A4_WIDTH = 595.28
A4_HEIGHT = 841.89

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


class PdfWriterError(ValueError):
    """Raised when a document is serialized with dangling object numbers."""


def escape_pdf_text(text: str) -> str:
    """Make *text* safe to embed in a PDF literal string ``( ... )``.

    Backslash and both parentheses are escaped; control characters
    (newlines included) are replaced with a space so a single ``Tj``
    operator always produces one visual line.
    """
    text = _CONTROL_CHARS_RE.sub(" ", text)
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def encode_text(text: str) -> bytes:
    """Encode *text* for a font using ``/WinAnsiEncoding``.

    Characters outside cp1252 are rendered as ``?``.
    """
    return text.encode("cp1252", errors="replace")


def format_number(value: float | int) -> str:
    """Render a coordinate or colour component without trailing zeros."""
    if isinstance(value, int):
        return str(value)
    rendered = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if rendered in ("", "-0") else rendered


class PdfWriter:
    """Collects indirect objects and serializes them with an exact xref."""

    def __init__(self) -> None:
        self._objects: dict[int, bytes | None] = {}
        self._root: int | None = None

    def reserve(self) -> int:
        """Allocate the next object number without a body."""
        number = len(self._objects) + 1
        self._objects[number] = None
        return number

    def set_object(self, number: int, body: bytes) -> None:
        if number not in self._objects:
            raise PdfWriterError(f"Object {number} was never reserved")
        self._objects[number] = body

    def add_object(self, body: bytes) -> int:
        number = self.reserve()
        self._objects[number] = body
        return number

    def add_stream(self, data: bytes, number: int | None = None) -> int:
        """Add a content stream whose ``/Length`` is the exact byte count."""
        body = b"<< /Length %d >>\nstream\n" % len(data) + data + b"\nendstream"
        if number is None:
            return self.add_object(body)
        self.set_object(number, body)
        return number

    def set_root(self, number: int) -> None:
        self._root = number

    def to_bytes(self) -> bytes:
        """Serialize the header, objects, xref table and trailer."""
        if self._root is None:
            raise PdfWriterError("Document has no root catalog")
        missing = sorted(number for number, body in self._objects.items() if body is None)
        if missing:
            raise PdfWriterError(f"Reserved objects without a body: {missing}")

        out = bytearray(PDF_HEADER)
        offsets: list[int] = []
        for number in sorted(self._objects):
            offsets.append(len(out))
            out += b"%d 0 obj\n" % number
            out += self._objects[number]  # type: ignore[operator]
            out += b"\nendobj\n"

        size = len(offsets) + 1
        xref_offset = len(out)
        out += b"xref\n0 %d\n" % size
        # Each entry is exactly 20 bytes including the two-byte EOL.
        out += b"0000000000 65535 f\r\n"
        for offset in offsets:
            out += b"%010d 00000 n\r\n" % offset
        out += b"trailer\n<< /Size %d /Root %d 0 R >>\n" % (size, self._root)
        out += b"startxref\n%d\n%%%%EOF" % xref_offset
        return bytes(out)


def build_single_page_document(
    content: bytes,
    *,
    width: float = A4_WIDTH,
    height: float = A4_HEIGHT,
) -> bytes:
    """Wrap one content stream in a one-page document.

    Object layout: 1 Catalog, 2 Pages, 3 Page, 4 content stream,
    5 Helvetica (``F1``), 6 Helvetica-Bold (``F2``).  Both fonts use
    ``/WinAnsiEncoding``.
    """
    writer = PdfWriter()
    catalog = writer.reserve()
    pages = writer.reserve()
    page = writer.reserve()
    stream = writer.reserve()
    regular = writer.reserve()
    bold = writer.reserve()

    media_box = f"0 0 {format_number(width)} {format_number(height)}"
    writer.set_object(catalog, b"<< /Type /Catalog /Pages %d 0 R >>" % pages)
    writer.set_object(pages, b"<< /Type /Pages /Kids [%d 0 R] /Count 1 >>" % page)
    writer.set_object(
        page,
        (
            f"<< /Type /Page /Parent {pages} 0 R /MediaBox [{media_box}] "
            f"/Contents {stream} 0 R "
            f"/Resources << /Font << /F1 {regular} 0 R /F2 {bold} 0 R >> >> >>"
        ).encode("ascii"),
    )
    writer.add_stream(content, stream)
    writer.set_object(
        regular,
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    )
    writer.set_object(
        bold,
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica-Bold /Encoding /WinAnsiEncoding >>",
    )
    writer.set_root(catalog)
    return writer.to_bytes()
