"""Tests for the low-level PDF object writer."""

from __future__ import annotations

import re

import pytest
from backoffice_core.pdf.writer import (
    PdfWriter,
    PdfWriterError,
    build_single_page_document,
    encode_text,
    escape_pdf_text,
    format_number,
)


def _xref_offsets(pdf: bytes) -> list[int]:
    """Return the in-use offsets listed in the cross-reference table."""
    start = int(re.search(rb"startxref\n(\d+)\n%%EOF$", pdf).group(1))
    assert pdf[start : start + 5] == b"xref\n"
    header = re.match(rb"xref\n0 (\d+)\n", pdf[start:])
    size = int(header.group(1))
    table = pdf[start + header.end() : start + header.end() + size * 20]
    entries = [table[i : i + 20] for i in range(0, len(table), 20)]
    assert entries[0] == b"0000000000 65535 f\r\n"
    return [int(entry[:10]) for entry in entries[1:]]


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


class TestEscapePdfText:
    def test_escapes_parentheses_and_backslash(self) -> None:
        assert escape_pdf_text(r"O'Brien (Ltd) \ Co") == r"O'Brien \(Ltd\) \\ Co"

    def test_backslash_escaped_once(self) -> None:
        # The escaped parentheses must not have their backslashes doubled.
        assert escape_pdf_text("(") == "\\("
        assert escape_pdf_text("\\(") == "\\\\\\("

    def test_control_characters_become_spaces(self) -> None:
        assert escape_pdf_text("line one\nline two\r\tend") == "line one line two  end"

    def test_plain_text_unchanged(self) -> None:
        assert escape_pdf_text("Invoice #: INV-1") == "Invoice #: INV-1"


class TestEncodeText:
    def test_latin1_characters_are_single_bytes(self) -> None:
        assert encode_text("José") == b"Jos\xe9"

    def test_unencodable_characters_become_question_marks(self) -> None:
        assert encode_text("日本") == b"??"


class TestFormatNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(50, "50"), (595.28, "595.28"), (0.118, "0.118"), (0.95, "0.95"), (1.0, "1"), (0.0, "0")],
    )
    def test_renders_without_trailing_zeros(self, value: float, expected: str) -> None:
        assert format_number(value) == expected


# ---------------------------------------------------------------------------
# Writer
# ---------------------------------------------------------------------------


class TestPdfWriter:
    def test_requires_root(self) -> None:
        writer = PdfWriter()
        writer.add_object(b"<< >>")
        with pytest.raises(PdfWriterError, match="root"):
            writer.to_bytes()

    def test_rejects_unfilled_reservations(self) -> None:
        writer = PdfWriter()
        root = writer.add_object(b"<< /Type /Catalog /Pages 2 0 R >>")
        writer.reserve()
        writer.set_root(root)
        with pytest.raises(PdfWriterError, match="without a body"):
            writer.to_bytes()

    def test_set_object_requires_reservation(self) -> None:
        with pytest.raises(PdfWriterError):
            PdfWriter().set_object(3, b"<< >>")

    def test_stream_length_matches_data(self) -> None:
        writer = PdfWriter()
        data = b"BT /F1 10 Tf 50 700 Td (Hello) Tj ET"
        number = writer.add_stream(data)
        writer.set_root(number)
        pdf = writer.to_bytes()
        assert b"<< /Length %d >>\nstream\n" % len(data) + data + b"\nendstream" in pdf


class TestSinglePageDocument:
    @pytest.fixture()
    def pdf(self) -> bytes:
        return build_single_page_document(b"BT /F1 10 Tf 50 700 Td (Caf\xe9) Tj ET")

    def test_header_and_trailer(self, pdf: bytes) -> None:
        assert pdf.startswith(b"%PDF-1.4\n")
        assert pdf.endswith(b"%%EOF")
        assert b"trailer\n<< /Size 7 /Root 1 0 R >>" in pdf

    def test_xref_offsets_point_at_object_headers(self, pdf: bytes) -> None:
        offsets = _xref_offsets(pdf)
        assert len(offsets) == 6
        for number, offset in enumerate(offsets, start=1):
            expected = b"%d 0 obj\n" % number
            assert pdf[offset : offset + len(expected)] == expected

    def test_content_stream_length_is_exact(self, pdf: bytes) -> None:
        match = re.search(rb"<< /Length (\d+) >>\nstream\n", pdf)
        length = int(match.group(1))
        body = pdf[match.end() : match.end() + length]
        assert body == b"BT /F1 10 Tf 50 700 Td (Caf\xe9) Tj ET"
        assert pdf[match.end() + length :].startswith(b"\nendstream")

    def test_page_declares_a4_and_both_fonts(self, pdf: bytes) -> None:
        assert b"/MediaBox [0 0 595.28 841.89]" in pdf
        assert b"/Font << /F1 5 0 R /F2 6 0 R >>" in pdf
        assert b"/BaseFont /Helvetica /Encoding /WinAnsiEncoding" in pdf
        assert b"/BaseFont /Helvetica-Bold /Encoding /WinAnsiEncoding" in pdf

    def test_output_is_deterministic(self) -> None:
        content = b"0 0 m 10 10 l S"
        assert build_single_page_document(content) == build_single_page_document(content)
