"""
Tests for heuristic text extraction, sanitizing and the readability gate.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from .contracts import TextExtractor
from .extractor import HeuristicTextExtractor
from .models import SourceDocument
from .quality import is_readable
from .sanitizer import sanitize_text

SAMPLE_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
    b"4 0 obj\n<< /Length 120 >>\nstream\n"
    b"BT /F1 12 Tf 72 720 Td (Purchase Order) Tj 0 -14 Td (PO Number: PO-2025-171) Tj ET\n"
    b"BT 72 600 Td [(Gran) -20 (d Total)] TJ ( 900.00) Tj ET\n"
    b"endstream\nendobj\n"
    b"5 0 obj\n<< /Filter /FlateDecode /Length 8 >>\nstream\n"
    b"\x78\x9c\x00\x01\x02\x03\xff\xfe\x10\x11\x12\x13\x14\x15\x16\x17\nendstream\nendobj\n"
    b"trailer\n<< /Root 1 0 R >>\n%%EOF"
)


@pytest.fixture
def extractor() -> HeuristicTextExtractor:
    """Create an extractor."""
    return HeuristicTextExtractor()


# --- HeuristicTextExtractor Tests ---


def test_extractor_satisfies_contract(extractor: HeuristicTextExtractor) -> None:
    """Test the extractor implements TextExtractor."""
    assert isinstance(extractor, TextExtractor)


def test_extract_empty_bytes(extractor: HeuristicTextExtractor) -> None:
    """Test empty input yields an empty string, not an error."""
    assert extractor.extract(b"") == ""


def test_extract_binary_noise(extractor: HeuristicTextExtractor) -> None:
    """Test bytes with no extractable strings yield an empty string."""
    assert extractor.extract(bytes(range(0, 32)) * 20) == ""


def test_extract_pdf_text(extractor: HeuristicTextExtractor) -> None:
    """Test literals and text objects are recovered in order."""
    text = extractor.extract(SAMPLE_PDF)
    lines = text.split("\n")

    assert "Purchase Order" in lines
    assert "PO Number: PO-2025-171" in lines
    assert lines.index("Purchase Order") < lines.index("PO Number: PO-2025-171")
    # TJ kerning pieces are joined and the line keeps its trailing amount
    assert "Grand Total 900.00" in lines


def test_extract_pdf_drops_structure(extractor: HeuristicTextExtractor) -> None:
    """Test structural keywords and filter names never leak into the text."""
    text = extractor.extract(SAMPLE_PDF)
    for token in ("FlateDecode", "endstream", "endobj", "Catalog", "trailer"):
        assert token not in text


def test_extract_text_object_strings_once(extractor: HeuristicTextExtractor) -> None:
    """Test text-object literals only come back as their joined lines."""
    data = (
        b"%PDF-1.4\n4 0 obj\n<< /Length 90 >>\nstream\n"
        b"BT /F1 12 Tf 72 700 Td (PO Number:) Tj ( PO-2025-171) Tj "
        b"0 -14 Td (Customer: Almarai Company) Tj ET\n"
        b"endstream\nendobj\n"
    )
    text = extractor.extract(data)

    assert text.count("PO-2025-171") == 1
    assert text.count("Almarai Company") == 1
    assert "PO Number: PO-2025-171" in text.split("\n")


def test_extract_keeps_literals_outside_text_objects(extractor: HeuristicTextExtractor) -> None:
    """Test free-standing literals still come before text-object lines."""
    text = extractor.extract(b"(Delivery address) BT (Ship To: Dubai) Tj ET")
    assert text.split("\n") == ["Delivery address", "Ship To: Dubai"]


def test_extract_lines_are_unique(extractor: HeuristicTextExtractor) -> None:
    """Test duplicate lines are suppressed."""
    text = extractor.extract(b"(Repeated line)\n(Repeated line)\n(Another line)")
    assert text.split("\n") == ["Repeated line", "Another line"]


def test_extract_decodes_escapes(extractor: HeuristicTextExtractor) -> None:
    """Test escaped parentheses and octal codes are decoded."""
    text = extractor.extract(b"(Unit \\(EA\\) \\101BC)")
    assert text == "Unit (EA) ABC"


def test_extract_filters_metadata_literals(extractor: HeuristicTextExtractor) -> None:
    """Test directive, numeric and metadata literals are rejected."""
    text = extractor.extract(b"(/FlateDecode) (12345.00) (DeviceRGB) (Delivery address)")
    assert text == "Delivery address"


def test_extract_plain_text_runs(extractor: HeuristicTextExtractor) -> None:
    """Test printable runs recover plain-text documents."""
    data = (
        b"Customer Name: Gulf Trading LLC\n"
        b"PO Date: 12/05/2025\n"
        b"Total Amount: AED 1,250.00\n"
        b"Total Amount: AED 1,250.00\n"
    )
    text = extractor.extract(data)
    assert text.split("\n") == [
        "Customer Name: Gulf Trading LLC",
        "PO Date: 12/05/2025",
        "Total Amount: AED 1,250.00",
    ]


def test_extract_accepts_str(extractor: HeuristicTextExtractor) -> None:
    """Test text input is processed directly."""
    assert extractor.extract("Quotation Number: Q-100") == "Quotation Number: Q-100"


# --- Sanitizer Tests ---


def test_sanitize_removes_format_noise() -> None:
    """Test markers, filters, producer noise and control chars are removed."""
    raw = "%PDF-1.4 Purchase Order /FlateDecode\x00\x01 ZMEDRUCK_PO VER 7.50 Total   900.00"
    assert sanitize_text(raw) == "Purchase Order Total 900.00"


def test_sanitize_removes_stream_bodies() -> None:
    """Test stream blocks are dropped entirely."""
    raw = "Header line\nstream\nxx binary yy\nendstream\nFooter line"
    result = sanitize_text(raw)
    assert "binary" not in result
    assert result.startswith("Header line")
    assert result.endswith("Footer line")


def test_sanitize_keeps_lines() -> None:
    """Test line structure survives and blank runs are squeezed."""
    assert sanitize_text("Line one\n\n\n\nLine two") == "Line one\n\nLine two"


def test_sanitize_empty() -> None:
    """Test empty input stays empty."""
    assert sanitize_text("") == ""


# --- Readability Gate Tests ---


def test_readable_document() -> None:
    """Test a long document with domain vocabulary passes."""
    text = "Purchase Order PO-1001 for Gulf Trading LLC. " * 6
    assert is_readable(text)


def test_readable_by_amount_pattern() -> None:
    """Test currency-like amounts count as domain vocabulary."""
    text = "Widgets assorted sizes 125.50 " * 10
    assert is_readable(text)


def test_unreadable_short_text() -> None:
    """Test short text fails regardless of content."""
    assert not is_readable("Purchase Order 100.00")


def test_unreadable_without_domain_words() -> None:
    """Test long prose without domain vocabulary fails."""
    assert not is_readable("lorem ipsum dolor sit amet " * 20)


def test_unreadable_digits_only() -> None:
    """Test long numeric noise fails."""
    assert not is_readable("12 34 56 78 " * 40)


# --- SourceDocument Tests ---


def test_source_document_pdf_detection() -> None:
    """Test PDF header detection."""
    assert SourceDocument(data=SAMPLE_PDF).looks_like_pdf
    assert not SourceDocument(data=b"plain text").looks_like_pdf


def test_source_document_from_path(tmp_path: Path) -> None:
    """Test loading from disk sets filename and mime type."""
    path = tmp_path / "order.pdf"
    path.write_bytes(SAMPLE_PDF)

    doc = SourceDocument.from_path(path)
    assert doc.filename == "order.pdf"
    assert doc.mime_type == "application/pdf"
    assert doc.data == SAMPLE_PDF


def test_source_document_is_immutable() -> None:
    """Test SourceDocument is frozen."""
    doc = SourceDocument(data=b"x")
    with pytest.raises(Exception):
        doc.filename = "changed"  # type: ignore
