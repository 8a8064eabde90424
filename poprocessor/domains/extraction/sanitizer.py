"""
Text Sanitizer - Scrub document-format noise from candidate text.
"""

from __future__ import annotations

import re

__all__ = ["METADATA_TOKENS", "scrub_metadata", "sanitize_text", "strip_non_printable"]

# Tokens that only ever appear as document structure or producer metadata
METADATA_TOKENS = (
    "FlateDecode",
    "DCTDecode",
    "ASCIIHexDecode",
    "ASCII85Decode",
    "LZWDecode",
    "RunLengthDecode",
    "CCITTFaxDecode",
    "JBIG2Decode",
    "JPXDecode",
    "BitsPerComponent",
    "ColorSpace",
    "DeviceRGB",
    "DeviceGray",
    "DeviceCMYK",
    "FontDescriptor",
    "FontFile",
    "XObject",
    "MediaBox",
    "CropBox",
    "ProcSet",
    "CreationDate",
    "ModDate",
)

_FILTER_RE = re.compile(r"/?(?:Flate|DCT|ASCIIHex|ASCII85|LZW|RunLength|CCITTFax|JBIG2|JPX)Decode")
_STREAM_BLOCK_RE = re.compile(r"\bstream\b.*?\bendstream\b", re.DOTALL)
_STRUCTURE_RE = re.compile(
    r"%PDF-\d\.\d|\b\d+\s+\d+\s+obj\b|\bendobj\b|\bstartxref\b|\bxref\b|\btrailer\b"
)
# SAP print-spool and NetWeaver producer noise
_VENDOR_NOISE_RE = re.compile(
    r"\bZMEDRUCK\w*|\bSAP_WFRT\w*|\bSAP\s+NetWeaver\b|\bNetWeaver\b|\bVER\s+\d+\.\d+\b"
)
_NON_PRINTABLE_RE = re.compile(r"[^\x20-\x7E\n\u00A0-\uFFFF]")
_INLINE_SPACE_RE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def strip_non_printable(text: str) -> str:
    """Replace control and other non-printable characters with spaces."""
    return _NON_PRINTABLE_RE.sub(" ", text)


def scrub_metadata(text: str) -> str:
    """Remove filter names, structural keywords and producer noise."""
    text = _FILTER_RE.sub(" ", text)
    text = _STRUCTURE_RE.sub(" ", text)
    text = _VENDOR_NOISE_RE.sub(" ", text)
    return text


def sanitize_text(text: str) -> str:
    """
    Clean candidate text before it is sent to the generation service.

    Args:
        text: Raw candidate text

    Returns:
        Text without stream bodies, format markers or control characters,
        with inline whitespace collapsed and blank-line runs squeezed.
    """
    if not text:
        return ""

    text = _STREAM_BLOCK_RE.sub(" ", text)
    text = scrub_metadata(text)
    text = strip_non_printable(text)
    text = _INLINE_SPACE_RE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()
