"""
Extraction Models - Source documents handed to the pipeline.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

PDF_MAGIC = b"%PDF"


class SourceDocument(BaseModel):
    """
    Opaque document supplied by an upstream collaborator.

    ``text`` is set when an OCR step already produced the raw text;
    otherwise the pipeline recovers text from ``data``.
    """

    data: bytes = b""
    filename: str = ""
    mime_type: str = Field(default="application/pdf")
    text: str | None = None

    model_config = {"frozen": True}

    @property
    def looks_like_pdf(self) -> bool:
        """True when the bytes carry a PDF header."""
        return self.data.lstrip()[:4] == PDF_MAGIC

    @classmethod
    def from_path(cls, path: str | Path) -> SourceDocument:
        """Load a document from disk, taking the filename from the path."""
        path = Path(path)
        mime_type = "application/pdf" if path.suffix.lower() == ".pdf" else "text/plain"
        return cls(data=path.read_bytes(), filename=path.name, mime_type=mime_type)
