"""
Domain Mapper - Document to validated business record.

Composes the pipeline for one document:
- Text from the OCR collaborator, or heuristic extraction from the bytes
- Readability gate with a governed reinterpret call
- Governed generation call for the kind's JSON
- JSON repair, normalization and the kind check

Usage:
    mapper = DomainMapper(client, governor=governor)
    record = await mapper.process(SourceDocument.from_path("po.pdf"), DocumentKind.PURCHASE_ORDER)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from poprocessor.config.errors import (
    CallError,
    DocumentKindMismatch,
    ExtractionFailure,
    QuotaExhaustedError,
    ValidationFailure,
)
from poprocessor.domains.extraction import HeuristicTextExtractor, SourceDocument, TextExtractor
from poprocessor.domains.extraction import is_readable, sanitize_text
from poprocessor.domains.governor import CallGovernor, estimate_tokens
from poprocessor.domains.normalization import BusinessRecord, FieldNormalizer
from poprocessor.domains.repair import JsonRepairEngine

from .contracts import GenerationClient
from .models import JSON_MIME_TYPE, DocumentKind, MapperConfig
from .prompts import SYSTEM_INSTRUCTION, build_extraction_prompt, build_reinterpret_prompt

logger = logging.getLogger(__name__)

__all__ = ["DomainMapper"]


class DomainMapper:
    """
    Runs the extraction pipeline for purchase orders, inquiries and quotations.

    All generation calls go through the shared governor. Pure stages
    (extraction, repair, normalization) hold no state and may run
    concurrently.

    Example:
        >>> mapper = DomainMapper(GeminiClient())
        >>> record = await mapper.process_text(ocr_text, DocumentKind.QUOTATION)
        >>> record.status
        <RecordStatus.ACTIVE: 'active'>
    """

    def __init__(
        self,
        client: GenerationClient,
        governor: CallGovernor | None = None,
        extractor: TextExtractor | None = None,
        repair_engine: JsonRepairEngine | None = None,
        normalizer: FieldNormalizer | None = None,
        config: MapperConfig | None = None,
    ) -> None:
        """
        Initialize the mapper.

        Args:
            client: Generation service client
            governor: Shared call governor. A private one is created if None.
            extractor: Text recovery for documents without OCR text
            repair_engine: JSON repair engine
            normalizer: Field normalizer
            config: Pipeline thresholds. Uses defaults if None.
        """
        self._client = client
        self.governor = governor or CallGovernor()
        self._extractor = extractor or HeuristicTextExtractor()
        self._repair = repair_engine or JsonRepairEngine()
        self._normalizer = normalizer or FieldNormalizer()
        self.config = config or MapperConfig()

    # --- Public API ---

    async def process(self, document: SourceDocument, kind: DocumentKind) -> BusinessRecord:
        """
        Turn a document into a record of the given kind.

        Args:
            document: Source document (bytes, optional OCR text)
            kind: Expected document kind

        Returns:
            Normalized record; ``is_valid`` is False when required fields
            are missing and strict mode is off

        Raises:
            ExtractionFailure: No usable text
            CallError: Generation failed after retries
            RepairFailure: Response could not be repaired into JSON
            DocumentKindMismatch: Document is not of the expected kind
            ValidationFailure: Strict mode and the record is invalid
        """
        kind = DocumentKind(kind)
        if document.text is not None:
            text = document.text
        else:
            text = self._extractor.extract(document.data)
            logger.info("Recovered %d chars from %s", len(text), document.filename or "document")

        attach = self.config.inline_document and document.looks_like_pdf
        return await self._run(text, kind, document if attach else None, document.filename)

    async def process_text(self, text: str, kind: DocumentKind) -> BusinessRecord:
        """Same pipeline for text supplied by an OCR collaborator."""
        return await self._run(text, DocumentKind(kind), None, "")

    # --- Pipeline ---

    async def _run(
        self,
        text: str,
        kind: DocumentKind,
        document: SourceDocument | None,
        filename: str,
    ) -> BusinessRecord:
        stripped = (text or "").strip()
        if len(stripped) < self.config.min_text_length:
            raise ExtractionFailure(
                "No readable text recovered from document",
                {"filename": filename, "length": len(stripped), "kind": kind.value},
            )

        if not is_readable(stripped, self.config.min_readable_length):
            stripped = await self._reinterpret(stripped, kind)

        clean = sanitize_text(stripped)
        prompt = build_extraction_prompt(kind, clean, with_document=document is not None)
        response = await self._call(prompt, JSON_MIME_TYPE, document)

        data = self._repair.parse(response)
        record = self._normalizer.normalize(data, clean, kind)

        self._check_kind(data, record, kind)
        if self.config.strict and not record.is_valid:
            raise ValidationFailure(
                f"{kind.label.capitalize()} is missing required fields",
                record=record,
                details={"issues": list(record.issues), "kind": kind.value},
            )

        logger.info(
            "Mapped %s %s: %d line items, valid=%s",
            kind.label,
            record.number,
            len(record.line_items),
            record.is_valid,
        )
        return record

    async def _reinterpret(self, text: str, kind: DocumentKind) -> str:
        """Ask the model for readable text; keep the raw candidate on failure."""
        logger.info("Candidate text failed the readability gate; reinterpreting")
        try:
            result = await self._call(build_reinterpret_prompt(kind, text), "text/plain", None)
        except QuotaExhaustedError:
            raise
        except CallError as e:
            logger.warning("Reinterpret call failed, keeping raw text: %s", e)
            return text

        result = result.strip()
        if len(result) > self.config.reinterpret_min_length:
            return result
        logger.info("Reinterpret returned %d chars; keeping raw text", len(result))
        return text

    async def _call(
        self,
        prompt: str,
        response_mime_type: str,
        document: SourceDocument | None,
    ) -> str:
        """One governed generation call."""
        try:
            response = await self.governor.execute(
                lambda: self._client.generate(
                    prompt,
                    system_instruction=SYSTEM_INSTRUCTION,
                    response_mime_type=response_mime_type,
                    document=document,
                ),
                estimated_tokens=estimate_tokens(prompt),
            )
        except QuotaExhaustedError:
            self.governor.mark_quota_exceeded()
            raise
        return response.text or ""

    def _check_kind(self, data: Mapping[str, Any], record: BusinessRecord, kind: DocumentKind) -> None:
        """The model rejected the kind and nothing usable was recovered."""
        if data.get("isValid") is not False:
            return
        if self._normalizer.is_denied(record.number) and not record.line_items:
            raise DocumentKindMismatch(
                f"Document does not look like a {kind.label}",
                {"kind": kind.value, "summary": record.summary},
            )
