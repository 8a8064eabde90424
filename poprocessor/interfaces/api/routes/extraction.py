"""
Extraction Routes - Document extraction, JSON repair and governor status.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field

from poprocessor.domains.extraction import SourceDocument
from poprocessor.domains.governor import CallGovernor, RateSnapshot
from poprocessor.domains.orchestration import DocumentKind, DomainMapper
from poprocessor.domains.repair import JsonRepairEngine
from poprocessor.interfaces.api.deps import get_governor, get_mapper, get_repair_engine

router = APIRouter()


class RepairRequest(BaseModel):
    """Repair request body."""

    text: str = Field(..., min_length=1, description="Generated almost-JSON text")


class RepairResponse(BaseModel):
    """Repaired JSON and the number of passes it took."""

    repaired: str
    data: dict[str, Any]
    passes: int


class ExtractionResponse(BaseModel):
    """Extraction result response."""

    filename: str
    kind: DocumentKind
    record: dict[str, Any]


@router.post("/repair", response_model=RepairResponse)
async def repair_json(
    request: RepairRequest,
    engine: JsonRepairEngine = Depends(get_repair_engine),
) -> RepairResponse:
    """
    Repair generated almost-JSON into a single JSON object.

    Unrecoverable input returns 422 with the parser offset and context.
    """
    result = engine.try_repair(request.text)
    if result.error is not None:
        raise result.error
    return RepairResponse(repaired=result.text, data=result.data or {}, passes=result.passes)


@router.get("/governor", response_model=RateSnapshot)
async def governor_status(governor: CallGovernor = Depends(get_governor)) -> RateSnapshot:
    """Current request counts, backoff and quota windows."""
    return governor.snapshot()


@router.post("/{kind}", response_model=ExtractionResponse)
async def extract_document(
    kind: DocumentKind,
    file: UploadFile = File(...),
    text: str | None = Form(None, description="Text already produced by OCR"),
    mapper: DomainMapper = Depends(get_mapper),
) -> ExtractionResponse:
    """
    Extract a purchase order, inquiry or quotation from an uploaded document.

    - **kind**: po, inquiry or quotation
    - **file**: The document (PDF or text)
    - **text**: Optional OCR text; skips heuristic extraction
    """
    document = SourceDocument(
        data=await file.read(),
        filename=file.filename or "",
        mime_type=file.content_type or "application/pdf",
        text=text,
    )
    record = await mapper.process(document, kind)
    return ExtractionResponse(
        filename=document.filename,
        kind=kind,
        record=record.model_dump(mode="json"),
    )
