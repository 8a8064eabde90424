"""
Tests for the document pipeline.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from poprocessor.config.errors import (
    DocumentKindMismatch,
    ExtractionFailure,
    NonTransientCallError,
    QuotaExhaustedError,
    RepairFailure,
    TransientCallError,
    ValidationFailure,
)
from poprocessor.domains.extraction import SourceDocument
from poprocessor.domains.governor import CallGovernor, GovernorConfig
from poprocessor.domains.normalization import PurchaseOrder

from .contracts import GenerationClient
from .mapper import DomainMapper
from .models import JSON_MIME_TYPE, DocumentKind, MapperConfig
from .prompts import build_extraction_prompt, build_reinterpret_prompt

PO_TEXT = """PURCHASE ORDER
PO Number: PO-2025-171
PO Date: 28Jan26
Customer Name: Gulf Trading LLC
Customer Address: Plot 12, Jebel Ali Free Zone, Dubai
Item No Description Qty Unit Price Total
10 Safety Gloves 5.00 180.00 900.00
Grand Total: AED 900.00
Payment Terms: 30 days after invoice
"""

NOISY_TEXT = "Scanned page 1 of 1\nref 7781 / 2025\nplease see attachment"

FENCED_RESPONSE = """```json
{"isValid": true, "poData": {"poNumber": "PO-99", "totalAmount": "1,234.50", "lineItems": []}, "summary": "ok"}
```"""


def _response(text: str) -> SimpleNamespace:
    return SimpleNamespace(text=text)


@pytest.fixture
def client() -> MagicMock:
    """Create a mock generation client."""
    mock = MagicMock()
    mock.generate = AsyncMock(return_value=_response(FENCED_RESPONSE))
    return mock


@pytest.fixture
def governor() -> CallGovernor:
    """Governor without pacing or retry delays."""
    return CallGovernor(
        GovernorConfig(
            min_interval_seconds=0,
            max_requests_per_minute=100,
            max_requests_per_day=1000,
            retry_delay_seconds=0,
            retry_increment_seconds=0,
        )
    )


@pytest.fixture
def mapper(client: MagicMock, governor: CallGovernor) -> DomainMapper:
    """Create a mapper with a mock client."""
    return DomainMapper(client, governor=governor)


def _prompt(client: MagicMock, call: int = -1) -> str:
    return client.generate.await_args_list[call].args[0]


# --- Contract Tests ---


def test_client_satisfies_contract() -> None:
    """Test the contract only needs an async generate."""

    class Client:
        async def generate(self, prompt, *, system_instruction=None, response_mime_type="text/plain", document=None):
            return _response("{}")

    assert isinstance(Client(), GenerationClient)


# --- Prompt Tests ---


@pytest.mark.parametrize("kind", list(DocumentKind))
def test_extraction_prompt_per_kind(kind: DocumentKind) -> None:
    """Test each kind prompt names its envelope and carries the text."""
    envelope = {"po": "poData", "inquiry": "inquiryData", "quotation": "quotationData"}[kind.value]
    prompt = build_extraction_prompt(kind, "SOME TEXT")
    assert envelope in prompt
    assert "SOME TEXT" in prompt
    assert kind.label in prompt


def test_reinterpret_prompt() -> None:
    """Test the reinterpret prompt carries the raw text."""
    assert "RAW" in build_reinterpret_prompt(DocumentKind.QUOTATION, "RAW")


# --- Pipeline Tests ---


async def test_process_text_fenced_response(mapper: DomainMapper, client: MagicMock) -> None:
    """Test a fenced response is repaired and normalized."""
    record = await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)

    assert isinstance(record, PurchaseOrder)
    assert record.number == "PO-99"
    assert record.total_amount == 1234.5
    assert record.summary == "ok"
    client.generate.assert_awaited_once()
    kwargs = client.generate.await_args.kwargs
    assert kwargs["response_mime_type"] == JSON_MIME_TYPE
    assert kwargs["document"] is None
    assert "PO-2025-171" in _prompt(client)


async def test_number_recovered_from_text(mapper: DomainMapper, client: MagicMock) -> None:
    """Test a missing number falls back to the raw text."""
    client.generate.return_value = _response('{"isValid": true, "poData": {"customerName": "Gulf Trading LLC"}}')

    record = await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)

    assert record.number == "PO-2025-171"
    assert record.is_valid


async def test_mismatched_item_total(mapper: DomainMapper, client: MagicMock) -> None:
    """Test the supplied item total is recomputed."""
    client.generate.return_value = _response(
        '{"isValid": true, "poData": {"poNumber": "PO-1", "lineItems": '
        '[{"itemName": "Gloves", "quantity": "5.00", "unitPrice": "180.00", "total": "850.00"}]}}'
    )

    record = await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)

    assert record.line_items[0].total == 900.0


async def test_empty_bytes_raise_extraction_failure(mapper: DomainMapper, client: MagicMock) -> None:
    """Test empty bytes fail before any generation call."""
    with pytest.raises(ExtractionFailure):
        await mapper.process(SourceDocument(data=b"", filename="empty.pdf"), DocumentKind.PURCHASE_ORDER)
    client.generate.assert_not_awaited()


async def test_short_text_raises_extraction_failure(mapper: DomainMapper, client: MagicMock) -> None:
    """Test text under the minimum length is rejected."""
    with pytest.raises(ExtractionFailure) as exc_info:
        await mapper.process_text("   PO 12   ", DocumentKind.PURCHASE_ORDER)
    assert exc_info.value.details["length"] == 5
    client.generate.assert_not_awaited()


async def test_ocr_text_skips_extractor(client: MagicMock, governor: CallGovernor) -> None:
    """Test supplied OCR text is used instead of heuristic extraction."""
    extractor = MagicMock()
    mapper = DomainMapper(client, governor=governor, extractor=extractor)

    await mapper.process(SourceDocument(data=b"%PDF-1.4", text=PO_TEXT), DocumentKind.PURCHASE_ORDER)

    extractor.extract.assert_not_called()


async def test_bytes_go_through_extractor(client: MagicMock, governor: CallGovernor) -> None:
    """Test documents without OCR text use the extractor."""
    extractor = MagicMock()
    extractor.extract.return_value = PO_TEXT
    mapper = DomainMapper(client, governor=governor, extractor=extractor)

    await mapper.process(SourceDocument(data=b"%PDF-1.4 bytes"), DocumentKind.PURCHASE_ORDER)

    extractor.extract.assert_called_once_with(b"%PDF-1.4 bytes")


async def test_unreadable_text_is_reinterpreted(mapper: DomainMapper, client: MagicMock) -> None:
    """Test the readability gate sends a reinterpret call first."""
    client.generate.side_effect = [_response(PO_TEXT), _response(FENCED_RESPONSE)]

    await mapper.process_text(NOISY_TEXT, DocumentKind.PURCHASE_ORDER)

    assert client.generate.await_count == 2
    assert client.generate.await_args_list[0].kwargs["response_mime_type"] == "text/plain"
    assert "PO-2025-171" in _prompt(client, 1)


async def test_short_reinterpret_keeps_raw_text(mapper: DomainMapper, client: MagicMock) -> None:
    """Test a short reinterpret result is discarded."""
    client.generate.side_effect = [_response("too short"), _response(FENCED_RESPONSE)]

    await mapper.process_text(NOISY_TEXT, DocumentKind.PURCHASE_ORDER)

    assert "ref 7781 / 2025" in _prompt(client, 1)


async def test_reinterpret_failure_keeps_raw_text(mapper: DomainMapper, client: MagicMock) -> None:
    """Test a failed reinterpret call does not stop the pipeline."""
    client.generate.side_effect = [NonTransientCallError("bad request"), _response(FENCED_RESPONSE)]

    record = await mapper.process_text(NOISY_TEXT, DocumentKind.PURCHASE_ORDER)

    assert record.number == "PO-99"
    assert "ref 7781 / 2025" in _prompt(client, 1)


async def test_transient_failure_is_retried(mapper: DomainMapper, client: MagicMock) -> None:
    """Test the governor retries transient failures."""
    client.generate.side_effect = [TransientCallError("connection reset"), _response(FENCED_RESPONSE)]

    record = await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)

    assert record.number == "PO-99"
    assert client.generate.await_count == 2


async def test_quota_exhausted_sets_flag(mapper: DomainMapper, client: MagicMock) -> None:
    """Test quota exhaustion sets the governor flag and propagates."""
    client.generate.side_effect = QuotaExhaustedError("per day quota exceeded")

    with pytest.raises(QuotaExhaustedError):
        await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)

    assert mapper.governor.state.quota_exceeded_until is not None
    assert client.generate.await_count == 1


async def test_quota_during_reinterpret_propagates(mapper: DomainMapper, client: MagicMock) -> None:
    """Test quota exhaustion is not swallowed by the reinterpret fallback."""
    client.generate.side_effect = QuotaExhaustedError("per day quota exceeded")

    with pytest.raises(QuotaExhaustedError):
        await mapper.process_text(NOISY_TEXT, DocumentKind.PURCHASE_ORDER)

    assert mapper.governor.state.quota_exceeded_until is not None


async def test_unrepairable_response(mapper: DomainMapper, client: MagicMock) -> None:
    """Test a response without JSON raises RepairFailure."""
    client.generate.return_value = _response("I could not read this document.")

    with pytest.raises(RepairFailure):
        await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)


async def test_kind_mismatch(mapper: DomainMapper, client: MagicMock) -> None:
    """Test a rejected kind with nothing usable raises DocumentKindMismatch."""
    client.generate.return_value = _response(
        '{"isValid": false, "poData": null, "summary": "This is a delivery note"}'
    )
    text = "Delivery note for shipment 55. Goods delivered to the warehouse on time.\n" * 2

    with pytest.raises(DocumentKindMismatch) as exc_info:
        await mapper.process_text(text, DocumentKind.PURCHASE_ORDER)
    assert exc_info.value.details["summary"] == "This is a delivery note"


async def test_rejected_kind_with_data_is_kept(mapper: DomainMapper, client: MagicMock) -> None:
    """Test isValid false is ignored when a number was recovered."""
    client.generate.return_value = _response('{"isValid": false, "poData": {}}')

    record = await mapper.process_text(PO_TEXT, DocumentKind.PURCHASE_ORDER)

    assert record.number == "PO-2025-171"


async def test_invalid_record_returned_when_not_strict(mapper: DomainMapper, client: MagicMock) -> None:
    """Test an invalid record is returned with is_valid False."""
    client.generate.return_value = _response('{"isValid": true, "poData": {"poNumber": "N/A"}}')
    text = "Order confirmation for the attached items, see the table in the scanned copy.\n" * 2

    record = await mapper.process_text(text, DocumentKind.PURCHASE_ORDER)

    assert not record.is_valid
    assert "number" in record.issues


async def test_strict_mode_raises(client: MagicMock, governor: CallGovernor) -> None:
    """Test strict mode raises ValidationFailure with the partial record."""
    client.generate.return_value = _response('{"isValid": true, "poData": {"poNumber": "N/A"}}')
    mapper = DomainMapper(client, governor=governor, config=MapperConfig(strict=True))
    text = "Order confirmation for the attached items, see the table in the scanned copy.\n" * 2

    with pytest.raises(ValidationFailure) as exc_info:
        await mapper.process_text(text, DocumentKind.PURCHASE_ORDER)

    assert not isinstance(exc_info.value, DocumentKindMismatch)
    assert exc_info.value.record is not None
    assert exc_info.value.record.number == "N/A"


async def test_inline_document_attached(client: MagicMock, governor: CallGovernor) -> None:
    """Test PDF bytes are attached when inline documents are enabled."""
    mapper = DomainMapper(client, governor=governor, config=MapperConfig(inline_document=True))
    document = SourceDocument(data=b"%PDF-1.4 body", filename="po.pdf", text=PO_TEXT)

    await mapper.process(document, DocumentKind.PURCHASE_ORDER)

    assert client.generate.await_args.kwargs["document"] is document
    assert "attached" in _prompt(client)


async def test_inquiry_kind(mapper: DomainMapper, client: MagicMock) -> None:
    """Test inquiries use their own envelope and need no prices."""
    client.generate.return_value = _response(
        '{"isValid": true, "inquiryData": {"inquiryNumber": "RFQ-7", '
        '"customerName": "Gulf Trading LLC", "items": [{"itemName": "Ball Valve 2in", "quantity": "4"}]}}'
    )

    record = await mapper.process_text(PO_TEXT, DocumentKind.INQUIRY)

    assert record.kind == DocumentKind.INQUIRY
    assert record.number == "RFQ-7"
    assert record.line_items[0].quantity == 4.0
    assert "inquiryData" in _prompt(client)
