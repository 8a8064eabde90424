"""
Prompts - Built-in prompt set for the three document kinds.

Prompts ask for a single JSON object wrapped in the kind's envelope
(``poData``, ``inquiryData``, ``quotationData``) next to ``isValid`` and
``summary``. The normalizer accepts the field-name variants the model
tends to produce, so the schemas here only need to steer it.
"""

from __future__ import annotations

from .models import DocumentKind

__all__ = [
    "SYSTEM_INSTRUCTION",
    "ENVELOPES",
    "build_extraction_prompt",
    "build_reinterpret_prompt",
]

SYSTEM_INSTRUCTION = (
    "You are a precise data extractor for business documents. "
    "Return only a raw JSON object: no markdown, no code fences, no commentary. "
    "Use double quotes for every key and string value and never add trailing commas."
)

ENVELOPES: dict[DocumentKind, str] = {
    DocumentKind.PURCHASE_ORDER: "poData",
    DocumentKind.INQUIRY: "inquiryData",
    DocumentKind.QUOTATION: "quotationData",
}

_SCHEMAS: dict[DocumentKind, str] = {
    DocumentKind.PURCHASE_ORDER: """{
  "isValid": true,
  "poData": {
    "poNumber": "string",
    "poDate": "YYYY-MM-DD",
    "expiryDate": "YYYY-MM-DD or null",
    "quotationReference": "string or null",
    "vendorName": "string or null",
    "customerName": "string",
    "customerAddress": "string or null",
    "customerEmail": "string or null",
    "customerPhone": "string or null",
    "totalAmount": "string",
    "currency": "three-letter code",
    "terms": "string or null",
    "notes": "string or null",
    "lineItems": [
      {
        "itemCode": "string or null",
        "itemName": "string",
        "description": "string or null",
        "quantity": "string",
        "unit": "string",
        "unitPrice": "string",
        "total": "string",
        "manufacturerPartNo": "string or null"
      }
    ]
  },
  "summary": "two or three sentences"
}""",
    DocumentKind.INQUIRY: """{
  "isValid": true,
  "inquiryData": {
    "inquiryNumber": "string",
    "inquiryDate": "YYYY-MM-DD",
    "expiryDate": "YYYY-MM-DD or null",
    "customerName": "string",
    "customerAddress": "string or null",
    "customerEmail": "string or null",
    "customerPhone": "string or null",
    "notes": "string or null",
    "items": [
      {
        "itemCode": "string or null",
        "itemName": "string",
        "description": "string or null",
        "quantity": "string",
        "unit": "string",
        "manufacturerPartNo": "string or null"
      }
    ]
  },
  "summary": "two or three sentences"
}""",
    DocumentKind.QUOTATION: """{
  "isValid": true,
  "quotationData": {
    "quotationNumber": "string",
    "quotationDate": "YYYY-MM-DD",
    "validityDate": "YYYY-MM-DD or null",
    "customerName": "string",
    "customerAddress": "string or null",
    "customerEmail": "string or null",
    "customerPhone": "string or null",
    "totalAmount": "string",
    "currency": "three-letter code",
    "terms": "string or null",
    "notes": "string or null",
    "lineItems": [
      {
        "itemCode": "string or null",
        "itemName": "string",
        "quantity": "string",
        "unit": "string",
        "unitPrice": "string",
        "total": "string"
      }
    ]
  },
  "summary": "two or three sentences"
}""",
}


def build_extraction_prompt(kind: DocumentKind, text: str, *, with_document: bool = False) -> str:
    """
    Prompt asking for the kind's JSON object.

    Args:
        kind: Expected document kind
        text: Sanitized document text
        with_document: The original file is attached to the request

    Returns:
        Prompt text
    """
    kind = DocumentKind(kind)
    source = (
        "The original file is attached. The text recovered from it follows and may be incomplete."
        if with_document
        else "The document text follows."
    )
    return f"""Extract all information from this {kind.label} and return it as JSON.

{source}
Field labels and layout vary between documents; look for equivalent labels.
Extract every line item in the table and keep each row's fields together.
Numbers must be strings without currency symbols. Use null for missing values.
If the document is clearly not a {kind.label}, set isValid to false and explain in summary.

Return exactly this structure:
{_SCHEMAS[kind]}

Document text:
{text}
"""


def build_reinterpret_prompt(kind: DocumentKind, text: str) -> str:
    """Prompt asking the model to recover readable text from noisy extraction output."""
    kind = DocumentKind(kind)
    return f"""The text below was recovered from a {kind.label} file and may mix document
content with file-format metadata, escape sequences and corrupted characters.

Return only the readable {kind.label} content: numbers, dates, parties, addresses,
line items with quantities and prices, and totals. Keep the field labels as they appear.
Do not add commentary.

Recovered text:
{text}
"""
