"""
Normalization Domain - Canonical records from generated JSON and raw text.

This domain handles:
- Record and line-item models with derived status
- Field aliases, coercion and placeholder scrubbing
- Regex and table-row fallbacks over the raw text
- The required-field policy
"""

from .coercion import clean_str, is_sentinel, to_float
from .dates import parse_date
from .models import (
    RECORD_TYPES,
    BusinessRecord,
    CustomerInquiry,
    DocumentKind,
    LineItem,
    NormalizerConfig,
    PurchaseOrder,
    Quotation,
    RecordStatus,
)
from .normalizer import FieldNormalizer
from .tables import extract_table_items

__all__ = [
    # Models
    "DocumentKind",
    "RecordStatus",
    "LineItem",
    "BusinessRecord",
    "PurchaseOrder",
    "CustomerInquiry",
    "Quotation",
    "RECORD_TYPES",
    "NormalizerConfig",
    # Implementations
    "FieldNormalizer",
    "extract_table_items",
    "parse_date",
    "to_float",
    "clean_str",
    "is_sentinel",
]
