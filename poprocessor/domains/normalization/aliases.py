"""
Field Aliases - Fixed-priority key variants for generated JSON.

Generated output names the same field many ways (``quantity``/``qty``,
``total``/``lineTotal``). Each canonical field maps to an ordered tuple of
keys; ``pick`` returns the value of the first key present.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

__all__ = ["pick", "unwrap_envelope", "ENVELOPE_KEYS"]

ENVELOPE_KEYS = ("poData", "inquiryData", "quotationData", "data", "record")

# Record fields
NUMBER = ("poNumber", "number", "inquiryNumber", "quotationNumber", "orderNumber")
DATE = ("poDate", "date", "orderDate", "issueDate", "inquiryDate", "quotationDate")
EXPIRY = (
    "expiryDate",
    "expiry",
    "validUntil",
    "expirationDate",
    "validityDate",
    "validUntilDate",
)
COUNTERPARTY = ("customerName", "counterpartyName", "buyerName", "customer", "companyName")
ADDRESS = ("customerAddress", "address", "deliveryAddress", "shippingAddress")
EMAIL = ("customerEmail", "email", "contactEmail")
PHONE = ("customerPhone", "phone", "contactPhone")
CURRENCY = ("currency", "currencyCode")
TOTAL = ("totalAmount", "grandTotal", "total", "totalValue", "amount")
TERMS = ("terms", "paymentTerms", "termsAndConditions")
NOTES = ("notes", "remarks", "comments")
SUMMARY = ("summary",)
LINE_ITEMS = ("lineItems", "items", "lines")
VENDOR = ("vendorName", "vendor", "supplierName", "supplier")
QUOTATION_REFERENCE = ("quotationReference", "quotationRef", "quoteReference", "quotationNo")

# Line item fields
ITEM_NAME = ("itemName", "name", "description", "item", "product")
ITEM_CODE = (
    "itemCode",
    "code",
    "itemNo",
    "itemNumber",
    "item_no",
    "sapCode",
    "SAPCode",
    "sap_code",
    "materialCode",
    "material_code",
    "partNumber",
    "sku",
    "partNo",
)
ITEM_QUANTITY = ("quantity", "qty")
ITEM_UNIT = ("unit", "uom", "UOM", "unitOfMeasure")
ITEM_UNIT_PRICE = ("unitPrice", "price", "unitPriceAED", "rate")
ITEM_TOTAL = ("total", "totalPrice", "lineTotal", "amount")
ITEM_MANUFACTURER_PART = ("manufacturerPartNo", "manufacturerPart", "mfrPartNo")


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def pick(data: Mapping[str, Any], aliases: Sequence[str]) -> Any:
    """
    Return the first present value among ``aliases``.

    None and blank strings count as absent.

    Example:
        >>> pick({"qty": "5", "quantity": ""}, ITEM_QUANTITY)
        '5'
    """
    for key in aliases:
        value = data.get(key)
        if _present(value):
            return value
    return None


def unwrap_envelope(data: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return the record object under a known envelope key, else ``data``."""
    for key in ENVELOPE_KEYS:
        value = data.get(key)
        if isinstance(value, Mapping):
            return value
    return data
