"""
Text Fallbacks - Prioritized regular expressions applied to the raw text.

Each ``find_*`` function tries its patterns in order and returns the first
acceptable match, or None. They are used only when the structured value is
absent or a placeholder.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Callable, Iterable

from .coercion import clean_str, to_float
from .dates import parse_date
from .models import DocumentKind

__all__ = [
    "CURRENCY_CODES",
    "find_number",
    "find_date",
    "find_expiry",
    "find_counterparty",
    "company_from_address",
    "looks_like_company",
    "find_address",
    "find_email",
    "find_phone",
    "find_currency",
    "currency_from_value",
    "find_grand_total",
    "find_quotation_reference",
    "find_vendor",
]

CURRENCY_CODES = ("AED", "INR", "USD", "EUR", "GBP", "SAR", "QAR", "KWD", "OMR", "BHD")

_I = re.IGNORECASE
_ID = r"([A-Z0-9][A-Z0-9\-/]*)"
_LINE = r"([^\n]{3,80})"
_SUFFIX = (
    r"(?:Company|Co\.|Corporation|Corp\.?|Limited|Ltd\.?|Incorporated|Inc\.?|LLC|L\.L\.C\.?"
    r"|Group|Industries|Services|Trading|International|Global|Enterprises|Establishment|Est\.)"
)
_EMAIL = r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"

NUMBER_PATTERNS: dict[DocumentKind, tuple[re.Pattern[str], ...]] = {
    DocumentKind.PURCHASE_ORDER: (
        re.compile(rf"P\.?O\.?\s*Number[:\s#]+{_ID}", _I),
        re.compile(rf"P\.?O\.?\s*No[.:\s#]+{_ID}", _I),
        re.compile(rf"\bPO[-\s#]+{_ID}", _I),
        re.compile(rf"Purchase\s*Order\s*(?:Number|No\.?|#)?[:\s#]+{_ID}", _I),
        re.compile(rf"Order\s*(?:Number|No\.?|#)[:\s#]+{_ID}", _I),
    ),
    DocumentKind.INQUIRY: (
        re.compile(rf"(?:Inquiry|Enquiry)\s*(?:Number|No\.?|#|Ref(?:erence)?\.?)[:\s#]+{_ID}", _I),
        re.compile(rf"\bRFQ\s*(?:Number|No\.?|#)?[:\s#\-]+{_ID}", _I),
        re.compile(rf"Purchase\s*Requisition\s*(?:Number|No\.?|#)?[:\s#]+{_ID}", _I),
        re.compile(rf"Request\s+for\s+Quotation\s*(?:Number|No\.?|#)?[:\s#]+{_ID}", _I),
    ),
    DocumentKind.QUOTATION: (
        re.compile(rf"Quotation\s*(?:Reference|Ref\.?|Number|No\.?|#)[:\s#]+{_ID}", _I),
        re.compile(rf"Quote\s*(?:Number|No\.?|#)[:\s#]+{_ID}", _I),
        re.compile(r"\b(QTN[-/][A-Z0-9\-/]+)", _I),
        re.compile(rf"\bQTN[:\s#]+{_ID}", _I),
    ),
}

DATE_PATTERNS: dict[DocumentKind, tuple[re.Pattern[str], ...]] = {
    DocumentKind.PURCHASE_ORDER: (
        re.compile(rf"P\.?O\.?\s*Date[:\s]+{_LINE}", _I),
        re.compile(rf"Order\s*Date[:\s]+{_LINE}", _I),
    ),
    DocumentKind.INQUIRY: (
        re.compile(rf"(?:Inquiry|Enquiry|RFQ|Requisition)\s*Date[:\s]+{_LINE}", _I),
    ),
    DocumentKind.QUOTATION: (
        re.compile(rf"(?:Quotation|Quote)\s*Date[:\s]+{_LINE}", _I),
    ),
}
GENERIC_DATE_PATTERNS = (
    re.compile(rf"Issue\s*Date[:\s]+{_LINE}", _I),
    re.compile(rf"(?<!Expiry )(?<!Delivery )(?<!Due )(?<!Valid )\bDate[:\s]+{_LINE}", _I),
)
EXPIRY_PATTERNS = (
    re.compile(rf"(?:Expiry|Expiration)\s*Date[:\s]+{_LINE}", _I),
    re.compile(rf"Valid(?:ity)?\s*(?:Until|Till|Upto|Up\s+to|Date)[:\s]+{_LINE}", _I),
    re.compile(rf"Expir(?:y|es|ation)[:\s]+{_LINE}", _I),
)

ADDRESS_COMPANY_PATTERNS = (
    re.compile(rf"^([A-Z][A-Za-z&.'\- ]*\s{_SUFFIX})(?![A-Za-z])", _I),
    re.compile(r"^([A-Z][A-Za-z&.'\- ]+?)\s+(?:Plant|Office|Headquarters|HQ|Branch|Warehouse)\b", _I),
    re.compile(r"^([A-Z][A-Za-z&.'\- ]+),", _I),
)
LABELLED_NAME_PATTERNS = (
    re.compile(r"Customer\s*Name[:\s]+([^\n]+)", _I),
    re.compile(r"Bill\s*To[:\s]+([^\n]+)", _I),
    re.compile(r"Buyer(?:\s*Name)?[:\s]+([^\n]+)", _I),
    re.compile(r"Vendor(?:\s*Name)?[:\s]+([^\n]+)", _I),
    re.compile(r"Ship\s*To[:\s]+([^\n]+)", _I),
)
COMPANY_RE = re.compile(rf"\b((?:[A-Z][\w&.'\-]*[ \t]+){{1,5}}{_SUFFIX})(?![A-Za-z])")
_NAME_CUT_RE = re.compile(r"\s*(?:\b(?:Contact|Address|Email|E-mail|Phone|Tel|Mobile|Fax)\b|\||\t).*$", _I)
_NAME_REJECT_RE = re.compile(r"\b(?:purchase|order|delivery|shipping)\b", _I)

# An address block ends at a blank line, the next "Label:" line or the end.
_BLOCK_END = r"(?=\n\s*\n|\n[^\n:]{1,30}:|\Z)"
ADDRESS_PATTERNS = tuple(
    re.compile(rf"{label}[:\s]+(.+?){_BLOCK_END}", _I | re.DOTALL)
    for label in (
        r"(?:Please\s+)?Deliver(?:y)?\s+to",
        r"Ship\s*To",
        r"Delivery\s+Address",
        r"(?<!Email )(?<!E-mail )(?:Customer\s+)?Address",
    )
)
LABELLED_EMAIL_RE = re.compile(rf"E-?mail\s*(?:ID|Address)?[:\s]+({_EMAIL})", _I)
EMAIL_RE = re.compile(rf"({_EMAIL})")
PHONE_RE = re.compile(
    r"(?:Phone|Tel(?:ephone)?|Mobile|Mob|Contact\s*No)\.?\s*(?:No\.?)?[:\s]+(\+?\d[\d\s\-()]{5,}\d)", _I
)

_AMOUNT = r"\d[\d,]*(?:\.\d+)?"
CURRENCY_NEAR_TOTAL_PATTERNS = (
    re.compile(rf"Grand\s*Total[^\n\d]{{0,15}}?\b([A-Z]{{3}})\b\s*{_AMOUNT}", _I),
    re.compile(rf"Grand\s*Total[:\s]+{_AMOUNT}\s*([A-Z]{{3}})\b", _I),
    re.compile(rf"Total(?:\s*Amount)?[^\n\d]{{0,15}}?\b([A-Z]{{3}})\b\s*{_AMOUNT}", _I),
    re.compile(rf"Total(?:\s*Amount)?[:\s]+{_AMOUNT}\s*([A-Z]{{3}})\b", _I),
)
CURRENCY_LABEL_PATTERNS = (
    re.compile(r"Unit\s*Price\s*\(([A-Z]{3})\)", _I),
    re.compile(r"Total\s*\(([A-Z]{3})\)", _I),
)
CURRENCY_AMOUNT_PATTERNS = (
    re.compile(rf"\b([A-Z]{{3}})\s*{_AMOUNT}"),
    re.compile(rf"{_AMOUNT}\s*([A-Z]{{3}})\b"),
)
CURRENCY_HINTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\u20b9|\brupees?\b|\bRs\.?(?=\s*\d)", _I), "INR"),
    (re.compile(r"\bdirhams?\b|\bUAE\b", _I), "AED"),
    (re.compile(r"\$|\bdollars?\b", _I), "USD"),
    (re.compile(r"\u20ac|\beuros?\b", _I), "EUR"),
    (re.compile(r"\u00a3|\bpounds?\s+sterling\b|\bpounds?\b", _I), "GBP"),
    (re.compile(r"\briyals?\b", _I), "SAR"),
)

GRAND_TOTAL_PATTERNS = tuple(
    re.compile(
        rf"{label}[:\s]*(?:\(?[A-Z]{{3}}\)?|Rs\.?|[$\u20b9\u20ac\u00a3])?[:\s]*({_AMOUNT})",
        _I,
    )
    for label in (
        r"Grand\s*Total",
        r"Total\s*Amount",
        r"Final\s*Total",
        r"Amount\s*Due",
        r"Total\s*Value(?:\s*of\s*this\s*Order)?",
    )
)

QUOTATION_REFERENCE_PATTERNS = (
    re.compile(rf"Quotation\s*Reference\s*N[o\u00b0][.:\s]+{_ID}", _I),
    re.compile(rf"Quotation\s*(?:Reference|Ref\.?|No\.?|Number|#)[:\s#]+{_ID}", _I),
    re.compile(rf"Quote\s*(?:No\.?|Number|#)[:\s#]+{_ID}", _I),
    re.compile(rf"\bQTN[:\s#]+{_ID}", _I),
)
VENDOR_PATTERNS = (
    re.compile(r"Vendor(?:\s*Name)?[:\s]+([^\n]+)", _I),
    re.compile(r"Supplier(?:\s*Name)?[:\s]+([^\n]+)", _I),
)


def _first(
    patterns: Iterable[re.Pattern[str]],
    text: str,
    accept: Callable[[str], bool] = lambda value: True,
) -> str | None:
    """First captured group, over all patterns in order, that ``accept`` allows."""
    if not text:
        return None
    for pattern in patterns:
        for match in pattern.finditer(text):
            value = clean_str(match.group(1))
            if value and accept(value):
                return value
    return None


def _trim_name(value: str) -> str:
    value = _NAME_CUT_RE.sub("", value)
    return value.strip(" ,;:.-")


def find_number(text: str, kind: DocumentKind, reject: Callable[[str], bool]) -> str | None:
    """Primary document number; must contain a digit and not be a placeholder."""
    return _first(
        NUMBER_PATTERNS[kind],
        text,
        lambda value: any(ch.isdigit() for ch in value) and not reject(value),
    )


def _find_dated(patterns: Iterable[re.Pattern[str]], text: str, pivot: int) -> dt.date | None:
    if not text:
        return None
    for pattern in patterns:
        for match in pattern.finditer(text):
            parsed = parse_date(match.group(1), pivot)
            if parsed:
                return parsed
    return None


def find_date(text: str, kind: DocumentKind, pivot: int = 50) -> dt.date | None:
    """Primary document date, kind-specific labels first."""
    return _find_dated((*DATE_PATTERNS[kind], *GENERIC_DATE_PATTERNS), text, pivot)


def find_expiry(text: str, pivot: int = 50) -> dt.date | None:
    """Expiry or validity date."""
    return _find_dated(EXPIRY_PATTERNS, text, pivot)


def looks_like_company(value: str | None) -> bool:
    """Whether a name carries a company suffix."""
    return bool(value and re.search(rf"(?<![A-Za-z]){_SUFFIX}(?![A-Za-z])", value, _I))


def _plausible_name(value: str, reject: Callable[[str], bool]) -> bool:
    return (
        3 < len(value) < 100
        and any(ch.isalpha() for ch in value)
        and not _NAME_REJECT_RE.search(value)
        and not reject(value)
    )


def company_from_address(address: str | None, reject: Callable[[str], bool]) -> str | None:
    """Company name at the start of an address (``Almarai Company Plant ...``)."""
    if not address:
        return None
    for pattern in ADDRESS_COMPANY_PATTERNS:
        match = pattern.search(address)
        if match:
            value = match.group(1).strip(" ,")
            if 3 < len(value) < 100 and not reject(value):
                return value
    return None


def find_counterparty(text: str, reject: Callable[[str], bool]) -> str | None:
    """Counterparty from labelled lines, then any company-like name."""
    if not text:
        return None
    for pattern in LABELLED_NAME_PATTERNS:
        for match in pattern.finditer(text):
            value = _trim_name(clean_str(match.group(1)) or "")
            if value and _plausible_name(value, reject):
                return value
    return _first((COMPANY_RE,), text, lambda value: _plausible_name(value, reject))


def find_address(text: str) -> str | None:
    """Delivery or customer address, whitespace collapsed."""
    return _first(ADDRESS_PATTERNS, text, lambda value: len(value) > 3)


def find_email(text: str) -> str | None:
    """Labelled email, then any email address."""
    return _first((LABELLED_EMAIL_RE, EMAIL_RE), text)


def find_phone(text: str) -> str | None:
    """Labelled phone number."""
    return _first((PHONE_RE,), text)


def currency_from_value(value: str | None) -> str | None:
    """Canonical code for a structured currency value (code, symbol or word)."""
    text = clean_str(value)
    if text is None:
        return None
    upper = text.upper()
    if upper in CURRENCY_CODES:
        return upper
    for pattern, code in CURRENCY_HINTS:
        if pattern.search(text):
            return code
    if len(upper) == 3 and upper.isalpha():
        return upper
    return None


def find_currency(text: str) -> str | None:
    """
    Currency from the raw text.

    Order: a code near the grand total, a ``Unit Price (XXX)`` label, a
    known code next to an amount, then symbols and currency words.
    """
    if not text:
        return None
    for group in (CURRENCY_NEAR_TOTAL_PATTERNS, CURRENCY_LABEL_PATTERNS, CURRENCY_AMOUNT_PATTERNS):
        found = _first(group, text, lambda value: value.upper() in CURRENCY_CODES)
        if found:
            return found.upper()
    for pattern, code in CURRENCY_HINTS:
        if pattern.search(text):
            return code
    return None


def find_grand_total(text: str) -> float | None:
    """Labelled grand total; must be positive."""
    found = _first(GRAND_TOTAL_PATTERNS, text, lambda value: to_float(value) > 0)
    return to_float(found) if found else None


def find_quotation_reference(text: str, reject: Callable[[str], bool]) -> str | None:
    """Quotation a purchase order refers to."""
    return _first(
        QUOTATION_REFERENCE_PATTERNS,
        text,
        lambda value: any(ch.isdigit() for ch in value) and not reject(value),
    )


def find_vendor(text: str, reject: Callable[[str], bool]) -> str | None:
    """Vendor (supplier) named on a purchase order."""
    if not text:
        return None
    for pattern in VENDOR_PATTERNS:
        for match in pattern.finditer(text):
            value = _trim_name(clean_str(match.group(1)) or "")
            if value and 2 < len(value) < 100 and not reject(value):
                return value
    return None
