"""
Field Normalizer - Reconcile generated JSON with the raw text.

Builds a canonical, immutable record from the repaired JSON object:
- Resolves field-name variants through the alias table
- Coerces numbers and scrubs placeholder values
- Falls back to regex extraction over the raw text for missing fields
- Recovers line items from table rows when the JSON has none
- Applies the required-field policy and records violations

Usage:
    normalizer = FieldNormalizer(NormalizerConfig.from_settings(get_settings()))
    record = normalizer.normalize(data, raw_text, DocumentKind.PURCHASE_ORDER)
"""

from __future__ import annotations

import datetime as dt
import logging
import re
from collections.abc import Mapping
from typing import Any

from . import aliases, patterns
from .coercion import clean_str, is_sentinel, to_float
from .dates import parse_date
from .models import RECORD_TYPES, BusinessRecord, DocumentKind, LineItem, NormalizerConfig
from .tables import extract_table_items

logger = logging.getLogger(__name__)

__all__ = ["FieldNormalizer"]

DEFAULT_NUMBER = "N/A"
DEFAULT_COUNTERPARTY = "Unknown"
DEFAULT_UNIT = "pcs"

_JUNK_NAME_RE = re.compile(
    r"\b(?:obj|endobj|stream|endstream|xref|trailer|startxref|FlateDecode|XObject)\b"
    r"|[<>{}\[\]\\|`~!@#$%^&*()_+=\-]{10,}"
)
_TOTAL_TOLERANCE = 0.005


class FieldNormalizer:
    """
    Turns a repaired JSON object and its raw text into a BusinessRecord.

    Normalization never raises on content; missing or unusable fields get
    their documented defaults and policy violations are reported on the
    record's ``issues``.

    Example:
        >>> normalizer = FieldNormalizer()
        >>> record = normalizer.normalize({}, "PO Number: PO-2025-171", DocumentKind.PURCHASE_ORDER)
        >>> record.number
        'PO-2025-171'
    """

    def __init__(self, config: NormalizerConfig | None = None) -> None:
        """
        Initialize the normalizer.

        Args:
            config: Defaults and placeholder policy
        """
        self.config = config or NormalizerConfig()

    # --- Placeholder policy ---

    def is_placeholder(self, value: Any) -> bool:
        """Exact placeholder check ("N/A", "unknown", blank...)."""
        return is_sentinel(value, self.config.placeholder_values)

    def is_denied(self, value: Any) -> bool:
        """Placeholder check including the word denylist ("sample", "test")."""
        return is_sentinel(value, self.config.placeholder_values, self.config.placeholder_terms)

    # --- Entry point ---

    def normalize(
        self,
        data: Mapping[str, Any] | None,
        raw_text: str = "",
        kind: DocumentKind = DocumentKind.PURCHASE_ORDER,
        *,
        today: dt.date | None = None,
    ) -> BusinessRecord:
        """
        Build a canonical record.

        Args:
            data: Repaired JSON object (with or without an envelope)
            raw_text: Text the JSON was generated from
            kind: Expected document kind
            today: Reference date for defaults

        Returns:
            Record of the class matching ``kind``
        """
        kind = DocumentKind(kind)
        today = today or dt.date.today()
        data = data or {}
        payload = aliases.unwrap_envelope(data)
        raw_text = raw_text or ""
        issues: list[str] = []

        number = self._number(payload, raw_text, kind)
        date = self._date(payload, raw_text, kind)
        if date is None:
            date = today
            issues.append("date")
        expiry_date = self._expiry(payload, raw_text) or date + dt.timedelta(
            days=self.config.default_validity_days
        )

        line_items = self._line_items(payload, raw_text, kind)
        address = self._address(payload, raw_text)
        counterparty = self._counterparty(payload, raw_text, address)

        violations = self._violations(number, counterparty, line_items)
        issues.extend(violations)

        fields: dict[str, Any] = {
            "number": number,
            "date": date,
            "expiry_date": expiry_date,
            "counterparty_name": counterparty,
            "address": address,
            "email": self._email(payload, raw_text),
            "phone": self._phone(payload, raw_text),
            "currency": self._currency(payload, raw_text),
            "total_amount": self._total(payload, raw_text, line_items),
            "terms": clean_str(aliases.pick(payload, aliases.TERMS)),
            "notes": clean_str(aliases.pick(payload, aliases.NOTES)),
            "line_items": tuple(line_items),
            "summary": clean_str(aliases.pick(data, aliases.SUMMARY) or aliases.pick(payload, aliases.SUMMARY)),
            "is_valid": not violations,
            "issues": tuple(issues),
            "expiring_soon_days": self.config.expiring_soon_days,
        }
        if kind is DocumentKind.PURCHASE_ORDER:
            fields["vendor_name"] = self._vendor(payload, raw_text)
            fields["quotation_reference"] = self._quotation_reference(payload, raw_text)

        if violations:
            logger.info("Normalized %s failed required fields: %s", kind.label, ", ".join(violations))
        return RECORD_TYPES[kind](**fields)

    # --- Record fields ---

    def _number(self, payload: Mapping[str, Any], raw_text: str, kind: DocumentKind) -> str:
        number = clean_str(aliases.pick(payload, aliases.NUMBER))
        if number and not self.is_denied(number):
            return number
        found = patterns.find_number(raw_text, kind, self.is_denied)
        if found:
            logger.debug("Number recovered from text: %s", found)
            return found
        return DEFAULT_NUMBER

    def _parse(self, value: Any) -> dt.date | None:
        if isinstance(value, dt.datetime):
            return value.date()
        if isinstance(value, dt.date):
            return value
        text = clean_str(value)
        if text is None or self.is_placeholder(text):
            return None
        return parse_date(text, self.config.two_digit_year_pivot)

    def _date(self, payload: Mapping[str, Any], raw_text: str, kind: DocumentKind) -> dt.date | None:
        return self._parse(aliases.pick(payload, aliases.DATE)) or patterns.find_date(
            raw_text, kind, self.config.two_digit_year_pivot
        )

    def _expiry(self, payload: Mapping[str, Any], raw_text: str) -> dt.date | None:
        return self._parse(aliases.pick(payload, aliases.EXPIRY)) or patterns.find_expiry(
            raw_text, self.config.two_digit_year_pivot
        )

    def _address(self, payload: Mapping[str, Any], raw_text: str) -> str | None:
        address = clean_str(aliases.pick(payload, aliases.ADDRESS))
        if address and not self.is_placeholder(address):
            return address
        return patterns.find_address(raw_text)

    def _counterparty(
        self,
        payload: Mapping[str, Any],
        raw_text: str,
        address: str | None,
    ) -> str:
        name = clean_str(aliases.pick(payload, aliases.COUNTERPARTY))
        if name and not self.is_denied(name):
            return name

        found = patterns.company_from_address(address, self.is_denied) or patterns.find_counterparty(
            raw_text, self.is_denied
        )
        if found:
            logger.debug("Counterparty recovered from text: %s", found)
            return found

        vendor = clean_str(aliases.pick(payload, aliases.VENDOR))
        if vendor and not self.is_denied(vendor) and patterns.looks_like_company(vendor):
            return vendor
        return DEFAULT_COUNTERPARTY

    def _email(self, payload: Mapping[str, Any], raw_text: str) -> str | None:
        email = clean_str(aliases.pick(payload, aliases.EMAIL))
        if email and "@" in email:
            return email
        return patterns.find_email(raw_text)

    def _phone(self, payload: Mapping[str, Any], raw_text: str) -> str | None:
        phone = clean_str(aliases.pick(payload, aliases.PHONE))
        if phone and not self.is_placeholder(phone):
            return phone
        return patterns.find_phone(raw_text)

    def _currency(self, payload: Mapping[str, Any], raw_text: str) -> str:
        value = aliases.pick(payload, aliases.CURRENCY)
        if not self.is_placeholder(value):
            currency = patterns.currency_from_value(value)
            if currency:
                return currency
        return patterns.find_currency(raw_text) or self.config.default_currency.upper()

    def _total(self, payload: Mapping[str, Any], raw_text: str, line_items: list[LineItem]) -> float:
        total = max(to_float(aliases.pick(payload, aliases.TOTAL)), 0.0)
        if total > 0:
            return total
        items_total = sum(item.total for item in line_items)
        if items_total > 0:
            return items_total
        return patterns.find_grand_total(raw_text) or 0.0

    def _vendor(self, payload: Mapping[str, Any], raw_text: str) -> str | None:
        vendor = clean_str(aliases.pick(payload, aliases.VENDOR))
        if vendor and not self.is_placeholder(vendor):
            return vendor
        return patterns.find_vendor(raw_text, self.is_placeholder)

    def _quotation_reference(self, payload: Mapping[str, Any], raw_text: str) -> str | None:
        reference = clean_str(aliases.pick(payload, aliases.QUOTATION_REFERENCE))
        if reference and not self.is_placeholder(reference):
            return reference
        return patterns.find_quotation_reference(raw_text, self.is_denied)

    # --- Line items ---

    def _line_items(self, payload: Mapping[str, Any], raw_text: str, kind: DocumentKind) -> list[LineItem]:
        raw_items = aliases.pick(payload, aliases.LINE_ITEMS)
        items = self._build_items(raw_items if isinstance(raw_items, list) else [], kind)
        if items:
            return items

        rows = extract_table_items(raw_text)
        if rows:
            logger.info("No usable line items in JSON; recovered %d from text rows", len(rows))
        return self._build_items(rows, kind)

    def _build_items(self, raw_items: list[Any], kind: DocumentKind) -> list[LineItem]:
        items = []
        for raw in raw_items:
            if isinstance(raw, Mapping):
                item = self.build_item(raw, kind)
                if item is not None:
                    items.append(item)
        return items

    def build_item(self, raw: Mapping[str, Any], kind: DocumentKind) -> LineItem | None:
        """
        Build one line item, or None when it must be rejected.

        Items are rejected for a missing or junk name, quantity <= 0, or
        price <= 0 when the kind requires prices. Inquiry items without a
        quantity default to 1.
        """
        name = clean_str(aliases.pick(raw, aliases.ITEM_NAME))
        if name is None or self.is_placeholder(name) or _JUNK_NAME_RE.search(name):
            logger.debug("Rejected line item with unusable name: %r", name)
            return None

        raw_quantity = aliases.pick(raw, aliases.ITEM_QUANTITY)
        if raw_quantity is None and kind is DocumentKind.INQUIRY:
            quantity = 1.0
        else:
            quantity = to_float(raw_quantity)
        unit_price = to_float(aliases.pick(raw, aliases.ITEM_UNIT_PRICE))

        if quantity <= 0:
            logger.debug("Rejected line item %r: quantity %s", name, quantity)
            return None
        if unit_price < 0 or (kind.requires_prices and unit_price <= 0):
            logger.debug("Rejected line item %r: unit price %s", name, unit_price)
            return None

        supplied_total = aliases.pick(raw, aliases.ITEM_TOTAL)
        computed = quantity * unit_price
        if supplied_total is not None and abs(to_float(supplied_total) - computed) > _TOTAL_TOLERANCE:
            logger.debug(
                "Line total for %r recomputed: supplied %s, quantity * price = %s",
                name,
                supplied_total,
                computed,
            )

        description = clean_str(raw.get("description"))
        return LineItem(
            name=name,
            code=clean_str(aliases.pick(raw, aliases.ITEM_CODE)),
            description=description if description != name else None,
            quantity=quantity,
            unit=clean_str(aliases.pick(raw, aliases.ITEM_UNIT)) or DEFAULT_UNIT,
            unit_price=unit_price,
            manufacturer_part=clean_str(aliases.pick(raw, aliases.ITEM_MANUFACTURER_PART)),
        )

    # --- Policy ---

    def _violations(self, number: str, counterparty: str, line_items: list[LineItem]) -> list[str]:
        """Required-field policy: a real number, and items or a real counterparty."""
        violations = []
        if self.is_denied(number):
            violations.append("number")
        if not line_items and self.is_denied(counterparty):
            violations.append("counterparty_name")
        return violations
