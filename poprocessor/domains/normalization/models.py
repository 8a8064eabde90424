"""
Normalization Models - Canonical business records and normalizer config.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, computed_field, model_validator

from poprocessor.config.settings import Settings

from .coercion import to_float


class DocumentKind(str, Enum):
    """Kinds of business document the pipeline understands."""

    PURCHASE_ORDER = "po"
    INQUIRY = "inquiry"
    QUOTATION = "quotation"

    @property
    def requires_prices(self) -> bool:
        """Inquiries ask for prices; orders and quotations carry them."""
        return self is not DocumentKind.INQUIRY

    @property
    def label(self) -> str:
        return {
            DocumentKind.PURCHASE_ORDER: "purchase order",
            DocumentKind.INQUIRY: "customer inquiry",
            DocumentKind.QUOTATION: "quotation",
        }[self]


class RecordStatus(str, Enum):
    """Lifecycle status derived from the expiry date."""

    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class LineItem(BaseModel):
    """
    A single line of a business record.

    Numeric fields are coerced at construction and ``total`` is always
    ``quantity * unit_price``, whatever total was supplied.

    Example:
        >>> LineItem(name="Gloves", quantity="5.00", unit_price="180.00", total="850.00").total
        900.0
    """

    name: str
    code: str | None = None
    description: str | None = None
    quantity: float = Field(default=0.0, ge=0.0)
    unit: str = "pcs"
    unit_price: float = Field(default=0.0, ge=0.0)
    total: float = 0.0
    manufacturer_part: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def reconcile_total(cls, data: Any) -> Any:
        """Coerce numbers and recompute the line total."""
        if isinstance(data, dict):
            data = dict(data)
            quantity = max(to_float(data.get("quantity")), 0.0)
            unit_price = max(to_float(data.get("unit_price")), 0.0)
            data["quantity"] = quantity
            data["unit_price"] = unit_price
            data["total"] = quantity * unit_price
        return data


class BusinessRecord(BaseModel):
    """Shared shape of purchase orders, inquiries and quotations."""

    kind: DocumentKind
    number: str = "N/A"
    date: dt.date
    expiry_date: dt.date
    counterparty_name: str = "Unknown"
    address: str | None = None
    email: str | None = None
    phone: str | None = None
    currency: str = "AED"
    total_amount: float = Field(default=0.0, ge=0.0)
    terms: str | None = None
    notes: str | None = None
    line_items: tuple[LineItem, ...] = ()
    summary: str | None = None
    is_valid: bool = True
    issues: tuple[str, ...] = ()
    expiring_soon_days: int = Field(default=7, ge=0, exclude=True)

    model_config = {"frozen": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> RecordStatus:
        """Status as of today."""
        return self.status_on(dt.date.today())

    def status_on(self, today: dt.date) -> RecordStatus:
        """Status as of ``today``."""
        if self.expiry_date < today:
            return RecordStatus.EXPIRED
        if (self.expiry_date - today).days <= self.expiring_soon_days:
            return RecordStatus.EXPIRING_SOON
        return RecordStatus.ACTIVE


class PurchaseOrder(BusinessRecord):
    """Order received from a customer."""

    kind: DocumentKind = DocumentKind.PURCHASE_ORDER
    vendor_name: str | None = None
    quotation_reference: str | None = None


class CustomerInquiry(BusinessRecord):
    """Request for quotation; line items need no price."""

    kind: DocumentKind = DocumentKind.INQUIRY


class Quotation(BusinessRecord):
    """Offer sent to a customer; ``expiry_date`` is the validity date."""

    kind: DocumentKind = DocumentKind.QUOTATION


RECORD_TYPES: dict[DocumentKind, type[BusinessRecord]] = {
    DocumentKind.PURCHASE_ORDER: PurchaseOrder,
    DocumentKind.INQUIRY: CustomerInquiry,
    DocumentKind.QUOTATION: Quotation,
}


class NormalizerConfig(BaseModel):
    """Defaults and placeholder policy for field normalization."""

    default_currency: str = "AED"
    two_digit_year_pivot: int = Field(default=50, ge=0, le=99)
    default_validity_days: int = Field(default=30, ge=0)
    expiring_soon_days: int = Field(default=7, ge=0)
    placeholder_values: tuple[str, ...] = ("", "n/a", "na", "unknown", "null", "none", "-")
    placeholder_terms: tuple[str, ...] = ("sample", "test")

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> NormalizerConfig:
        """Build config from application settings."""
        return cls(
            default_currency=settings.default_currency,
            two_digit_year_pivot=settings.two_digit_year_pivot,
            default_validity_days=settings.default_validity_days,
            expiring_soon_days=settings.expiring_soon_days,
            placeholder_values=tuple(settings.placeholder_values),
            placeholder_terms=tuple(settings.placeholder_terms),
        )
