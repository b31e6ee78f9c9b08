"""
Domain: Quote and LineItem entities.

A Quote is one pricing proposal sent to a customer. It is created in `draft` and
afterwards changes only through validated status transitions (see
`domain.status_workflow`).

Invariants:
- total == subtotal - discount_total + tax_total + shipping_total, with every
  term rounded to 2 decimal places before summation.
- Lifecycle timestamps (sent_at, viewed_at, accepted_at, rejected_at,
  converted_at) are written on first entry into their status and never
  overwritten afterwards.
- All timestamps are timezone-aware UTC.

This module contains only pure domain entities: no I/O, no database, no frameworks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from .quote_calculator import round_currency, to_decimal
from .time import require_utc_timestamp


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CONVERTED = "converted"


# Status -> quote column stamped on first entry into that status.
LIFECYCLE_TIMESTAMP_FIELDS: Dict[QuoteStatus, str] = {
    QuoteStatus.SENT: "sent_at",
    QuoteStatus.VIEWED: "viewed_at",
    QuoteStatus.ACCEPTED: "accepted_at",
    QuoteStatus.REJECTED: "rejected_at",
    QuoteStatus.CONVERTED: "converted_at",
}


@dataclass(frozen=True, slots=True)
class LineItem:
    """
    One priced entry within a quote.

    Numeric fields are normalized to Decimal. Values are NOT validated here:
    the wizard has to hold half-entered items (quantity 0, empty name) while the
    user is typing. See `domain.validation.validate_line_items`.
    """

    name: str
    quantity: Decimal
    unit_price: Decimal
    discount_percent: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")
    product_id: Optional[str] = None
    sku: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("quantity", "unit_price", "discount_percent", "tax_rate"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    @property
    def discount_amount(self) -> Decimal:
        return self.subtotal * self.discount_percent / Decimal(100)

    @property
    def taxable_amount(self) -> Decimal:
        return self.subtotal - self.discount_amount

    @property
    def tax_amount(self) -> Decimal:
        return self.taxable_amount * self.tax_rate / Decimal(100)

    @property
    def total(self) -> Decimal:
        return self.taxable_amount + self.tax_amount


@dataclass(frozen=True, slots=True)
class Quote:
    """
    Pure domain entity for a Quote.

    Immutability:
    - Status changes produce a new Quote (persisted by the repository layer);
      instances are never mutated in place.
    """

    id: str
    quote_number: str
    status: QuoteStatus
    created_at: datetime
    updated_at: datetime

    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    title: str = "New Quote"
    line_items: Tuple[LineItem, ...] = field(default_factory=tuple)

    # Monetary totals
    subtotal: Decimal = Decimal("0.00")
    discount_total: Decimal = Decimal("0.00")
    tax_total: Decimal = Decimal("0.00")
    shipping_total: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    currency: str = "USD"

    expires_at: Optional[datetime] = None

    # Lifecycle timestamps
    sent_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    converted_at: Optional[datetime] = None

    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("updated_at", self.updated_at)
        for name in ("expires_at", *LIFECYCLE_TIMESTAMP_FIELDS.values()):
            value = getattr(self, name)
            if value is not None:
                require_utc_timestamp(name, value)

    def lifecycle_timestamp(self, status: QuoteStatus) -> Optional[datetime]:
        """Timestamp of first entry into `status`, or None if never entered (or untracked)."""

        column = LIFECYCLE_TIMESTAMP_FIELDS.get(status)
        if column is None:
            return None
        return getattr(self, column)

    def is_past_expiry(self, as_of: datetime) -> bool:
        """True if the validity window closed before `as_of`."""

        require_utc_timestamp("as_of", as_of)
        return self.expires_at is not None and self.expires_at < as_of

    def totals_are_consistent(self) -> bool:
        """Check total == subtotal - discount + tax + shipping (each term rounded)."""

        expected = (
            round_currency(self.subtotal)
            - round_currency(self.discount_total)
            + round_currency(self.tax_total)
            + round_currency(self.shipping_total)
        )
        return round_currency(self.total) == expected
