"""
Domain: Quote total calculation.

Rules implemented here:
- Line subtotal = quantity * unit_price, less the line's percentage discount.
- Order-level discount is a flat amount applied to the summed subtotal; it can
  never push the taxable base below zero.
- Tax is a percentage of the (clamped) taxable base.
- Every returned amount is rounded independently to 2 decimal places,
  half away from zero.

All arithmetic is Decimal so results are exact, deterministic and independent of
line-item order. No validation happens here; callers validate first
(see `domain.validation`). Malformed numbers (NaN) are not rejected: they
propagate to the affected outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from .quote import LineItem

CENT = Decimal("0.01")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """
    Normalize a numeric input to Decimal.

    Floats go through `str()` so 0.1 becomes Decimal('0.1') rather than its
    binary expansion.
    """

    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_currency(value: Any) -> Decimal:
    """Round to cents, half away from zero (standard currency display)."""

    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class QuoteCalculations:
    """Rounded totals for a set of line items plus order-level adjustments."""

    subtotal: Decimal
    discount_total: Decimal
    taxable_amount: Decimal
    tax_total: Decimal
    total: Decimal


@dataclass(frozen=True, slots=True)
class LineItemAmounts:
    """Rounded derived amounts for a single line item."""

    subtotal: Decimal
    discount: Decimal
    taxable_amount: Decimal
    tax: Decimal
    total: Decimal


def calculate_line_item(item: "LineItem") -> LineItemAmounts:
    """Per-item breakdown using the item's own discount and tax rate."""

    return LineItemAmounts(
        subtotal=round_currency(item.subtotal),
        discount=round_currency(item.discount_amount),
        taxable_amount=round_currency(item.taxable_amount),
        tax=round_currency(item.tax_amount),
        total=round_currency(item.total),
    )


def calculate_quote_totals(
    line_items: Iterable["LineItem"],
    discount_total: Any = 0,
    global_tax_rate: Any = 0,
) -> QuoteCalculations:
    """
    Calculate quote totals.

    Args:
        line_items: Items exposing quantity, unit_price and discount_percent
        discount_total: Flat order-level discount amount
        global_tax_rate: Tax percentage (0-100) applied after the order discount

    Returns:
        QuoteCalculations with every field rounded to cents

    Example:
        calculate_quote_totals([LineItem(name="Widget", quantity=2, unit_price=100,
                                         discount_percent=10)], 0, 8)
        # subtotal 180.00, tax_total 14.40, total 194.40
    """
    subtotal = _ZERO
    for item in line_items:
        item_total = to_decimal(item.quantity) * to_decimal(item.unit_price)
        item_discount = item_total * to_decimal(item.discount_percent or 0) / _HUNDRED
        subtotal += item_total - item_discount

    discount = to_decimal(discount_total or 0)
    taxable_amount = subtotal - discount
    # NaN propagates to every output instead of raising
    if not taxable_amount.is_nan() and taxable_amount < _ZERO:
        taxable_amount = _ZERO
    tax_total = taxable_amount * to_decimal(global_tax_rate or 0) / _HUNDRED
    total = taxable_amount + tax_total

    return QuoteCalculations(
        subtotal=round_currency(subtotal),
        discount_total=round_currency(discount),
        taxable_amount=round_currency(taxable_amount),
        tax_total=round_currency(tax_total),
        total=round_currency(total),
    )


__all__ = [
    "CENT",
    "LineItemAmounts",
    "QuoteCalculations",
    "calculate_line_item",
    "calculate_quote_totals",
    "round_currency",
    "to_decimal",
]
