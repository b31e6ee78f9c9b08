"""
Tests for `domain/quote_calculator.py`.

Covers contract rules:
- Line discounts are percentages of quantity * unit_price.
- The order discount never pushes the taxable base below zero.
- Every amount is rounded to cents, half away from zero.
- Results do not depend on line item order.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from quotegen.domain.quote import LineItem
from quotegen.domain.quote_calculator import (
    calculate_line_item,
    calculate_quote_totals,
    round_currency,
    to_decimal,
)


def test_single_item_with_line_discount_and_tax() -> None:
    items = [LineItem(name="Widget", quantity=2, unit_price=100, discount_percent=10)]

    result = calculate_quote_totals(items, 0, 8)

    assert result.subtotal == Decimal("180.00")
    assert result.discount_total == Decimal("0.00")
    assert result.taxable_amount == Decimal("180.00")
    assert result.tax_total == Decimal("14.40")
    assert result.total == Decimal("194.40")


def test_order_discount_reduces_taxable_amount() -> None:
    items = [
        LineItem(name="A", quantity=1, unit_price=50),
        LineItem(name="B", quantity=3, unit_price="16.50"),
    ]

    result = calculate_quote_totals(items, 20, 10)

    assert result.subtotal == Decimal("99.50")
    assert result.discount_total == Decimal("20.00")
    assert result.taxable_amount == Decimal("79.50")
    assert result.tax_total == Decimal("7.95")
    assert result.total == Decimal("87.45")


def test_empty_items_with_discount_clamp_to_zero() -> None:
    result = calculate_quote_totals([], 500, 8)

    assert result.subtotal == Decimal("0.00")
    assert result.taxable_amount == Decimal("0.00")
    assert result.tax_total == Decimal("0.00")
    assert result.total == Decimal("0.00")


def test_discount_larger_than_subtotal_never_goes_negative() -> None:
    items = [LineItem(name="A", quantity=1, unit_price=10)]

    result = calculate_quote_totals(items, 25, 20)

    assert result.taxable_amount == Decimal("0.00")
    assert result.total == Decimal("0.00")


def test_totals_are_independent_of_item_order() -> None:
    items = [
        LineItem(name="A", quantity="1.5", unit_price="19.99", discount_percent="12.5"),
        LineItem(name="B", quantity=7, unit_price="0.33"),
        LineItem(name="C", quantity=1, unit_price="1234.56", discount_percent=3),
    ]

    forward = calculate_quote_totals(items, "10.10", "7.25")
    backward = calculate_quote_totals(list(reversed(items)), "10.10", "7.25")

    assert forward == backward


def test_rounding_is_half_up() -> None:
    items = [LineItem(name="A", quantity=1, unit_price="0.05")]

    # 0.05 * 10% = 0.005 -> 0.01
    result = calculate_quote_totals(items, 0, 10)

    assert result.tax_total == Decimal("0.01")
    assert round_currency("2.675") == Decimal("2.68")
    assert round_currency("-2.675") == Decimal("-2.68")


def test_floats_are_converted_through_str() -> None:
    assert to_decimal(0.1) == Decimal("0.1")
    items = [LineItem(name="A", quantity=3, unit_price=0.1)]

    assert calculate_quote_totals(items).subtotal == Decimal("0.30")


@pytest.mark.parametrize("tax_rate", [None, 0, "0"])
def test_missing_tax_rate_means_no_tax(tax_rate) -> None:
    items = [LineItem(name="A", quantity=1, unit_price=10)]

    assert calculate_quote_totals(items, None, tax_rate).total == Decimal("10.00")


def test_calculate_line_item_uses_item_tax_rate() -> None:
    item = LineItem(name="A", quantity=4, unit_price="25", discount_percent=5, tax_rate=10)

    amounts = calculate_line_item(item)

    assert amounts.subtotal == Decimal("100.00")
    assert amounts.discount == Decimal("5.00")
    assert amounts.taxable_amount == Decimal("95.00")
    assert amounts.tax == Decimal("9.50")
    assert amounts.total == Decimal("104.50")


def test_nan_input_propagates_instead_of_raising() -> None:
    items = [
        LineItem(name="A", quantity=float("nan"), unit_price=1),
        LineItem(name="B", quantity=1, unit_price=10),
    ]

    totals = calculate_quote_totals(items, 5, 8)

    assert totals.subtotal.is_nan()
    assert totals.taxable_amount.is_nan()
    assert totals.tax_total.is_nan()
    assert totals.total.is_nan()
    assert totals.discount_total == Decimal("5.00")
