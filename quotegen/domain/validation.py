"""
Domain: Wizard input validation.

Validation results are a mapping from field path (e.g. `line_items[2].quantity`)
to a list of human-readable messages. An empty mapping means the input is valid.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from .quote_calculator import to_decimal

if TYPE_CHECKING:
    from .quote import LineItem
    from .wizard import CustomerInfo

ValidationErrors = Dict[str, List[str]]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+().]+$")

MIN_NAME_LENGTH = 2


def validate_customer_info(customer: Optional["CustomerInfo"]) -> ValidationErrors:
    """Validate name, email and (optional) phone of the wizard's customer step."""

    errors: ValidationErrors = {}

    name = (customer.name if customer else "") or ""
    email = (customer.email if customer else "") or ""
    phone = customer.phone if customer else None

    if not name.strip():
        errors["name"] = ["Customer name is required"]
    elif len(name.strip()) < MIN_NAME_LENGTH:
        errors["name"] = [f"Name must be at least {MIN_NAME_LENGTH} characters"]

    if not email.strip():
        errors["email"] = ["Email is required"]
    elif not EMAIL_PATTERN.match(email.strip()):
        errors["email"] = ["Please enter a valid email address"]

    if phone and not PHONE_PATTERN.match(phone):
        errors["phone"] = ["Please enter a valid phone number"]

    return errors


def validate_line_items(items: Optional[Sequence["LineItem"]]) -> ValidationErrors:
    """Require at least one item, each named, with quantity > 0 and unit_price >= 0."""

    errors: ValidationErrors = {}

    if not items:
        errors["line_items"] = ["At least one line item is required"]
        return errors

    for index, item in enumerate(items):
        prefix = f"line_items[{index}]"

        if not (item.name or "").strip():
            errors[f"{prefix}.name"] = ["Item name is required"]

        # NaN cannot be ordered; check it before comparing
        quantity = to_decimal(item.quantity)
        if quantity.is_nan() or not quantity > 0:
            errors[f"{prefix}.quantity"] = ["Quantity must be greater than 0"]

        unit_price = to_decimal(item.unit_price)
        if unit_price.is_nan():
            errors[f"{prefix}.unit_price"] = ["Unit price must be a number"]
        elif unit_price < 0:
            errors[f"{prefix}.unit_price"] = ["Unit price cannot be negative"]

    return errors


def merge_errors(*results: ValidationErrors) -> ValidationErrors:
    merged: ValidationErrors = {}
    for result in results:
        for key, messages in result.items():
            merged.setdefault(key, []).extend(messages)
    return merged


__all__ = [
    "EMAIL_PATTERN",
    "PHONE_PATTERN",
    "ValidationErrors",
    "merge_errors",
    "validate_customer_info",
    "validate_line_items",
]
