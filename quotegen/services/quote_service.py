"""
Quote creation service.

Turns completed wizard form data into a stored draft quote:
- validates customer and line items
- computes totals with the quote calculator
- assigns a quote number and expiry
- records a `quote_created` activity (best-effort)
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional
from uuid import uuid4

from quotegen.domain.activity import Activity, ActivityType
from quotegen.domain.quote import Quote, QuoteStatus
from quotegen.domain.quote_calculator import calculate_quote_totals, round_currency
from quotegen.domain.time import require_utc_timestamp, utc_now
from quotegen.domain.validation import (
    ValidationErrors,
    merge_errors,
    validate_customer_info,
    validate_line_items,
)
from quotegen.domain.wizard import QuoteFormData
from quotegen.repositories.activity_repository import record_activity
from quotegen.repositories.client import Client
from quotegen.repositories.quote_repository import insert_quote
from quotegen.services.best_effort import run_best_effort
from quotegen.services.status_service import Actor

logger = logging.getLogger(__name__)


class QuoteValidationError(ValueError):
    """Raised when form data fails validation. `errors` maps field path -> messages."""

    def __init__(self, errors: ValidationErrors) -> None:
        self.errors = errors
        fields = ", ".join(sorted(errors))
        super().__init__(f"Quote data is invalid: {fields}")


def generate_quote_number(now: datetime) -> str:
    """Human-readable quote number, e.g. Q-20250101-3F9A1C."""

    return f"Q-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


def build_quote(
    form_data: QuoteFormData,
    *,
    currency: str = "USD",
    validity_days: int = 30,
    now: Optional[datetime] = None,
) -> Quote:
    """
    Build a draft Quote from form data without persisting it.

    The applied order discount is clamped to the subtotal so that
    total == subtotal - discount_total + tax_total + shipping_total holds.

    Raises:
        QuoteValidationError: if customer or line item data is invalid
    """

    errors = merge_errors(
        validate_customer_info(form_data.customer),
        validate_line_items(form_data.line_items),
    )
    if errors:
        raise QuoteValidationError(errors)

    created_at = now or utc_now()
    require_utc_timestamp("now", created_at)

    calculations = calculate_quote_totals(
        form_data.line_items,
        form_data.discount_total,
        form_data.tax_rate,
    )
    discount_applied = min(calculations.discount_total, calculations.subtotal)
    shipping_total = round_currency(form_data.shipping_total)
    total = calculations.subtotal - discount_applied + calculations.tax_total + shipping_total

    expires_at = form_data.valid_until or created_at + timedelta(days=validity_days)

    customer = form_data.customer
    return Quote(
        id=str(uuid4()),
        quote_number=generate_quote_number(created_at),
        status=QuoteStatus.DRAFT,
        created_at=created_at,
        updated_at=created_at,
        customer_id=customer.customer_id,
        customer_name=customer.name.strip(),
        customer_email=customer.email.strip(),
        title=form_data.title or "New Quote",
        line_items=tuple(form_data.line_items),
        subtotal=calculations.subtotal,
        discount_total=discount_applied,
        tax_total=calculations.tax_total,
        shipping_total=shipping_total,
        total=total,
        currency=currency,
        expires_at=expires_at,
        notes=form_data.notes or None,
        terms=form_data.terms or None,
    )


def create_quote(
    client: Client,
    form_data: QuoteFormData,
    *,
    actor: Actor = Actor(),
    currency: str = "USD",
    validity_days: int = 30,
    now: Optional[datetime] = None,
) -> Quote:
    """
    Validate, price and store a new draft quote.

    Raises:
        QuoteValidationError: if the form data is invalid
        RepositoryError: if the quote cannot be stored
    """

    quote = insert_quote(
        client,
        build_quote(form_data, currency=currency, validity_days=validity_days, now=now),
    )

    logger.info(
        f"Quote {quote.quote_number} created",
        extra={"quote_id": quote.id, "total": str(quote.total), "user_id": actor.user_id},
    )

    run_best_effort(
        "record_activity",
        record_activity,
        client,
        Activity(
            activity_type=ActivityType.QUOTE_CREATED,
            quote_id=quote.id,
            quote_number=quote.quote_number,
            customer_id=quote.customer_id,
            customer_name=quote.customer_name,
            user_id=actor.user_id,
            user_name=actor.user_name,
            description=f"Quote {quote.quote_number} created",
            created_at=utc_now(),
        ),
    )

    return quote


__all__ = [
    "QuoteValidationError",
    "build_quote",
    "create_quote",
    "generate_quote_number",
]
