"""
Quote repository (persistence).

This module provides *only* persistence operations for the Quote domain entity.
It does not enforce business rules (e.g. allowed status transitions); it only
inserts, fetches and updates quote rows.

Row shape (table `quotes`): one column per Quote attribute, money as numeric,
timestamps as ISO-8601 UTC strings, `line_items` as a JSON array.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from quotegen.domain.quote import LIFECYCLE_TIMESTAMP_FIELDS, LineItem, Quote, QuoteStatus
from quotegen.domain.time import parse_optional_utc_datetime, parse_utc_datetime, to_iso_utc
from quotegen.repositories.client import Client, RepositoryError, execute, rows_of

# Supabase table name for quotes.
# Keep this aligned with your database schema.
_QUOTES_TABLE: str = "quotes"

_MONEY_COLUMNS = ("subtotal", "discount_total", "tax_total", "shipping_total", "total")


def _decimal(value: Any, default: str = "0") -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal(default)


def _line_item_from_json(data: Mapping[str, Any]) -> LineItem:
    return LineItem(
        name=str(data.get("name", "")),
        quantity=_decimal(data.get("quantity")),
        unit_price=_decimal(data.get("unit_price")),
        discount_percent=_decimal(data.get("discount_percent")),
        tax_rate=_decimal(data.get("tax_rate")),
        product_id=data.get("product_id"),
        sku=data.get("sku"),
        description=data.get("description"),
    )


def line_item_to_json(item: LineItem) -> dict[str, Any]:
    return {
        "name": item.name,
        "quantity": str(item.quantity),
        "unit_price": str(item.unit_price),
        "discount_percent": str(item.discount_percent),
        "tax_rate": str(item.tax_rate),
        "product_id": item.product_id,
        "sku": item.sku,
        "description": item.description,
    }


def _row_to_quote(row: Mapping[str, Any]) -> Quote:
    """Convert a Supabase row into a Quote."""

    timestamps = {
        column: parse_optional_utc_datetime(row.get(column))
        for column in LIFECYCLE_TIMESTAMP_FIELDS.values()
    }

    return Quote(
        id=str(row["id"]),
        quote_number=str(row.get("quote_number") or row["id"]),
        status=QuoteStatus(str(row["status"])),
        created_at=parse_utc_datetime(row["created_at"]),
        updated_at=parse_utc_datetime(row.get("updated_at") or row["created_at"]),
        customer_id=row.get("customer_id"),
        customer_name=row.get("customer_name"),
        customer_email=row.get("customer_email"),
        title=str(row.get("title") or "New Quote"),
        line_items=tuple(_line_item_from_json(item) for item in (row.get("line_items") or [])),
        subtotal=_decimal(row.get("subtotal"), "0.00"),
        discount_total=_decimal(row.get("discount_total"), "0.00"),
        tax_total=_decimal(row.get("tax_total"), "0.00"),
        shipping_total=_decimal(row.get("shipping_total"), "0.00"),
        total=_decimal(row.get("total"), "0.00"),
        currency=str(row.get("currency") or "USD"),
        expires_at=parse_optional_utc_datetime(row.get("expires_at")),
        rejection_reason=row.get("rejection_reason"),
        notes=row.get("notes"),
        terms=row.get("terms"),
        **timestamps,
    )


def quote_to_row(quote: Quote) -> dict[str, Any]:
    """Serialize a Quote into the `quotes` row shape."""

    row: dict[str, Any] = {
        "id": quote.id,
        "quote_number": quote.quote_number,
        "status": quote.status.value,
        "customer_id": quote.customer_id,
        "customer_name": quote.customer_name,
        "customer_email": quote.customer_email,
        "title": quote.title,
        "line_items": [line_item_to_json(item) for item in quote.line_items],
        "currency": quote.currency,
        "expires_at": to_iso_utc(quote.expires_at, name="expires_at") if quote.expires_at else None,
        "created_at": to_iso_utc(quote.created_at, name="created_at"),
        "updated_at": to_iso_utc(quote.updated_at, name="updated_at"),
        "rejection_reason": quote.rejection_reason,
        "notes": quote.notes,
        "terms": quote.terms,
    }
    for column in _MONEY_COLUMNS:
        row[column] = str(getattr(quote, column))
    for column in LIFECYCLE_TIMESTAMP_FIELDS.values():
        value: Optional[datetime] = getattr(quote, column)
        row[column] = to_iso_utc(value, name=column) if value else None
    return row


def insert_quote(client: Client, quote: Quote) -> Quote:
    """Insert a new quote row. Returns the quote as stored."""

    response = execute(
        client.table(_QUOTES_TABLE).insert(quote_to_row(quote)),
        "insert quote",
    )
    rows = rows_of(response)
    return _row_to_quote(rows[0]) if rows else quote


def get_quote_by_id(client: Client, quote_id: str) -> Optional[Quote]:
    """
    Retrieve a single quote by its ID.

    Returns:
        Quote or None if not found
    """

    response = execute(
        client.table(_QUOTES_TABLE).select("*").eq("id", quote_id).limit(1),
        "fetch quote",
    )
    rows = rows_of(response)

    if not rows:
        return None

    return _row_to_quote(rows[0])


def update_quote(client: Client, quote_id: str, changes: Mapping[str, Any]) -> Quote:
    """
    Apply a partial update to one quote and return the updated row.

    `changes` uses column names; datetimes must be UTC and are serialized here.

    Raises:
        RepositoryError: if the update fails or no row matched
    """

    payload: dict[str, Any] = {}
    for column, value in changes.items():
        if isinstance(value, datetime):
            payload[column] = to_iso_utc(value, name=column)
        elif isinstance(value, QuoteStatus):
            payload[column] = value.value
        else:
            payload[column] = value

    response = execute(
        client.table(_QUOTES_TABLE).update(payload).eq("id", quote_id),
        "update quote",
    )
    rows = rows_of(response)

    if not rows:
        raise RepositoryError(f"Failed to update quote: no quote with id {quote_id}")

    return _row_to_quote(rows[0])


def list_quotes(
    client: Client,
    status: Optional[QuoteStatus] = None,
    customer_id: Optional[str] = None,
) -> List[Quote]:
    """
    List quotes, newest first.

    Args:
        status: only quotes currently in this status
        customer_id: only quotes for this customer
    """

    query = client.table(_QUOTES_TABLE).select("*")
    if status is not None:
        query = query.eq("status", status.value)
    if customer_id:
        query = query.eq("customer_id", customer_id)

    response = execute(query.order("created_at", desc=True), "list quotes")
    return [_row_to_quote(row) for row in rows_of(response)]


def list_quotes_past_expiry(
    client: Client,
    as_of: datetime,
    statuses: Iterable[QuoteStatus],
) -> List[Quote]:
    """Quotes in one of `statuses` whose expires_at is before `as_of`, oldest first."""

    response = execute(
        client.table(_QUOTES_TABLE)
        .select("*")
        .lt("expires_at", to_iso_utc(as_of, name="as_of"))
        .in_("status", [status.value for status in statuses])
        .order("expires_at"),
        "list expired quotes",
    )
    return [_row_to_quote(row) for row in rows_of(response)]


__all__ = [
    "get_quote_by_id",
    "insert_quote",
    "line_item_to_json",
    "list_quotes",
    "list_quotes_past_expiry",
    "quote_to_row",
    "update_quote",
]
