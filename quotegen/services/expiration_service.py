"""
Quote expiration sweep.

Finds quotes still awaiting a customer decision (sent or viewed) whose validity
window has closed and moves each to `expired` through the regular status-change
path, so every automatic expiry gets an audit record and an activity entry.

Customers are not emailed about automatic expiry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from quotegen.domain.quote import QuoteStatus
from quotegen.domain.time import require_utc_timestamp, utc_now
from quotegen.repositories.client import Client, RepositoryError
from quotegen.repositories.quote_repository import list_quotes_past_expiry
from quotegen.services.status_service import Actor, StatusChangeError, change_quote_status

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = (QuoteStatus.SENT, QuoteStatus.VIEWED)
AUTO_EXPIRE_COMMENT = "Quote automatically expired"


@dataclass(slots=True)
class ExpirationResult:
    """
    Summary of one sweep.

    expired: number of quotes moved to `expired`
    expired_quote_ids: their IDs, in processing order
    errors: one message per quote that could not be expired (or a fetch error)
    """

    expired: int = 0
    expired_quote_ids: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def expire_overdue_quotes(client: Client, now: Optional[datetime] = None) -> ExpirationResult:
    """
    Expire every sent/viewed quote whose expires_at is before `now`.

    Failures are collected per quote; the sweep never raises for a single quote.
    """

    as_of = now or utc_now()
    require_utc_timestamp("now", as_of)
    result = ExpirationResult()

    try:
        overdue = list_quotes_past_expiry(client, as_of, EXPIRABLE_STATUSES)
    except RepositoryError as e:
        logger.error(f"Error fetching expired quotes: {e}")
        result.errors.append(f"Fetch error: {e}")
        return result

    if not overdue:
        logger.info("No expired quotes found")
        return result

    logger.info(f"Found {len(overdue)} expired quotes")

    for quote in overdue:
        try:
            change_quote_status(
                client,
                quote.id,
                QuoteStatus.EXPIRED,
                actor=Actor(),
                comment=AUTO_EXPIRE_COMMENT,
                metadata={"reason": "expired", "auto": True},
                notify_customer=False,
            )
        except StatusChangeError as e:
            logger.error(f"Failed to expire quote {quote.id}: {e.message}")
            result.errors.append(f"Quote {quote.quote_number}: {e.message}")
            continue

        result.expired += 1
        result.expired_quote_ids.append(quote.id)

    return result


__all__ = ["EXPIRABLE_STATUSES", "ExpirationResult", "expire_overdue_quotes"]
