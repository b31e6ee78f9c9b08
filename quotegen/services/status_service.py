"""
Status change service.

Applies a requested status change to a stored quote:

1. Load the quote
2. Validate the transition (domain.status_workflow)
3. Persist the StatusChangeRecord
4. Update status, updated_at, the lifecycle timestamp (first write wins) and,
   for rejections with a comment, rejection_reason
5. Notify the customer (best-effort, sent/accepted/rejected only)
6. Record an activity log entry (best-effort)

The audit record is written before the quote is touched: if it cannot be written
the quote is left unchanged. If the quote update fails after the audit record was
written, the inconsistency is logged and reported; the record is not rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from quotegen.domain.activity import Activity
from quotegen.domain.quote import Quote, QuoteStatus
from quotegen.domain.status_workflow import (
    StatusChangeRecord,
    create_status_change_record,
    get_activity_type_for_status_change,
    lifecycle_timestamp_field,
    validate_transition,
)
from quotegen.domain.time import utc_now
from quotegen.repositories.activity_repository import record_activity
from quotegen.repositories.client import Client, RepositoryError
from quotegen.repositories.quote_repository import get_quote_by_id, update_quote
from quotegen.repositories.status_history_repository import (
    list_status_history,
    record_status_change,
)
from quotegen.services.best_effort import BestEffortResult, run_best_effort
from quotegen.services.notification_service import EmailSender, send_status_notification

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = "system"
SYSTEM_ACTOR_NAME = "System"


class StatusChangeError(Exception):
    """
    A status change could not be applied.

    code is one of NOT_FOUND, INVALID_TRANSITION, FETCH_ERROR, HISTORY_ERROR,
    UPDATE_ERROR.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(frozen=True, slots=True)
class Actor:
    user_id: str = SYSTEM_ACTOR_ID
    user_name: str = SYSTEM_ACTOR_NAME


@dataclass(frozen=True, slots=True)
class StatusChangeOutcome:
    """
    Result of a committed status change.

    quote: the quote as updated
    transition: the audit record written for it
    notification: best-effort email outcome (None if not attempted)
    activity: best-effort activity log outcome
    """

    quote: Quote
    transition: StatusChangeRecord
    notification: Optional[BestEffortResult]
    activity: BestEffortResult


def get_quote_with_history(client: Client, quote_id: str) -> Tuple[Quote, List[StatusChangeRecord]]:
    """
    Load a quote and its status history (newest first).

    A history read failure is logged and yields an empty history rather than
    failing the lookup.
    """

    try:
        quote = get_quote_by_id(client, quote_id)
    except RepositoryError as e:
        logger.error(f"Error fetching quote {quote_id}: {e}")
        raise StatusChangeError("FETCH_ERROR", "Failed to fetch quote") from e

    if quote is None:
        raise StatusChangeError("NOT_FOUND", "Quote not found")

    try:
        history = list_status_history(client, quote_id)
    except RepositoryError as e:
        logger.warning(f"Error fetching status history for quote {quote_id}: {e}")
        history = []

    return quote, history


def build_status_update(
    quote: Quote,
    new_status: QuoteStatus,
    comment: Optional[str] = None,
) -> Dict[str, Any]:
    """Column changes for moving `quote` to `new_status`."""

    now = utc_now()
    changes: Dict[str, Any] = {"status": new_status, "updated_at": now}

    column = lifecycle_timestamp_field(new_status)
    if column is not None and getattr(quote, column) is None:
        changes[column] = now

    if new_status is QuoteStatus.REJECTED and comment:
        changes["rejection_reason"] = comment

    return changes


def _record_activity_for(client: Client, quote: Quote, status: QuoteStatus, actor: Actor) -> None:
    record_activity(
        client,
        Activity(
            activity_type=get_activity_type_for_status_change(status),
            quote_id=quote.id,
            quote_number=quote.quote_number,
            customer_id=quote.customer_id,
            customer_name=quote.customer_name,
            user_id=actor.user_id,
            user_name=actor.user_name,
            description=f"Quote status changed to {status.value}",
            created_at=utc_now(),
        ),
    )


def change_quote_status(
    client: Client,
    quote_id: str,
    new_status: QuoteStatus,
    *,
    actor: Actor = Actor(),
    comment: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
    notify_customer: bool = True,
    email_sender: Optional[EmailSender] = None,
    company_name: str = "QuoteGen",
) -> StatusChangeOutcome:
    """
    Move a quote to `new_status`, recording history and side effects.

    Raises:
        StatusChangeError: if the quote is missing, the transition is not
            allowed, or a required write fails
    """

    new_status = QuoteStatus(new_status)

    try:
        quote = get_quote_by_id(client, quote_id)
    except RepositoryError as e:
        logger.error(f"Error fetching quote {quote_id}: {e}")
        raise StatusChangeError("FETCH_ERROR", "Failed to fetch quote") from e

    if quote is None:
        raise StatusChangeError("NOT_FOUND", "Quote not found")

    current_status = quote.status
    validation = validate_transition(current_status, new_status)
    if not validation.success:
        raise StatusChangeError("INVALID_TRANSITION", validation.message or "Invalid transition")

    record = create_status_change_record(
        quote_id,
        current_status,
        new_status,
        actor.user_id,
        actor.user_name,
        comment,
        metadata,
    )

    try:
        record_status_change(client, record)
    except RepositoryError as e:
        logger.error(f"Error recording status history for quote {quote_id}: {e}")
        raise StatusChangeError("HISTORY_ERROR", "Failed to record status history") from e

    try:
        updated = update_quote(client, quote_id, build_status_update(quote, new_status, comment))
    except RepositoryError as e:
        logger.error(
            f"Quote {quote_id} status update failed after history record {record.id} was written",
            extra={
                "quote_id": quote_id,
                "history_id": record.id,
                "from_status": current_status.value,
                "to_status": new_status.value,
                "modification_type": "status_history_without_quote_update",
            },
        )
        raise StatusChangeError("UPDATE_ERROR", "Failed to update quote status") from e

    logger.info(
        f"Quote {updated.quote_number} status changed: {current_status.value} -> {new_status.value}",
        extra={"quote_id": quote_id, "history_id": record.id, "user_id": actor.user_id},
    )

    notification: Optional[BestEffortResult] = None
    if notify_customer and email_sender is not None:
        notification = run_best_effort(
            "send_status_notification",
            send_status_notification,
            email_sender,
            updated,
            new_status,
            company_name=company_name,
        )

    activity = run_best_effort("record_activity", _record_activity_for, client, updated, new_status, actor)

    return StatusChangeOutcome(
        quote=updated,
        transition=record,
        notification=notification,
        activity=activity,
    )


__all__ = [
    "SYSTEM_ACTOR_ID",
    "SYSTEM_ACTOR_NAME",
    "Actor",
    "StatusChangeError",
    "StatusChangeOutcome",
    "build_status_update",
    "change_quote_status",
    "get_quote_with_history",
]
