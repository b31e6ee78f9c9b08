"""
Domain: Quote status workflow.

Defines which quote status transitions are legal and builds the immutable audit
record for an accepted transition.

Allowed transitions (self-transitions are never allowed):
- draft    -> pending, sent
- pending  -> sent, rejected
- sent     -> viewed, accepted, rejected, expired
- viewed   -> accepted, rejected, expired
- accepted -> converted
- rejected, expired, converted are terminal

Everything here is pure except `create_status_change_record`, which generates
an identifier and stamps the current time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple
from uuid import uuid4

from .activity import ActivityType
from .quote import LIFECYCLE_TIMESTAMP_FIELDS, QuoteStatus
from .time import require_utc_timestamp, utc_now

# Ordered so `get_next_statuses` is stable for display.
_TRANSITIONS: Dict[QuoteStatus, Tuple[QuoteStatus, ...]] = {
    QuoteStatus.DRAFT: (QuoteStatus.PENDING, QuoteStatus.SENT),
    QuoteStatus.PENDING: (QuoteStatus.SENT, QuoteStatus.REJECTED),
    QuoteStatus.SENT: (
        QuoteStatus.VIEWED,
        QuoteStatus.ACCEPTED,
        QuoteStatus.REJECTED,
        QuoteStatus.EXPIRED,
    ),
    QuoteStatus.VIEWED: (QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED),
    QuoteStatus.ACCEPTED: (QuoteStatus.CONVERTED,),
    QuoteStatus.REJECTED: (),
    QuoteStatus.EXPIRED: (),
    QuoteStatus.CONVERTED: (),
}

ALLOWED_TRANSITIONS: Dict[QuoteStatus, FrozenSet[QuoteStatus]] = {
    status: frozenset(targets) for status, targets in _TRANSITIONS.items()
}

_ACTIVITY_TYPES: Dict[QuoteStatus, ActivityType] = {
    QuoteStatus.DRAFT: ActivityType.QUOTE_CREATED,
    QuoteStatus.SENT: ActivityType.QUOTE_SENT,
    QuoteStatus.VIEWED: ActivityType.QUOTE_VIEWED,
    QuoteStatus.ACCEPTED: ActivityType.QUOTE_ACCEPTED,
    QuoteStatus.REJECTED: ActivityType.QUOTE_REJECTED,
    QuoteStatus.EXPIRED: ActivityType.QUOTE_EXPIRED,
    QuoteStatus.CONVERTED: ActivityType.QUOTE_CONVERTED,
}


@dataclass(frozen=True, slots=True)
class StatusMetadata:
    label: str
    description: str
    is_final: bool
    can_edit: bool


STATUS_METADATA: Dict[QuoteStatus, StatusMetadata] = {
    QuoteStatus.DRAFT: StatusMetadata("Draft", "Quote is being prepared", False, True),
    QuoteStatus.PENDING: StatusMetadata("Pending", "Quote is ready to be sent", False, True),
    QuoteStatus.SENT: StatusMetadata("Sent", "Quote has been sent to customer", False, False),
    QuoteStatus.VIEWED: StatusMetadata("Viewed", "Customer has viewed the quote", False, False),
    QuoteStatus.ACCEPTED: StatusMetadata(
        "Accepted", "Quote has been accepted by customer", False, False
    ),
    QuoteStatus.REJECTED: StatusMetadata("Declined", "Quote has been declined", True, False),
    QuoteStatus.EXPIRED: StatusMetadata("Expired", "Quote has expired", True, False),
    QuoteStatus.CONVERTED: StatusMetadata("Converted", "Quote converted to order", True, False),
}


class InvalidTransition(Exception):
    """Raised (or carried by TransitionResult) when a status change is not allowed."""

    def __init__(self, from_status: QuoteStatus, to_status: QuoteStatus) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f'Invalid transition from "{from_status.value}" to "{to_status.value}"'
        )

    @property
    def message(self) -> str:
        return str(self)


@dataclass(frozen=True, slots=True)
class TransitionResult:
    """
    Outcome of `validate_transition`.

    success: True if the transition is allowed
    error: the InvalidTransition when it is not (None on success)
    """

    success: bool
    error: Optional[InvalidTransition] = None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass(frozen=True, slots=True)
class StatusChangeRecord:
    """
    Immutable audit entry for one accepted status transition.

    Created exactly once per transition; never mutated or deleted. `metadata`
    is held as a read-only mapping.
    """

    id: str
    quote_id: str
    from_status: QuoteStatus
    to_status: QuoteStatus
    changed_by: str
    changed_by_name: str
    changed_at: datetime
    comment: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = field(default=None)

    def __post_init__(self) -> None:
        require_utc_timestamp("changed_at", self.changed_at)
        if self.metadata is not None:
            object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


def validate_transition(current: QuoteStatus | str, requested: QuoteStatus | str) -> TransitionResult:
    """
    Check `current -> requested` against the allowed transition table.

    Raises ValueError if either value is not a QuoteStatus.
    """

    current_status = QuoteStatus(current)
    requested_status = QuoteStatus(requested)

    if requested_status in ALLOWED_TRANSITIONS[current_status]:
        return TransitionResult(success=True)
    return TransitionResult(
        success=False,
        error=InvalidTransition(current_status, requested_status),
    )


def is_valid_transition(current: QuoteStatus | str, requested: QuoteStatus | str) -> bool:
    return validate_transition(current, requested).success


def get_next_statuses(status: QuoteStatus | str) -> List[QuoteStatus]:
    """Statuses directly reachable from `status`."""

    return list(_TRANSITIONS[QuoteStatus(status)])


def _generate_history_id() -> str:
    return f"hist_{uuid4().hex}"


def create_status_change_record(
    quote_id: str,
    from_status: QuoteStatus | str,
    to_status: QuoteStatus | str,
    actor_id: str,
    actor_name: str,
    comment: Optional[str] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> StatusChangeRecord:
    """
    Build the audit record for a status change.

    Does NOT validate the transition itself; call `validate_transition` first and
    only build a record on success.
    """

    for name, value in (
        ("quote_id", quote_id),
        ("actor_id", actor_id),
        ("actor_name", actor_name),
    ):
        if not value:
            raise ValueError(f"{name} is required")

    return StatusChangeRecord(
        id=_generate_history_id(),
        quote_id=quote_id,
        from_status=QuoteStatus(from_status),
        to_status=QuoteStatus(to_status),
        changed_by=actor_id,
        changed_by_name=actor_name,
        changed_at=utc_now(),
        comment=comment,
        metadata=metadata,
    )


def get_activity_type_for_status_change(status: QuoteStatus | str) -> ActivityType:
    return _ACTIVITY_TYPES.get(QuoteStatus(status), ActivityType.STATUS_CHANGED)


def lifecycle_timestamp_field(status: QuoteStatus | str) -> Optional[str]:
    """Quote column stamped on first entry into `status` (None if untracked)."""

    return LIFECYCLE_TIMESTAMP_FIELDS.get(QuoteStatus(status))


def get_status_metadata(status: QuoteStatus | str) -> StatusMetadata:
    return STATUS_METADATA[QuoteStatus(status)]


def is_final_status(status: QuoteStatus | str) -> bool:
    return get_status_metadata(status).is_final


def can_edit_quote(status: QuoteStatus | str) -> bool:
    return get_status_metadata(status).can_edit


__all__ = [
    "ALLOWED_TRANSITIONS",
    "STATUS_METADATA",
    "InvalidTransition",
    "StatusChangeRecord",
    "StatusMetadata",
    "TransitionResult",
    "can_edit_quote",
    "create_status_change_record",
    "get_activity_type_for_status_change",
    "get_next_statuses",
    "get_status_metadata",
    "is_final_status",
    "is_valid_transition",
    "lifecycle_timestamp_field",
    "validate_transition",
]
