"""
Domain: Activity log entries.

Every quote status change produces one Activity of a category derived from the
new status. Activities are informational only; writing them is best-effort.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .time import require_utc_timestamp


class ActivityType(str, Enum):
    QUOTE_CREATED = "quote_created"
    QUOTE_SENT = "quote_sent"
    QUOTE_VIEWED = "quote_viewed"
    QUOTE_ACCEPTED = "quote_accepted"
    QUOTE_REJECTED = "quote_rejected"
    QUOTE_EXPIRED = "quote_expired"
    QUOTE_CONVERTED = "quote_converted"
    STATUS_CHANGED = "status_changed"


@dataclass(frozen=True, slots=True)
class Activity:
    """Immutable activity log entry for a quote."""

    activity_type: ActivityType
    quote_id: str
    description: str
    created_at: datetime
    quote_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
