"""
Activity repository (persistence).

Inserts activity log entries into the `activities` table.
"""

from __future__ import annotations

from typing import Any

from quotegen.domain.activity import Activity
from quotegen.domain.time import to_iso_utc
from quotegen.repositories.client import Client, execute

_ACTIVITIES_TABLE: str = "activities"


def record_activity(client: Client, activity: Activity) -> None:
    payload: dict[str, Any] = {
        "type": activity.activity_type.value,
        "quote_id": activity.quote_id,
        "quote_number": activity.quote_number,
        "customer_id": activity.customer_id,
        "customer_name": activity.customer_name,
        "user_id": activity.user_id,
        "user_name": activity.user_name,
        "description": activity.description,
        "created_at": to_iso_utc(activity.created_at, name="created_at"),
    }
    execute(client.table(_ACTIVITIES_TABLE).insert(payload), "record activity")


__all__ = ["record_activity"]
