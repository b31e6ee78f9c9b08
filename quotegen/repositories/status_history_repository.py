"""
Status history repository (persistence).

Append-only storage for StatusChangeRecord audit entries (table
`quote_status_history`). Records are inserted once and never updated or deleted.
"""

from __future__ import annotations

from typing import Any, List, Mapping

from quotegen.domain.quote import QuoteStatus
from quotegen.domain.status_workflow import StatusChangeRecord
from quotegen.domain.time import parse_utc_datetime, to_iso_utc
from quotegen.repositories.client import Client, execute, rows_of

_HISTORY_TABLE: str = "quote_status_history"


def _row_to_record(row: Mapping[str, Any]) -> StatusChangeRecord:
    """Convert a Supabase row into a StatusChangeRecord."""

    return StatusChangeRecord(
        id=str(row["id"]),
        quote_id=str(row["quote_id"]),
        from_status=QuoteStatus(str(row["from_status"])),
        to_status=QuoteStatus(str(row["to_status"])),
        changed_by=str(row["changed_by"]),
        changed_by_name=str(row["changed_by_name"]),
        changed_at=parse_utc_datetime(row["changed_at"]),
        comment=row.get("comment"),
        metadata=row.get("metadata"),
    )


def record_to_row(record: StatusChangeRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "quote_id": record.quote_id,
        "from_status": record.from_status.value,
        "to_status": record.to_status.value,
        "changed_by": record.changed_by,
        "changed_by_name": record.changed_by_name,
        "changed_at": to_iso_utc(record.changed_at, name="changed_at"),
        "comment": record.comment,
        "metadata": dict(record.metadata) if record.metadata is not None else None,
    }


def record_status_change(client: Client, record: StatusChangeRecord) -> None:
    """Insert one audit record."""

    execute(
        client.table(_HISTORY_TABLE).insert(record_to_row(record)),
        "record status history",
    )


def list_status_history(client: Client, quote_id: str) -> List[StatusChangeRecord]:
    """All audit records for a quote, newest first."""

    response = execute(
        client.table(_HISTORY_TABLE)
        .select("*")
        .eq("quote_id", quote_id)
        .order("changed_at", desc=True),
        "fetch status history",
    )
    return [_row_to_record(row) for row in rows_of(response)]


__all__ = [
    "list_status_history",
    "record_status_change",
    "record_to_row",
]
