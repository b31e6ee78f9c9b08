"""
Tests for `services/expiration_service.py`.
"""

from __future__ import annotations

from datetime import timedelta

from conftest import BASE_TIME

from quotegen.domain.quote import QuoteStatus
from quotegen.services.expiration_service import AUTO_EXPIRE_COMMENT, expire_overdue_quotes

NOW = BASE_TIME + timedelta(days=60)


def test_expires_only_overdue_sent_and_viewed_quotes(db, seed_quote, email_sender) -> None:
    seed_quote(id="sent-old", quote_number="Q-1", status=QuoteStatus.SENT, expires_at=NOW - timedelta(days=1))
    seed_quote(id="viewed-old", quote_number="Q-2", status=QuoteStatus.VIEWED, expires_at=NOW - timedelta(days=2))
    seed_quote(id="sent-new", quote_number="Q-3", status=QuoteStatus.SENT, expires_at=NOW + timedelta(days=1))
    seed_quote(id="draft-old", quote_number="Q-4", status=QuoteStatus.DRAFT, expires_at=NOW - timedelta(days=1))
    seed_quote(id="accepted-old", quote_number="Q-5", status=QuoteStatus.ACCEPTED, expires_at=NOW - timedelta(days=1))

    result = expire_overdue_quotes(db, now=NOW)

    assert result.expired == 2
    # oldest expiry first
    assert result.expired_quote_ids == ["viewed-old", "sent-old"]
    assert result.errors == []

    statuses = {row["id"]: row["status"] for row in db.rows("quotes")}
    assert statuses == {
        "sent-old": "expired",
        "viewed-old": "expired",
        "sent-new": "sent",
        "draft-old": "draft",
        "accepted-old": "accepted",
    }


def test_expiry_history_is_attributed_to_system(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.SENT, expires_at=NOW - timedelta(days=1))

    expire_overdue_quotes(db, now=NOW)

    [record] = db.rows("quote_status_history")
    assert record["from_status"] == "sent"
    assert record["to_status"] == "expired"
    assert record["changed_by"] == "system"
    assert record["changed_by_name"] == "System"
    assert record["comment"] == AUTO_EXPIRE_COMMENT
    assert record["metadata"] == {"reason": "expired", "auto": True}

    [activity] = db.rows("activities")
    assert activity["type"] == "quote_expired"


def test_no_overdue_quotes(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.SENT, expires_at=NOW + timedelta(days=1))

    result = expire_overdue_quotes(db, now=NOW)

    assert result.expired == 0
    assert result.expired_quote_ids == []
    assert result.errors == []


def test_fetch_error_is_reported(db) -> None:
    db.failures.add(("quotes", "select"))

    result = expire_overdue_quotes(db, now=NOW)

    assert result.expired == 0
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Fetch error: ")


def test_per_quote_failures_are_collected(db, seed_quote) -> None:
    seed_quote(id="q-a", quote_number="Q-A", status=QuoteStatus.SENT, expires_at=NOW - timedelta(days=1))
    db.failures.add(("quote_status_history", "insert"))

    result = expire_overdue_quotes(db, now=NOW)

    assert result.expired == 0
    assert result.errors == ["Quote Q-A: Failed to record status history"]
    assert db.rows("quotes")[0]["status"] == "sent"
