"""
Tests for `services/status_service.py`.

Covers contract rules:
- The audit record is written before the quote; a failed history write leaves
  the quote untouched.
- Lifecycle timestamps are only written on first entry into a status.
- Rejection comments become the quote's rejection_reason.
- Customer email and activity logging are best-effort.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import Mock

import pytest
from conftest import BASE_TIME

from quotegen.domain.quote import QuoteStatus
from quotegen.domain.status_workflow import StatusChangeRecord
from quotegen.repositories.quote_repository import get_quote_by_id
from quotegen.services.notification_service import EmailSender
from quotegen.services.status_service import (
    Actor,
    StatusChangeError,
    build_status_update,
    change_quote_status,
    get_quote_with_history,
)

ACTOR = Actor(user_id="user-7", user_name="Dana")


def test_valid_change_updates_quote_and_writes_history(db, seed_quote, email_sender) -> None:
    seed_quote(status=QuoteStatus.SENT, sent_at=BASE_TIME)

    outcome = change_quote_status(
        db, "quote-1", QuoteStatus.ACCEPTED, actor=ACTOR, email_sender=email_sender
    )

    assert outcome.quote.status is QuoteStatus.ACCEPTED
    assert outcome.quote.accepted_at is not None
    assert outcome.quote.updated_at > BASE_TIME
    assert isinstance(outcome.transition, StatusChangeRecord)
    assert outcome.transition.from_status is QuoteStatus.SENT
    assert outcome.transition.to_status is QuoteStatus.ACCEPTED
    assert outcome.transition.changed_by == "user-7"

    history = db.rows("quote_status_history")
    assert len(history) == 1
    assert history[0]["id"] == outcome.transition.id

    assert outcome.notification is not None and outcome.notification.ok
    assert [email.subject for email in email_sender.sent] == ["Quote Q-20250101-ABC123 - Accepted!"]

    activities = db.rows("activities")
    assert len(activities) == 1
    assert activities[0]["type"] == "quote_accepted"
    assert activities[0]["user_id"] == "user-7"


def test_history_is_written_before_quote_update(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.DRAFT)

    change_quote_status(db, "quote-1", "pending", actor=ACTOR)

    writes = [call for call in db.calls if call[1] in ("insert", "update")]
    assert writes[:2] == [("quote_status_history", "insert"), ("quotes", "update")]


def test_invalid_transition_changes_nothing(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.DRAFT)

    with pytest.raises(StatusChangeError) as exc_info:
        change_quote_status(db, "quote-1", QuoteStatus.ACCEPTED, actor=ACTOR)

    assert exc_info.value.code == "INVALID_TRANSITION"
    assert exc_info.value.message == 'Invalid transition from "draft" to "accepted"'
    assert db.rows("quote_status_history") == []
    assert db.rows("quotes")[0]["status"] == "draft"


def test_missing_quote(db) -> None:
    with pytest.raises(StatusChangeError) as exc_info:
        change_quote_status(db, "nope", QuoteStatus.SENT)
    assert exc_info.value.code == "NOT_FOUND"


def test_fetch_failure(db, seed_quote) -> None:
    seed_quote()
    db.failures.add(("quotes", "select"))

    with pytest.raises(StatusChangeError) as exc_info:
        change_quote_status(db, "quote-1", QuoteStatus.SENT)
    assert exc_info.value.code == "FETCH_ERROR"


def test_history_failure_aborts_before_quote_update(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.DRAFT)
    db.failures.add(("quote_status_history", "insert"))

    with pytest.raises(StatusChangeError) as exc_info:
        change_quote_status(db, "quote-1", QuoteStatus.SENT, actor=ACTOR)

    assert exc_info.value.code == "HISTORY_ERROR"
    assert ("quotes", "update") not in db.calls
    assert db.rows("quotes")[0]["status"] == "draft"


def test_update_failure_reports_and_keeps_history(db, seed_quote, caplog) -> None:
    seed_quote(status=QuoteStatus.DRAFT)
    db.failures.add(("quotes", "update"))

    with pytest.raises(StatusChangeError) as exc_info:
        change_quote_status(db, "quote-1", QuoteStatus.SENT, actor=ACTOR)

    assert exc_info.value.code == "UPDATE_ERROR"
    assert len(db.rows("quote_status_history")) == 1
    assert any(
        getattr(record, "modification_type", None) == "status_history_without_quote_update"
        for record in caplog.records
    )


def test_notification_failure_does_not_fail_change(db, seed_quote, email_sender) -> None:
    seed_quote(status=QuoteStatus.DRAFT)
    email_sender.fail = True

    outcome = change_quote_status(db, "quote-1", QuoteStatus.SENT, email_sender=email_sender)

    assert outcome.quote.status is QuoteStatus.SENT
    assert outcome.notification is not None
    assert outcome.notification.ok is False
    assert "SMTP relay unavailable" in outcome.notification.error


def test_activity_failure_does_not_fail_change(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.DRAFT)
    db.failures.add(("activities", "insert"))

    outcome = change_quote_status(db, "quote-1", QuoteStatus.SENT)

    assert outcome.quote.status is QuoteStatus.SENT
    assert outcome.activity.ok is False


def test_notify_customer_false_sends_nothing(db, seed_quote, email_sender) -> None:
    seed_quote(status=QuoteStatus.DRAFT)

    outcome = change_quote_status(
        db, "quote-1", QuoteStatus.SENT, notify_customer=False, email_sender=email_sender
    )

    assert outcome.notification is None
    assert email_sender.sent == []


def test_viewed_does_not_notify(db, seed_quote, email_sender) -> None:
    seed_quote(status=QuoteStatus.SENT, sent_at=BASE_TIME)

    outcome = change_quote_status(db, "quote-1", QuoteStatus.VIEWED, email_sender=email_sender)

    assert outcome.notification is not None and outcome.notification.value is False
    assert email_sender.sent == []


def test_rejection_comment_becomes_rejection_reason(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.VIEWED, sent_at=BASE_TIME, viewed_at=BASE_TIME)

    outcome = change_quote_status(
        db, "quote-1", QuoteStatus.REJECTED, actor=ACTOR, comment="Price too high"
    )

    assert outcome.quote.rejection_reason == "Price too high"
    assert outcome.quote.rejected_at is not None
    assert outcome.transition.comment == "Price too high"


def test_build_status_update_keeps_first_lifecycle_timestamp(seed_quote) -> None:
    earlier = BASE_TIME - timedelta(days=2)
    quote = seed_quote(status=QuoteStatus.VIEWED, sent_at=earlier, accepted_at=earlier)

    changes = build_status_update(quote, QuoteStatus.ACCEPTED)

    assert changes["status"] is QuoteStatus.ACCEPTED
    assert "accepted_at" not in changes
    assert "rejection_reason" not in changes


def test_build_status_update_ignores_comment_for_non_rejection(seed_quote) -> None:
    quote = seed_quote(status=QuoteStatus.SENT)

    changes = build_status_update(quote, QuoteStatus.VIEWED, comment="Opened link")

    assert "viewed_at" in changes
    assert "rejection_reason" not in changes


def test_expired_has_no_lifecycle_timestamp(seed_quote) -> None:
    quote = seed_quote(status=QuoteStatus.SENT)

    changes = build_status_update(quote, QuoteStatus.EXPIRED)

    assert set(changes) == {"status", "updated_at"}


def test_get_quote_with_history_newest_first(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.DRAFT)
    change_quote_status(db, "quote-1", QuoteStatus.PENDING)
    change_quote_status(db, "quote-1", QuoteStatus.SENT)
    # make ordering independent of clock resolution
    db.rows("quote_status_history")[0]["changed_at"] = (BASE_TIME + timedelta(minutes=1)).isoformat()
    db.rows("quote_status_history")[1]["changed_at"] = (BASE_TIME + timedelta(minutes=2)).isoformat()

    quote, history = get_quote_with_history(db, "quote-1")

    assert quote.status is QuoteStatus.SENT
    assert [record.to_status for record in history] == [QuoteStatus.SENT, QuoteStatus.PENDING]


def test_get_quote_with_history_tolerates_history_failure(db, seed_quote) -> None:
    seed_quote()
    db.failures.add(("quote_status_history", "select"))

    quote, history = get_quote_with_history(db, "quote-1")

    assert quote.id == "quote-1"
    assert history == []


def test_stored_row_matches_returned_quote(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.DRAFT)

    outcome = change_quote_status(db, "quote-1", QuoteStatus.SENT)

    assert get_quote_by_id(db, "quote-1") == outcome.quote


def test_sender_receives_rendered_email(db, seed_quote) -> None:
    seed_quote(status=QuoteStatus.VIEWED, sent_at=BASE_TIME, viewed_at=BASE_TIME)
    sender = Mock(spec=EmailSender)

    change_quote_status(
        db, "quote-1", QuoteStatus.REJECTED, email_sender=sender, company_name="Acme Quotes"
    )

    sender.send.assert_called_once()
    email = sender.send.call_args.args[0]
    assert email.to == "buyer@acme.example"
    assert email.subject == "Quote Q-20250101-ABC123 - Update"
