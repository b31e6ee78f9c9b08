"""
Pytest configuration.

Provides an in-memory stand-in for the Supabase client (only the query-builder
calls the repositories make) and a TestClient wired to it through
`app.dependency_overrides`.
"""

from __future__ import annotations

import copy
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import pytest
from fastapi.testclient import TestClient

from quotegen.domain.quote import LineItem, Quote, QuoteStatus
from quotegen.repositories.quote_repository import quote_to_row
from quotegen.services.notification_service import EmailSender, StatusEmail


def _sort_key(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


class FakeResponse:
    def __init__(self, data: Optional[List[Dict[str, Any]]] = None, error: Any = None) -> None:
        self.data = data if data is not None else []
        self.error = error


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: List[Callable[[Dict[str, Any]], bool]] = []
        self._order: Optional[Tuple[str, bool]] = None
        self._limit: Optional[int] = None

    def select(self, columns: str = "*") -> "FakeQuery":
        self._op = "select"
        return self

    def insert(self, payload: Any) -> "FakeQuery":
        self._op = "insert"
        self._payload = payload
        return self

    def update(self, payload: Dict[str, Any]) -> "FakeQuery":
        self._op = "update"
        self._payload = payload
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column: str, values: List[Any]) -> "FakeQuery":
        allowed = list(values)
        self._filters.append(lambda row: row.get(column) in allowed)
        return self

    def lt(self, column: str, value: Any) -> "FakeQuery":
        self._filters.append(
            lambda row: row.get(column) is not None and _sort_key(row[column]) < _sort_key(value)
        )
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self._order = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self._limit = count
        return self

    def _matching(self) -> List[Dict[str, Any]]:
        return [row for row in self._db.tables.setdefault(self._table, []) if all(f(row) for f in self._filters)]

    def execute(self) -> FakeResponse:
        self._db.calls.append((self._table, self._op))
        if (self._table, self._op) in self._db.failures:
            return FakeResponse(error={"message": f"{self._op} on {self._table} failed"})

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            new_rows = self._payload if isinstance(self._payload, list) else [self._payload]
            stored = [copy.deepcopy(row) for row in new_rows]
            rows.extend(stored)
            return FakeResponse(data=copy.deepcopy(stored))

        if self._op == "update":
            matched = self._matching()
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return FakeResponse(data=copy.deepcopy(matched))

        matched = self._matching()
        if self._order is not None:
            column, desc = self._order
            matched = sorted(matched, key=lambda row: _sort_key(row.get(column)), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return FakeResponse(data=copy.deepcopy(matched))


class FakeSupabase:
    """
    In-memory Supabase client.

    `failures` holds (table, operation) pairs whose queries return an error
    response, e.g. ("quote_status_history", "insert").
    """

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.failures: Set[Tuple[str, str]] = set()
        self.calls: List[Tuple[str, str]] = []

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])


class RecordingEmailSender(EmailSender):
    def __init__(self) -> None:
        self.sent: List[StatusEmail] = []
        self.fail = False

    def send(self, email: StatusEmail) -> None:
        if self.fail:
            raise ConnectionError("SMTP relay unavailable")
        self.sent.append(email)


BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_quote(**overrides: Any) -> Quote:
    quote = Quote(
        id="quote-1",
        quote_number="Q-20250101-ABC123",
        status=QuoteStatus.DRAFT,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
        customer_id="cust-1",
        customer_name="Acme Corp",
        customer_email="buyer@acme.example",
        title="Spring order",
        line_items=(LineItem(name="Widget", quantity=2, unit_price=100, discount_percent=10),),
        subtotal=Decimal("180.00"),
        discount_total=Decimal("0.00"),
        tax_total=Decimal("14.40"),
        shipping_total=Decimal("0.00"),
        total=Decimal("194.40"),
        expires_at=BASE_TIME + timedelta(days=30),
    )
    return replace(quote, **overrides)


@pytest.fixture
def db() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def seed_quote(db: FakeSupabase) -> Callable[..., Quote]:
    """Store a quote row and return the Quote."""

    def _seed(**overrides: Any) -> Quote:
        quote = make_quote(**overrides)
        db.tables.setdefault("quotes", []).append(quote_to_row(quote))
        return quote

    return _seed


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def client(db: FakeSupabase, email_sender: RecordingEmailSender):
    from quotegen.api.dependencies import get_db, get_email_sender
    from quotegen.api.main import app

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
