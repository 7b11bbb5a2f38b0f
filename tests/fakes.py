"""Deterministic fakes for repository, service and UI tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from backend.services.query_translator import build_query_plan
from backend.repositories.transactions_repository import InMemoryTransactionsRepository
from shared.models import (
    PaginatedTransactions,
    Pagination,
    Transaction,
    TransactionCreate,
    TransactionQuery,
    TransactionType,
)
from ui.api_client import ApiError


def make_transaction(
    index: int,
    amount: str,
    type: str,
    *,
    day: int | None = None,
) -> Transaction:
    return Transaction(
        id=str(UUID(int=index)),
        amount=Decimal(amount),
        type=TransactionType(type),
        timestamp=datetime(2025, 1, day or index, 12, 0, tzinfo=timezone.utc),
    )


FIXED_TRANSACTIONS = [
    make_transaction(1, "10.00", "debit"),
    make_transaction(2, "50.00", "credit"),
    make_transaction(3, "100.00", "credit"),
]


@dataclass(slots=True)
class ClientStub:
    """Records PostgREST calls and replays canned rows."""

    rows: list[dict[str, object]] = field(default_factory=list)
    total: int | None = None
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)
    post_calls: list[dict[str, object]] = field(default_factory=list)

    def get_rows(self, *, table, query, with_count, use_anon_key=False):
        self.calls.append({"table": table, "query": query, "with_count": with_count})
        if self.error is not None:
            raise self.error
        return self.rows, self.total if with_count else None

    def post_rows(self, *, table, payload, prefer="return=representation", use_anon_key=False):
        self.post_calls.append({"table": table, "payload": payload, "prefer": prefer})
        if self.error is not None:
            raise self.error
        return self.rows


@dataclass
class FakeTransactionsApiClient:
    """In-process stand-in for the HTTP client backed by the in-memory repository."""

    repository: InMemoryTransactionsRepository = field(
        default_factory=lambda: InMemoryTransactionsRepository(list(FIXED_TRANSACTIONS))
    )
    fail_list: bool = False
    fail_create: bool = False
    queries: list[TransactionQuery] = field(default_factory=list)
    created: list[Transaction] = field(default_factory=list)

    def list_transactions(self, query: TransactionQuery) -> PaginatedTransactions:
        self.queries.append(query)
        if self.fail_list:
            raise ApiError("Database operation failed", status_code=503, code="DATABASE_ERROR")
        items, total = self.repository.query(build_query_plan(query))
        return PaginatedTransactions(
            items=items,
            pagination=Pagination.from_total(page=query.page, limit=query.limit, total_items=total),
        )

    def create_transaction(self, *, amount, type, timestamp=None) -> Transaction:
        if self.fail_create:
            raise ApiError("Unable to reach server: connection refused")
        payload = {"amount": amount, "type": type}
        if timestamp is not None:
            payload["timestamp"] = timestamp
        created = self.repository.create(TransactionCreate(**payload))
        self.created.append(created)
        return created
