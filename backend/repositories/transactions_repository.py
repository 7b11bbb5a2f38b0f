"""Transactions repository adapters over the `transactions` table."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Protocol
from uuid import UUID, uuid4

from pydantic import ValidationError as PydanticValidationError

from backend.db.supabase_client import SupabaseClient, SupabaseRequestError
from backend.errors import DatabaseError
from backend.services.query_translator import QueryPlan, apply_plan, to_postgrest_params
from shared.models import Transaction, TransactionCreate


logger = logging.getLogger(__name__)


_SELECT_COLUMNS = "id,amount,type,timestamp"


class TransactionsRepository(Protocol):
    def create(self, payload: TransactionCreate) -> Transaction:
        """Insert one transaction and return the stored row."""

    def get_by_id(self, transaction_id: UUID) -> Transaction | None:
        """Return the transaction with this id, or None when absent."""

    def query(self, plan: QueryPlan) -> tuple[list[Transaction], int]:
        """Return the page rows for a plan and the count of all matching rows."""


class InMemoryTransactionsRepository:
    """Process-local fallback used when Supabase is not configured."""

    def __init__(self, rows: list[Transaction] | None = None) -> None:
        self._rows: list[Transaction] = list(rows or [])
        self._lock = Lock()

    def create(self, payload: TransactionCreate) -> Transaction:
        transaction = Transaction(
            id=str(uuid4()),
            amount=payload.amount,
            type=payload.type,
            timestamp=payload.timestamp,
        )
        with self._lock:
            self._rows.append(transaction)
        return transaction

    def get_by_id(self, transaction_id: UUID) -> Transaction | None:
        wanted = str(transaction_id)
        with self._lock:
            return next((row for row in self._rows if row.id == wanted), None)

    def query(self, plan: QueryPlan) -> tuple[list[Transaction], int]:
        with self._lock:
            snapshot = list(self._rows)
        return apply_plan(plan, snapshot)


class SupabaseTransactionsRepository:
    """Supabase repository reading and writing the transactions table through PostgREST."""

    def __init__(self, client: SupabaseClient, *, table: str = "transactions") -> None:
        self._client = client
        self._table = table

    @staticmethod
    def _parse_row(row: dict[str, object]) -> Transaction:
        try:
            return Transaction.model_validate(row)
        except PydanticValidationError as exc:
            logger.error("transaction_row_invalid row_id=%s", row.get("id"))
            raise DatabaseError("Datastore returned an invalid transaction row", details=str(exc)) from exc

    def create(self, payload: TransactionCreate) -> Transaction:
        try:
            rows = self._client.post_rows(table=self._table, payload=payload.to_row())
        except SupabaseRequestError as exc:
            logger.error("transaction_insert_failed status_code=%s", exc.status_code)
            raise DatabaseError("Database operation failed", details=str(exc)) from exc

        if not rows:
            raise DatabaseError("Insert returned no row")
        return self._parse_row(rows[0])

    def get_by_id(self, transaction_id: UUID) -> Transaction | None:
        query = [("id", f"eq.{transaction_id}"), ("select", _SELECT_COLUMNS), ("limit", 1)]
        try:
            rows, _ = self._client.get_rows(table=self._table, query=query, with_count=False)
        except SupabaseRequestError as exc:
            logger.error("transaction_get_failed id=%s status_code=%s", transaction_id, exc.status_code)
            raise DatabaseError("Database operation failed", details=str(exc)) from exc

        if not rows:
            return None
        return self._parse_row(rows[0])

    def _count(self, plan: QueryPlan) -> int:
        query: list[tuple[str, str | int]] = [predicate.to_param() for predicate in plan.predicates]
        query.extend([("select", "id"), ("limit", 0)])
        _, total = self._client.get_rows(table=self._table, query=query, with_count=True)
        if total is None:
            raise DatabaseError("Datastore did not report a row count")
        return total

    def query(self, plan: QueryPlan) -> tuple[list[Transaction], int]:
        query = [("select", _SELECT_COLUMNS), *to_postgrest_params(plan)]
        try:
            try:
                rows, total = self._client.get_rows(table=self._table, query=query, with_count=True)
            except SupabaseRequestError as exc:
                # PostgREST answers 416 when the offset lies past the last matching row.
                if exc.status_code != 416:
                    raise
                return [], self._count(plan)
        except SupabaseRequestError as exc:
            logger.error("transaction_query_failed status_code=%s", exc.status_code)
            raise DatabaseError("Database operation failed", details=str(exc)) from exc

        if total is None:
            raise DatabaseError("Datastore did not report a row count")
        return [self._parse_row(row) for row in rows], total
