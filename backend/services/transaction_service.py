"""Transaction service: validation, query planning and repository access."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from backend.errors import NotFoundError
from backend.repositories.transactions_repository import TransactionsRepository
from backend.services.query_translator import build_query_plan
from backend.validation import validate_create, validate_query, validate_transaction_id
from shared.models import PaginatedTransactions, Pagination, Transaction


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TransactionService:
    """Thin wrapper that validates input before touching the repository."""

    repository: TransactionsRepository

    def create_transaction(self, payload: Any) -> Transaction:
        validated = validate_create(payload)
        transaction = self.repository.create(validated)
        logger.info("transaction_created id=%s type=%s", transaction.id, transaction.type.value)
        return transaction

    def get_transaction(self, raw_id: str) -> Transaction:
        transaction_id = validate_transaction_id(raw_id)
        transaction = self.repository.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        return transaction

    def list_transactions(self, params: Mapping[str, Any]) -> PaginatedTransactions:
        query = validate_query(params)
        plan = build_query_plan(query)
        items, total_items = self.repository.query(plan)
        logger.info(
            "transactions_listed page=%s limit=%s returned=%s total_items=%s",
            query.page,
            query.limit,
            len(items),
            total_items,
        )
        return PaginatedTransactions(
            items=items,
            pagination=Pagination.from_total(page=query.page, limit=query.limit, total_items=total_items),
        )
