"""Translate a validated `TransactionQuery` into a bounded read plan.

A plan is a conjunction of row predicates, an ordering and a row window.
It can be rendered as PostgREST query parameters or evaluated directly
against in-memory rows; both renderings must agree.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from shared.models import SortOrder, Transaction, TransactionQuery


TIE_BREAK_COLUMN = "id"


class Operator(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"


@dataclass(frozen=True, slots=True)
class Predicate:
    column: str
    operator: Operator
    value: str | Decimal | datetime

    def matches(self, row: Transaction) -> bool:
        actual = _column_value(row, self.column)
        if self.operator == Operator.EQ:
            return actual == self.value
        if self.operator == Operator.GTE:
            return actual >= self.value
        return actual <= self.value

    def to_param(self) -> tuple[str, str]:
        value = self.value.isoformat() if isinstance(self.value, datetime) else str(self.value)
        return self.column, f"{self.operator.value}.{value}"


@dataclass(frozen=True, slots=True)
class OrderBy:
    column: str
    ascending: bool


@dataclass(frozen=True, slots=True)
class QueryPlan:
    predicates: tuple[Predicate, ...]
    order: OrderBy
    offset: int
    limit: int

    @property
    def window(self) -> tuple[int, int]:
        """Half-open row index range `[offset, offset + limit)`."""

        return self.offset, self.offset + self.limit


def _column_value(row: Transaction, column: str) -> Any:
    value = getattr(row, column)
    if isinstance(value, Enum):
        return value.value
    return value


def build_query_plan(query: TransactionQuery) -> QueryPlan:
    predicates: list[Predicate] = []

    if query.type is not None:
        predicates.append(Predicate("type", Operator.EQ, query.type.value))
    if query.start_date is not None:
        predicates.append(Predicate("timestamp", Operator.GTE, query.start_date))
    if query.end_date is not None:
        predicates.append(Predicate("timestamp", Operator.LTE, query.end_date))
    if query.min_amount is not None:
        predicates.append(Predicate("amount", Operator.GTE, query.min_amount))
    if query.max_amount is not None:
        predicates.append(Predicate("amount", Operator.LTE, query.max_amount))

    return QueryPlan(
        predicates=tuple(predicates),
        order=OrderBy(column=query.sort_by.value, ascending=query.sort_order == SortOrder.ASC),
        offset=(query.page - 1) * query.limit,
        limit=query.limit,
    )


def to_postgrest_params(plan: QueryPlan) -> list[tuple[str, str | int]]:
    """Render a plan as PostgREST query tuples; range bounds repeat the column key."""

    direction = "asc" if plan.order.ascending else "desc"
    params: list[tuple[str, str | int]] = [predicate.to_param() for predicate in plan.predicates]
    params.append(("order", f"{plan.order.column}.{direction},{TIE_BREAK_COLUMN}.asc"))
    params.append(("limit", plan.limit))
    params.append(("offset", plan.offset))
    return params


def apply_plan(plan: QueryPlan, rows: Iterable[Transaction]) -> tuple[list[Transaction], int]:
    """Evaluate a plan in memory and return the page rows plus the unpaginated count."""

    matching = [row for row in rows if all(predicate.matches(row) for predicate in plan.predicates)]
    total = len(matching)

    # Two stable passes: tie-break ascending first, then the requested key.
    matching.sort(key=lambda row: row.id)
    matching.sort(key=lambda row: _column_value(row, plan.order.column), reverse=not plan.order.ascending)

    start, end = plan.window
    return matching[start:end], total
