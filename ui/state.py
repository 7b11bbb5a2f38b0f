"""List view state machine.

The view state is an immutable `ListState`; every user action or network
outcome is an event, and `reduce(state, event)` returns the next state.
Transitions that change the requested page or filters enter `LOADING` and
bump `request_id`. Fetch outcomes carry the id they were issued for and
are dropped when a newer request has superseded them, so the displayed
page always matches the latest requested filters.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from shared.models import (
    PaginatedTransactions,
    Pagination,
    SortField,
    SortOrder,
    Transaction,
    TransactionQuery,
    TransactionType,
)


DEFAULT_LIMIT = 10
SYNC_WARNING = (
    "Transaction saved locally but failed to sync with server. "
    "Please refresh to see the latest state."
)


class Status(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class FilterState:
    type: TransactionType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    sort_by: SortField = SortField.TIMESTAMP
    sort_order: SortOrder = SortOrder.DESC

    def active_count(self) -> int:
        """Number of set filters, sort excluded."""

        values = (self.type, self.start_date, self.end_date, self.min_amount, self.max_amount)
        return sum(1 for value in values if value is not None)


@dataclass(frozen=True, slots=True)
class ListState:
    page: int = 1
    limit: int = DEFAULT_LIMIT
    filters: FilterState = field(default_factory=FilterState)
    status: Status = Status.IDLE
    result: PaginatedTransactions | None = None
    error: str | None = None
    warning: str | None = None
    request_id: int = 0

    @property
    def total_pages(self) -> int:
        if self.result is None:
            return 0
        return self.result.pagination.total_pages

    @property
    def rows(self) -> list[Transaction]:
        return list(self.result.items) if self.result is not None else []


@dataclass(frozen=True, slots=True)
class PageChanged:
    page: int


@dataclass(frozen=True, slots=True)
class FiltersApplied:
    filters: FilterState


@dataclass(frozen=True, slots=True)
class SortToggled:
    column: SortField


@dataclass(frozen=True, slots=True)
class KeyPressed:
    key: str


@dataclass(frozen=True, slots=True)
class RefreshRequested:
    pass


@dataclass(frozen=True, slots=True)
class FetchSucceeded:
    request_id: int
    result: PaginatedTransactions


@dataclass(frozen=True, slots=True)
class FetchFailed:
    request_id: int
    message: str


@dataclass(frozen=True, slots=True)
class OptimisticCreated:
    transaction: Transaction


@dataclass(frozen=True, slots=True)
class CreateSynced:
    temp_id: str
    transaction: Transaction


@dataclass(frozen=True, slots=True)
class CreateSyncFailed:
    temp_id: str
    message: str = SYNC_WARNING


@dataclass(frozen=True, slots=True)
class WarningDismissed:
    pass


Event = (
    PageChanged
    | FiltersApplied
    | SortToggled
    | KeyPressed
    | RefreshRequested
    | FetchSucceeded
    | FetchFailed
    | OptimisticCreated
    | CreateSynced
    | CreateSyncFailed
    | WarningDismissed
)


def _start_fetch(state: ListState, **changes: object) -> ListState:
    return replace(state, status=Status.LOADING, error=None, request_id=state.request_id + 1, **changes)


def toggle_sort(filters: FilterState, column: SortField) -> FilterState:
    """Flip direction on the active column; a new column starts ascending."""

    if filters.sort_by == column:
        order = SortOrder.DESC if filters.sort_order == SortOrder.ASC else SortOrder.ASC
        return replace(filters, sort_order=order)
    return replace(filters, sort_by=column, sort_order=SortOrder.ASC)


def _page_for_key(state: ListState, key: str) -> int | None:
    if key == "ArrowLeft" and state.page > 1:
        return state.page - 1
    if key == "ArrowRight" and state.page < state.total_pages:
        return state.page + 1
    return None


def _prepend_optimistic(result: PaginatedTransactions, transaction: Transaction) -> PaginatedTransactions:
    pagination = result.pagination
    total_items = pagination.total_items + 1
    return PaginatedTransactions(
        items=[transaction, *result.items][: pagination.limit],
        pagination=Pagination(
            page=pagination.page,
            limit=pagination.limit,
            total_items=total_items,
            total_pages=math.ceil(total_items / pagination.limit),
        ),
    )


def _replace_row(result: PaginatedTransactions, temp_id: str, transaction: Transaction) -> PaginatedTransactions:
    items = [transaction if item.id == temp_id else item for item in result.items]
    return PaginatedTransactions(items=items, pagination=result.pagination)


def reduce(state: ListState, event: Event) -> ListState:
    if isinstance(event, PageChanged):
        if event.page < 1 or event.page == state.page:
            return state
        return _start_fetch(state, page=event.page)

    if isinstance(event, FiltersApplied):
        return _start_fetch(state, filters=event.filters, page=1)

    if isinstance(event, SortToggled):
        return _start_fetch(state, filters=toggle_sort(state.filters, event.column))

    if isinstance(event, KeyPressed):
        page = _page_for_key(state, event.key)
        if page is None:
            return state
        return _start_fetch(state, page=page)

    if isinstance(event, RefreshRequested):
        return _start_fetch(state)

    if isinstance(event, FetchSucceeded):
        if event.request_id != state.request_id:
            return state
        return replace(state, status=Status.SUCCESS, result=event.result, error=None)

    if isinstance(event, FetchFailed):
        if event.request_id != state.request_id:
            return state
        return replace(state, status=Status.ERROR, error=event.message)

    if isinstance(event, OptimisticCreated):
        if state.result is None:
            return state
        return replace(state, result=_prepend_optimistic(state.result, event.transaction))

    if isinstance(event, CreateSynced):
        if state.result is None:
            return state
        return replace(state, result=_replace_row(state.result, event.temp_id, event.transaction))

    if isinstance(event, CreateSyncFailed):
        return replace(state, warning=event.message)

    if isinstance(event, WarningDismissed):
        return replace(state, warning=None)

    raise TypeError(f"Unsupported list event: {type(event).__name__}")


def build_query(state: ListState) -> TransactionQuery:
    """Return the query for the state's current page, filters and sort."""

    filters = state.filters
    return TransactionQuery(
        page=state.page,
        limit=state.limit,
        sort_by=filters.sort_by,
        sort_order=filters.sort_order,
        type=filters.type,
        start_date=filters.start_date,
        end_date=filters.end_date,
        min_amount=filters.min_amount,
        max_amount=filters.max_amount,
    )
