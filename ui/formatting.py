"""Plain-text presentation helpers for the transactions list."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from shared.models import SortField, SortOrder, TransactionType
from ui.state import FilterState, ListState, Status


_COLUMNS: tuple[tuple[SortField, str], ...] = (
    (SortField.TYPE, "Type"),
    (SortField.AMOUNT, "Amount"),
    (SortField.TIMESTAMP, "Date"),
)


def format_amount(amount: Decimal | float | str) -> str:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        return "0.00"
    if not value.is_finite():
        return "0.00"
    return f"{value:.2f}"


def sort_indicator(filters: FilterState, column: SortField) -> str:
    if filters.sort_by != column:
        return "↕"
    return "↑" if filters.sort_order == SortOrder.ASC else "↓"


def page_label(state: ListState) -> str:
    return f"Page {state.page} of {state.total_pages or 1}"


def render_table(state: ListState) -> str:
    """Render the current view as a fixed-width text table."""

    if state.status == Status.ERROR:
        return f"Error! {state.error}"

    header = " | ".join(f"{label} {sort_indicator(state.filters, column)}" for column, label in _COLUMNS)
    lines = ["Transactions", header, "-" * len(header)]
    if state.status == Status.LOADING and state.result is None:
        lines.append("Loading...")
    for row in state.rows:
        sign = "+" if row.type == TransactionType.CREDIT else "-"
        lines.append(
            f"{row.type.value:<6} | {sign}${format_amount(row.amount):>10} | {row.timestamp.isoformat()}"
        )
    lines.append(page_label(state))
    if state.warning:
        lines.append(f"Warning: {state.warning}")
    return "\n".join(lines)
