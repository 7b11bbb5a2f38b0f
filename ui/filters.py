"""Filter panel: edits a draft of the filters until applied or reset."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from ui.state import FilterState, FiltersApplied
from shared.models import TransactionType


def _parse_amount(raw: str | None) -> Decimal | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {raw}") from exc
    if not value.is_finite() or value < 0:
        raise ValueError(f"Invalid amount: {raw}")
    return value


def _parse_instant(raw: str | datetime | None) -> datetime | None:
    """Parse an ISO date or datetime; naive values are taken as UTC."""

    if raw is None:
        return None
    if isinstance(raw, str):
        if not raw.strip():
            return None
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    else:
        value = raw
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass(slots=True)
class FilterPanel:
    applied: FilterState = field(default_factory=FilterState)
    draft: FilterState = field(default_factory=FilterState)

    def set_type(self, value: str | None) -> None:
        self.draft = replace(self.draft, type=TransactionType(value) if value else None)

    def set_date_range(self, start: str | datetime | None, end: str | datetime | None) -> None:
        start_date = _parse_instant(start)
        end_date = _parse_instant(end)
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValueError("Start date must be before or equal to end date")
        self.draft = replace(self.draft, start_date=start_date, end_date=end_date)

    def set_amount_range(self, minimum: str | None, maximum: str | None) -> None:
        min_amount = _parse_amount(minimum)
        max_amount = _parse_amount(maximum)
        if min_amount is not None and max_amount is not None and min_amount > max_amount:
            raise ValueError("Minimum amount must be less than or equal to maximum amount")
        self.draft = replace(self.draft, min_amount=min_amount, max_amount=max_amount)

    def sync(self, filters: FilterState) -> None:
        """Adopt filters changed elsewhere (for example a sort toggle)."""

        self.applied = filters
        self.draft = filters

    def apply(self) -> FiltersApplied:
        self.applied = self.draft
        return FiltersApplied(self.draft)

    def reset(self) -> FiltersApplied:
        """Clear every filter; the current sort survives."""
        self.draft = FilterState(sort_by=self.draft.sort_by, sort_order=self.draft.sort_order)
        return self.apply()
