"""Pydantic contracts shared across backend and UI."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_serializer,
    field_validator,
    model_validator,
)

from shared import config


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class SortField(str, Enum):
    """Columns a transaction page can be ordered by."""

    AMOUNT = "amount"
    TYPE = "type"
    TIMESTAMP = "timestamp"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ErrorCode(str, Enum):
    """Stable error codes exposed in HTTP error envelopes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DATABASE_ERROR = "DATABASE_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _reject_non_numeric(value: Any, field_name: str) -> Any:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")
    if isinstance(value, str) and not value.strip():
        raise ValueError(f"{field_name} must be a number")
    return value


def _reject_non_iso(value: Any, field_name: str) -> Any:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be an ISO-8601 datetime string")
    return value


class Transaction(BaseModel):
    """A stored credit/debit record.

    `id` is a string so that provisional client-side rows (``temp-...``)
    share the same shape as server rows.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    amount: Decimal
    type: TransactionType
    timestamp: AwareDatetime

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> Any:
        return value if isinstance(value, str) else str(value)

    @field_validator("amount", mode="before")
    @classmethod
    def normalize_amount(cls, value: Any) -> Any:
        # PostgREST returns numeric columns as JSON numbers; go through str to keep exact digits.
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @field_serializer("amount")
    def serialize_amount(self, value: Decimal) -> float:
        return float(value)


class TransactionCreate(BaseModel):
    """Validated input for a single transaction insert."""

    model_config = ConfigDict(extra="forbid")

    amount: Decimal = Field(gt=0, allow_inf_nan=False)
    type: TransactionType
    timestamp: AwareDatetime = Field(default_factory=utc_now)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_must_be_numeric(cls, value: Any) -> Any:
        value = _reject_non_numeric(value, "amount")
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @field_validator("amount")
    @classmethod
    def amount_fits_json_number(cls, value: Decimal) -> Decimal:
        # Stored and sent as a double; anything that overflows one cannot be written.
        if not math.isfinite(float(value)):
            raise ValueError("amount is too large")
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def timestamp_must_be_iso(cls, value: Any) -> Any:
        return _reject_non_iso(value, "timestamp")

    def to_row(self) -> dict[str, object]:
        """Return the JSON payload inserted into the transactions table."""

        return {
            "amount": float(self.amount),
            "type": self.type.value,
            "timestamp": self.timestamp.isoformat(),
        }


class TransactionQuery(BaseModel):
    """Filter, sort and pagination parameters for listing transactions.

    Field aliases are the camelCase names used on the wire. Every filter is
    optional; an omitted filter applies no constraint.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default_factory=config.transactions_default_limit, ge=1)
    sort_by: SortField = Field(default=SortField.TIMESTAMP, alias="sortBy")
    sort_order: SortOrder = Field(default=SortOrder.DESC, alias="sortOrder")
    type: TransactionType | None = None
    start_date: AwareDatetime | None = Field(default=None, alias="startDate")
    end_date: AwareDatetime | None = Field(default=None, alias="endDate")
    min_amount: Decimal | None = Field(default=None, ge=0, alias="minAmount", allow_inf_nan=False)
    max_amount: Decimal | None = Field(default=None, ge=0, alias="maxAmount", allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {
            key: value
            for key, value in data.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }

    @field_validator("page", "limit", mode="before")
    @classmethod
    def integers_must_be_numeric(cls, value: Any, info: ValidationInfo) -> Any:
        return _reject_non_numeric(value, info.field_name)

    @field_validator("min_amount", "max_amount", mode="before")
    @classmethod
    def amounts_must_be_numeric(cls, value: Any) -> Any:
        value = _reject_non_numeric(value, "amount")
        if isinstance(value, float):
            return Decimal(str(value))
        return value

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def dates_must_be_iso(cls, value: Any) -> Any:
        return _reject_non_iso(value, "date")

    @field_validator("limit")
    @classmethod
    def limit_within_max(cls, value: int) -> int:
        max_limit = config.transactions_max_limit()
        if value > max_limit:
            raise ValueError(f"limit must be less than or equal to {max_limit}")
        return value

    @model_validator(mode="after")
    def check_ranges(self) -> TransactionQuery:
        if self.start_date is not None and self.end_date is not None and self.start_date > self.end_date:
            raise ValueError("startDate must be before or equal to endDate")
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise ValueError("minAmount must be less than or equal to maxAmount")
        return self

    def to_params(self) -> dict[str, str]:
        """Return wire query parameters, omitting absent filters."""

        params: dict[str, str] = {}
        for key, value in self.model_dump(by_alias=True, exclude_none=True).items():
            if isinstance(value, datetime):
                params[key] = value.isoformat()
            elif isinstance(value, Enum):
                params[key] = value.value
            else:
                params[key] = str(value)
        return params


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total_items: int = Field(ge=0, alias="totalItems")
    total_pages: int = Field(ge=0, alias="totalPages")

    @classmethod
    def from_total(cls, *, page: int, limit: int, total_items: int) -> Pagination:
        return cls(
            page=page,
            limit=limit,
            total_items=total_items,
            total_pages=math.ceil(total_items / limit),
        )


class PaginatedTransactions(BaseModel):
    items: list[Transaction]
    pagination: Pagination
