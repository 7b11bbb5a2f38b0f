"""Request validation entrypoints used before any datastore access."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from backend.errors import ValidationError
from shared.models import TransactionCreate, TransactionQuery


_VALUE_ERROR_PREFIX = "Value error, "


def field_errors(exc: PydanticValidationError, *, root: str) -> list[dict[str, str]]:
    """Flatten pydantic errors into `{field, message}` pairs."""

    details: list[dict[str, str]] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "Invalid value"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX) :]
        details.append({"field": location or root, "message": message})
    return details


def _validate(model: type[BaseModel], payload: Any, *, root: str) -> Any:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError("Validation error", details=field_errors(exc, root=root)) from exc


def validate_create(payload: Any) -> TransactionCreate:
    """Validate a create body; all fields must pass or nothing is accepted."""

    if not isinstance(payload, Mapping):
        raise ValidationError(
            "Validation error",
            details=[{"field": "body", "message": "Request body must be a JSON object"}],
        )
    return _validate(TransactionCreate, dict(payload), root="body")


def _invalid_id() -> ValidationError:
    return ValidationError(
        "Invalid transaction ID",
        details=[{"field": "id", "message": "Invalid transaction ID"}],
    )


def validate_transaction_id(raw_id: str) -> UUID:
    """Parse a canonical dashed UUID; braced, urn and undashed forms are rejected."""

    raw_value = str(raw_id)
    try:
        parsed = UUID(raw_value)
    except (TypeError, ValueError) as exc:
        raise _invalid_id() from exc
    if str(parsed) != raw_value.lower():
        raise _invalid_id()
    return parsed


def validate_query(params: Mapping[str, Any]) -> TransactionQuery:
    """Coerce raw query-string values into a typed `TransactionQuery`."""

    return _validate(TransactionQuery, dict(params), root="query")
