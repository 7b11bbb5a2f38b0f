"""Create-transaction form: client-side checks and provisional rows."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from shared.models import Transaction, TransactionCreate, TransactionType, utc_now


TEMP_ID_PREFIX = "temp-"


class FormError(ValueError):
    """Raised with the first user-facing problem found in the form."""


@dataclass(slots=True)
class CreateTransactionForm:
    amount: str = ""
    type: str = TransactionType.CREDIT.value

    def validate(self) -> TransactionCreate:
        try:
            amount = Decimal(self.amount.strip())
        except InvalidOperation as exc:
            raise FormError("Amount must be a number") from exc
        if not amount.is_finite():
            raise FormError("Amount must be a number")
        if amount <= 0:
            raise FormError("Amount must be positive")

        try:
            transaction_type = TransactionType(self.type)
        except ValueError as exc:
            raise FormError("Type must be either credit or debit") from exc

        return TransactionCreate(amount=amount, type=transaction_type, timestamp=utc_now())

    def clear(self) -> None:
        self.amount = ""
        self.type = TransactionType.CREDIT.value


def is_provisional(transaction: Transaction) -> bool:
    return transaction.id.startswith(TEMP_ID_PREFIX)


def provisional_transaction(payload: TransactionCreate) -> Transaction:
    """Build the row shown before the server confirms the insert."""

    return Transaction(
        id=f"{TEMP_ID_PREFIX}{uuid4().hex}",
        amount=payload.amount,
        type=payload.type,
        timestamp=payload.timestamp,
    )
