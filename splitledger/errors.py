"""
Ledger Error Taxonomy

Every failure the engine can report is a LedgerError subclass with a stable
ErrorCode and a message fit to show the user verbatim (e.g. "Percentages
must sum to 100%").

The split strategies and the expense validator RETURN these as values inside
their result models. They are only raised at the edges: Money arithmetic
across currencies, integrity violations found by the aggregator or the
settlement planner, and the orchestrator aborting a write.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from splitledger.models.money import Money


class ErrorCode(str, Enum):
    CURRENCY_MISMATCH = "currency_mismatch"
    SPLIT_MISMATCH = "split_mismatch"
    INVALID_PARTICIPANT_SET = "invalid_participant_set"
    UNRECOGNIZED_SPLIT_TYPE = "unrecognized_split_type"
    UNBALANCED_LEDGER = "unbalanced_ledger"
    NEGATIVE_OR_ZERO_AMOUNT = "negative_or_zero_amount"
    INVALID_EXPENSE = "invalid_expense"
    UNRECOGNIZED_CURRENCY = "unrecognized_currency"
    INVALID_SPLIT_INPUT = "invalid_split_input"
    INVALID_PAYMENT = "invalid_payment"


class LedgerError(Exception):
    """Base exception for ledger engine errors."""

    code: ErrorCode = ErrorCode.INVALID_EXPENSE

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "code": self.code.value,
            "message": self.message,
            "field": self.field,
        }


class CurrencyMismatchError(LedgerError):
    """Two Money values with different currencies were combined."""

    code = ErrorCode.CURRENCY_MISMATCH

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(
            f"Cannot combine amounts in {left} and {right}",
            field="currency",
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["currencies"] = [self.left, self.right]
        return data


class SplitMismatchError(LedgerError):
    """
    Split amounts do not add up to the expense total.

    `allocated` is what the splits (or line items) add up to, `total` is the
    amount they were checked against, so `delta` is positive when the splits
    over-allocate.
    """

    code = ErrorCode.SPLIT_MISMATCH

    def __init__(self, allocated: "Money", total: "Money", message: Optional[str] = None):
        self.allocated = allocated
        self.total = total
        self.delta = allocated.amount_minor - total.amount_minor
        super().__init__(
            message or (
                f"Split amounts add up to {allocated} but the total is {total} "
                f"(off by {self.delta} minor units)"
            ),
            field="splits",
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "allocated": self.allocated.amount_minor,
            "total": self.total.amount_minor,
            "delta": self.delta,
            "currency": self.total.currency,
        })
        return data


class InvalidParticipantSetError(LedgerError):
    code = ErrorCode.INVALID_PARTICIPANT_SET

    def __init__(self, message: str):
        super().__init__(message, field="participants")


class UnrecognizedSplitTypeError(LedgerError):
    code = ErrorCode.UNRECOGNIZED_SPLIT_TYPE

    def __init__(self, split_type: str):
        self.split_type = split_type
        super().__init__(f"Unknown split type: {split_type}", field="split_type")


class UnbalancedLedgerError(LedgerError):
    """
    Credits and debits do not cancel out.

    This is an integrity violation pointing at a bug upstream; it is never
    a user-correctable input problem.
    """

    code = ErrorCode.UNBALANCED_LEDGER

    def __init__(self, currency: str, credits: int, debits: int):
        self.currency = currency
        self.credits = credits
        self.debits = debits
        super().__init__(
            f"Ledger is unbalanced in {currency}: credits {credits} "
            f"vs debits {debits} minor units",
            field="balances",
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update({
            "currency": self.currency,
            "credits": self.credits,
            "debits": self.debits,
        })
        return data


class NegativeOrZeroAmountError(LedgerError):
    code = ErrorCode.NEGATIVE_OR_ZERO_AMOUNT

    def __init__(self, message: str = "Amount must be greater than zero", field: str = "amount"):
        super().__init__(message, field=field)


class InvalidExpenseError(LedgerError):
    code = ErrorCode.INVALID_EXPENSE


class UnrecognizedCurrencyError(LedgerError):
    code = ErrorCode.UNRECOGNIZED_CURRENCY

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unrecognized currency code: {currency}", field="currency")


class InvalidSplitInputError(LedgerError):
    """Strategy input is missing, malformed or out of range."""

    code = ErrorCode.INVALID_SPLIT_INPUT

    def __init__(self, message: str):
        super().__init__(message, field="split_input")


class InvalidPaymentError(LedgerError):
    code = ErrorCode.INVALID_PAYMENT
