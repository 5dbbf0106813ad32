"""
Core Ledger Models

The ledger is an append-only stream of four event kinds:
- Expense: one shared cost, already resolved into per-participant Splits
- Payment: a settlement from one user to another
- ExpenseDeletion: a tombstone that retires an earlier Expense
- PaymentDeletion: a tombstone that retires an earlier Payment

Committed events are frozen. An edit is a new Expense (or Payment) whose
supersedes_id names the event it replaces; nothing is mutated in place.

ExpenseDraft is the unvalidated candidate a caller hands to the
ExpenseValidator. It is deliberately permissive (split_type is a raw
string) so that every problem surfaces as a typed LedgerError rather than a
schema error.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

from splitledger.config import get_settings
from splitledger.models.money import Money

MAX_DESCRIPTION_LENGTH = 255


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class SplitType(str, Enum):
    """How an expense total is divided among its participants."""
    EQUAL = "equal"
    EXACT = "exact"
    PERCENTAGE = "percentage"
    SHARES = "shares"
    ADJUSTMENT = "adjustment"
    REIMBURSEMENT = "reimbursement"
    ITEMIZED = "itemized"


class PaymentMethod(str, Enum):
    """How a settlement payment was made."""
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    STRIPE = "stripe"
    PAYPAL = "paypal"
    MANUAL = "manual"
    OTHER = "other"


# =============================================================================
# PARTICIPANTS AND SPLITS
# =============================================================================

class Participant(BaseModel):
    """A party to an expense."""
    model_config = ConfigDict(frozen=True)

    user_id: int


class Split(BaseModel):
    """
    The resolved obligation of one participant for one expense.

    percentage and shares echo the strategy input that produced the amount,
    for display; only amount takes part in balance computation.
    """
    model_config = ConfigDict(frozen=True)

    user_id: int
    amount: Money
    percentage: Optional[Decimal] = None
    shares: Optional[int] = None


# =============================================================================
# STRATEGY INPUTS
# =============================================================================

class ExactInput(BaseModel):
    """Exact amount owed by each participant."""
    kind: Literal["exact"] = "exact"
    amounts: dict[int, Money]


class PercentageInput(BaseModel):
    """Percentage of the total owed by each participant."""
    kind: Literal["percentage"] = "percentage"
    percentages: dict[int, Decimal]


class SharesInput(BaseModel):
    """Share count per participant (e.g. 2 shares for a couple)."""
    kind: Literal["shares"] = "shares"
    shares: dict[int, int]


class AdjustmentInput(BaseModel):
    """
    Signed corrections applied on top of an equal split.

    Participants without an entry get no adjustment.
    """
    kind: Literal["adjustment"] = "adjustment"
    adjustments: dict[int, Money] = Field(default_factory=dict)


class ReimbursementInput(BaseModel):
    """The participant who owes the whole amount back."""
    kind: Literal["reimbursement"] = "reimbursement"
    reimbursed_user_id: int


class LineItem(BaseModel):
    """One line of an itemized receipt and the participants who share it."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Item description"
    )
    amount: Money = Field(
        ...,
        description="Line total (already multiplied by quantity)"
    )
    quantity: int = Field(
        default=1,
        ge=1,
        description="Quantity, informational only"
    )
    user_ids: list[int] = Field(
        default_factory=list,
        description="Participants sharing this item"
    )


class ItemizedInput(BaseModel):
    kind: Literal["itemized"] = "itemized"
    items: list[LineItem]


SplitInput = Annotated[
    Union[
        ExactInput,
        PercentageInput,
        SharesInput,
        AdjustmentInput,
        ReimbursementInput,
        ItemizedInput,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseDraft(BaseModel):
    """
    A proposed expense, NOT yet validated.

    Must pass ExpenseValidator before it becomes an Expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = ""
    total_amount: Money
    expense_date: date = Field(default_factory=date.today)
    paid_by: int
    participants: list[Participant]
    split_type: str = SplitType.EQUAL.value
    split_input: Optional[SplitInput] = None
    category_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    group_id: Optional[int] = None

    @model_validator(mode='before')
    @classmethod
    def apply_default_currency(cls, data: Any) -> Any:
        """
        Accept total_amount as a plain major-unit amount ("12.50").

        The currency comes from a sibling "currency" key, or from
        LedgerSettings.default_currency when the caller names none.
        """
        if not isinstance(data, dict):
            return data
        amount = data.get("total_amount")
        if isinstance(amount, (str, int, Decimal)) and not isinstance(amount, bool):
            data = dict(data)
            currency = data.pop("currency", None) or get_settings().ledger.default_currency
            try:
                data["total_amount"] = Money.from_decimal(amount, currency)
            except InvalidOperation:
                raise ValueError(f"{amount!r} is not a valid amount")
        return data

    @property
    def participant_ids(self) -> list[int]:
        return [p.user_id for p in self.participants]


class Expense(BaseModel):
    """
    A committed expense.

    Only ExpenseValidator.build_expense() should create these. The model
    re-checks that the splits add up to the total exactly.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    description: str = Field(..., min_length=1, max_length=MAX_DESCRIPTION_LENGTH)
    total_amount: Money
    expense_date: date
    paid_by: int
    split_type: SplitType
    splits: tuple[Split, ...]
    category_id: Optional[int] = None
    notes: Optional[str] = None
    group_id: Optional[int] = None
    created_by: Optional[int] = None
    supersedes_id: Optional[UUID] = Field(
        default=None,
        description="Expense this one replaces (set on edits)"
    )
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_splits(self) -> 'Expense':
        """Splits must be in the expense currency and add up to the total."""
        allocated = 0
        for split in self.splits:
            if split.amount.currency != self.total_amount.currency:
                raise ValueError(
                    f"Split currency {split.amount.currency} does not match "
                    f"expense currency {self.total_amount.currency}"
                )
            allocated += split.amount.amount_minor
        if allocated != self.total_amount.amount_minor:
            raise ValueError(
                f"Splits add up to {allocated} minor units, "
                f"expected {self.total_amount.amount_minor}"
            )
        return self

    @property
    def currency(self) -> str:
        return self.total_amount.currency

    @property
    def participant_ids(self) -> list[int]:
        return [split.user_id for split in self.splits]

    def share_of(self, user_id: int) -> Money:
        """Amount the given user owes for this expense (zero if not a participant)."""
        for split in self.splits:
            if split.user_id == user_id:
                return split.amount
        return Money.zero(self.currency)


class ExpenseDeletion(BaseModel):
    """Tombstone retiring an expense from balance computation."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    expense_id: UUID
    group_id: Optional[int] = None
    deleted_by: Optional[int] = None
    deleted_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# PAYMENTS
# =============================================================================

class Payment(BaseModel):
    """
    A settlement: from_user_id paid to_user_id.

    Reduces what from_user_id owes to_user_id by amount, in the payment's
    currency only.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    from_user_id: int
    to_user_id: int
    amount: Money
    method: PaymentMethod = PaymentMethod.MANUAL
    group_id: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    paid_at: datetime = Field(default_factory=utcnow)
    supersedes_id: Optional[UUID] = Field(
        default=None,
        description="Payment this one corrects (set on edits)"
    )

    @model_validator(mode='after')
    def validate_parties(self) -> 'Payment':
        if self.from_user_id == self.to_user_id:
            raise ValueError("A payment needs two different users")
        if not self.amount.is_positive():
            raise ValueError("Payment amount must be greater than zero")
        return self

    @property
    def currency(self) -> str:
        return self.amount.currency


class PaymentDeletion(BaseModel):
    """Tombstone retiring a payment that was recorded by mistake."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    payment_id: UUID
    group_id: Optional[int] = None
    deleted_by: Optional[int] = None
    deleted_at: datetime = Field(default_factory=utcnow)


LedgerEvent = Union[Expense, Payment, ExpenseDeletion, PaymentDeletion]
