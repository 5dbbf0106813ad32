"""
Expense Validation Pipeline

Checks run in a fixed order and the FIRST failure is returned:

1. Description is present and fits the stored length
2. Total amount is strictly positive
3. At least two participants, none repeated
4. The payer is one of the participants
5. The currency is a recognized ISO 4217 code
6. The split type is known and its strategy accepts the input
7. The resolved splits add up to the total (re-checked independently of
   the strategy, to catch strategy bugs before anything is persisted)

There is no partial or best-effort validation. A draft either resolves into
a complete set of splits or it is rejected with one specific, user-facing
error.

IMPORTANT: Validation NEVER silently fixes issues. Errors are returned as
values; only build_expense() raises, and only after validation failed.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from splitledger.config import get_settings, is_recognized_currency
from splitledger.errors import (
    InvalidExpenseError,
    InvalidParticipantSetError,
    InvalidPaymentError,
    LedgerError,
    NegativeOrZeroAmountError,
    SplitMismatchError,
    UnrecognizedCurrencyError,
)
from splitledger.models.ledger import (
    MAX_DESCRIPTION_LENGTH,
    Expense,
    ExpenseDraft,
    Split,
    SplitType,
)
from splitledger.models.money import Money
from splitledger.splits import compute_splits, parse_split_type


class ValidationResult(BaseModel):
    """Result of validating one ExpenseDraft."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    is_valid: bool
    error: Optional[LedgerError] = None
    splits: list[Split] = Field(default_factory=list)
    split_type: Optional[SplitType] = None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code.value if self.error else None


class ExpenseValidator:
    """
    Validates expense drafts and turns valid ones into Expenses.

    Stateless apart from the settings snapshot taken at construction, so a
    single instance can be shared between concurrent callers.
    """

    def __init__(self):
        self._settings = get_settings().ledger

    def _check_description(self, draft: ExpenseDraft) -> Optional[LedgerError]:
        if not draft.description or not draft.description.strip():
            return InvalidExpenseError("Please enter a description", field="description")
        if len(draft.description.strip()) > MAX_DESCRIPTION_LENGTH:
            return InvalidExpenseError(
                f"Description can be at most {MAX_DESCRIPTION_LENGTH} characters",
                field="description",
            )
        return None

    def _check_amount(self, draft: ExpenseDraft) -> Optional[LedgerError]:
        if not draft.total_amount.is_positive():
            return NegativeOrZeroAmountError(
                "Please enter a valid amount greater than 0",
                field="total_amount",
            )
        return None

    def _check_participants(self, draft: ExpenseDraft) -> Optional[LedgerError]:
        ids = draft.participant_ids
        if len(ids) < 2:
            return InvalidParticipantSetError("Please add at least one other participant")
        if len(set(ids)) != len(ids):
            return InvalidParticipantSetError("Each participant can only appear once")
        if len(ids) > self._settings.max_participants:
            return InvalidParticipantSetError(
                f"An expense can have at most {self._settings.max_participants} participants"
            )
        return None

    def _check_payer(self, draft: ExpenseDraft) -> Optional[LedgerError]:
        if draft.paid_by not in draft.participant_ids:
            return InvalidParticipantSetError("The payer must be one of the participants")
        return None

    def _check_currency(self, draft: ExpenseDraft) -> Optional[LedgerError]:
        if not is_recognized_currency(draft.total_amount.currency):
            return UnrecognizedCurrencyError(draft.total_amount.currency)
        return None

    def _check_split_sum(self, draft: ExpenseDraft, splits: list[Split]) -> Optional[LedgerError]:
        """Independent re-check of the strategy output."""
        total = draft.total_amount
        allocated = 0
        for split in splits:
            if split.amount.currency != total.currency:
                return SplitMismatchError(
                    Money.zero(total.currency),
                    total,
                    f"Split for user {split.user_id} is in {split.amount.currency}, "
                    f"not {total.currency}",
                )
            allocated += split.amount.amount_minor
        if allocated != total.amount_minor:
            return SplitMismatchError(Money.of(allocated, total.currency), total)
        if sorted(s.user_id for s in splits) != sorted(draft.participant_ids):
            return InvalidParticipantSetError("Splits do not cover exactly the participants")
        return None

    def validate(self, draft: ExpenseDraft) -> ValidationResult:
        """
        Run the full pipeline on a draft.

        Returns:
            ValidationResult carrying either the resolved splits or the
            first error found
        """
        for check in (
            self._check_description,
            self._check_amount,
            self._check_participants,
            self._check_payer,
            self._check_currency,
        ):
            error = check(draft)
            if error is not None:
                return ValidationResult(is_valid=False, error=error)

        result = compute_splits(
            draft.split_type,
            draft.total_amount,
            draft.participants,
            draft.split_input,
        )
        if result.error is not None:
            return ValidationResult(is_valid=False, error=result.error)

        error = self._check_split_sum(draft, result.splits)
        if error is not None:
            return ValidationResult(is_valid=False, error=error)

        return ValidationResult(
            is_valid=True,
            splits=result.splits,
            split_type=parse_split_type(draft.split_type),
        )

    def build_expense(
        self,
        draft: ExpenseDraft,
        created_by: Optional[int] = None,
        supersedes_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Validate a draft and construct the committed Expense.

        Raises:
            LedgerError: the first failing check; no Expense is created
        """
        result = self.validate(draft)
        if not result.is_valid:
            raise result.error

        return Expense(
            description=draft.description.strip(),
            total_amount=draft.total_amount,
            expense_date=draft.expense_date,
            paid_by=draft.paid_by,
            split_type=result.split_type,
            splits=tuple(result.splits),
            category_id=draft.category_id,
            notes=draft.notes or None,
            group_id=draft.group_id,
            created_by=created_by,
            supersedes_id=supersedes_id,
        )

    def validate_payment(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: Money,
    ) -> Optional[LedgerError]:
        """Check a settlement before a Payment is constructed."""
        if from_user_id == to_user_id:
            return InvalidPaymentError(
                "You cannot record a payment to yourself",
                field="to_user_id",
            )
        if not amount.is_positive():
            return NegativeOrZeroAmountError(
                "Payment amount must be greater than zero",
                field="amount",
            )
        if not is_recognized_currency(amount.currency):
            return UnrecognizedCurrencyError(amount.currency)
        return None

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Message to show the user for a validation result."""
        if result.is_valid:
            return "Expense looks good."
        return result.error.message
