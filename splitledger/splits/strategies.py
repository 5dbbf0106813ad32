"""
Split Strategies

One pure function per split type. Each turns (total, participants,
strategy input) into one Split per participant, in participant order.

Contract:
- Never raises for bad input. Problems come back as a typed LedgerError in
  SplitResult.error and the split list is empty.
- Never clamps or rounds silently. Every division goes through
  Money.allocate(), so a successful result always adds up to the total
  exactly.
"""

from decimal import Decimal
from typing import Callable, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field

from splitledger.config import get_settings
from splitledger.errors import (
    CurrencyMismatchError,
    InvalidParticipantSetError,
    InvalidSplitInputError,
    LedgerError,
    NegativeOrZeroAmountError,
    SplitMismatchError,
    UnrecognizedSplitTypeError,
)
from splitledger.models.ledger import (
    AdjustmentInput,
    ExactInput,
    ItemizedInput,
    Participant,
    PercentageInput,
    ReimbursementInput,
    SharesInput,
    Split,
    SplitType,
)
from splitledger.models.money import Money

HUNDRED = Decimal("100")


class SplitResult(BaseModel):
    """Outcome of a split strategy: either splits or an error, never both."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    splits: list[Split] = Field(default_factory=list)
    error: Optional[LedgerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: LedgerError) -> "SplitResult":
        return cls(error=error)


# =============================================================================
# SHARED CHECKS
# =============================================================================

def _check_participants(participants: Sequence[Participant]) -> Optional[LedgerError]:
    ids = [p.user_id for p in participants]
    if len(ids) < 2:
        return InvalidParticipantSetError("An expense needs at least two participants")
    if len(set(ids)) != len(ids):
        return InvalidParticipantSetError("Each participant can only appear once")
    return None


def _check_keys(
    given: Sequence[int],
    participant_ids: Sequence[int],
    what: str,
) -> Optional[LedgerError]:
    """Every participant needs an entry and no one else may have one."""
    strangers = sorted(set(given) - set(participant_ids))
    if strangers:
        return InvalidParticipantSetError(
            f"{what} given for users who are not participants: {strangers}"
        )
    missing = [uid for uid in participant_ids if uid not in given]
    if missing:
        return InvalidSplitInputError(f"{what} missing for participants: {missing}")
    return None


def _check_currency(total: Money, amount: Money) -> Optional[LedgerError]:
    if amount.currency != total.currency:
        return CurrencyMismatchError(total.currency, amount.currency)
    return None


# =============================================================================
# STRATEGIES
# =============================================================================

def compute_equal(
    total: Money,
    participants: Sequence[Participant],
    split_input: None = None,
) -> SplitResult:
    """Everyone owes the same, leftover minor units going to the first participants."""
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    amounts = total.allocate([1] * len(participants))
    return SplitResult(splits=[
        Split(user_id=p.user_id, amount=amount)
        for p, amount in zip(participants, amounts)
    ])


def compute_exact(
    total: Money,
    participants: Sequence[Participant],
    split_input: ExactInput,
) -> SplitResult:
    """Caller states each participant's amount; they must add up to the total."""
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    ids = [p.user_id for p in participants]
    error = _check_keys(list(split_input.amounts), ids, "Amounts")
    if error:
        return SplitResult.failure(error)

    for uid in ids:
        amount = split_input.amounts[uid]
        error = _check_currency(total, amount)
        if error:
            return SplitResult.failure(error)
        if amount.is_negative():
            return SplitResult.failure(
                InvalidSplitInputError(f"Amount for user {uid} cannot be negative")
            )

    allocated = Money.total((split_input.amounts[uid] for uid in ids), total.currency)
    if allocated != total:
        return SplitResult.failure(SplitMismatchError(
            allocated,
            total,
            f"Exact amounts must equal the total amount ({allocated} vs {total})",
        ))

    return SplitResult(splits=[
        Split(user_id=uid, amount=split_input.amounts[uid]) for uid in ids
    ])


def compute_percentage(
    total: Money,
    participants: Sequence[Participant],
    split_input: PercentageInput,
) -> SplitResult:
    """
    Percentages must sum to 100 within the configured epsilon.

    Amounts are allocated with the percentages as weights rather than by
    multiplying each percentage out, so no rounding error accumulates.
    """
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    ids = [p.user_id for p in participants]
    error = _check_keys(list(split_input.percentages), ids, "Percentages")
    if error:
        return SplitResult.failure(error)

    percentages = [Decimal(split_input.percentages[uid]) for uid in ids]
    if any(pct < 0 for pct in percentages):
        return SplitResult.failure(
            InvalidSplitInputError("Percentages cannot be negative")
        )

    epsilon = get_settings().ledger.percentage_epsilon
    pct_sum = sum(percentages, Decimal("0"))
    if abs(pct_sum - HUNDRED) > epsilon:
        return SplitResult.failure(
            InvalidSplitInputError(f"Percentages must sum to 100% (got {pct_sum}%)")
        )

    amounts = total.allocate(percentages)
    return SplitResult(splits=[
        Split(user_id=uid, amount=amount, percentage=pct)
        for uid, amount, pct in zip(ids, amounts, percentages)
    ])


def compute_shares(
    total: Money,
    participants: Sequence[Participant],
    split_input: SharesInput,
) -> SplitResult:
    """Total divided in proportion to positive integer share counts."""
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    ids = [p.user_id for p in participants]
    error = _check_keys(list(split_input.shares), ids, "Shares")
    if error:
        return SplitResult.failure(error)

    counts = [split_input.shares[uid] for uid in ids]
    for uid, count in zip(ids, counts):
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            return SplitResult.failure(
                InvalidSplitInputError(f"Shares for user {uid} must be a positive whole number")
            )

    amounts = total.allocate(counts)
    return SplitResult(splits=[
        Split(user_id=uid, amount=amount, shares=count)
        for uid, amount, count in zip(ids, amounts, counts)
    ])


def compute_adjustment(
    total: Money,
    participants: Sequence[Participant],
    split_input: AdjustmentInput,
) -> SplitResult:
    """
    Equal baseline plus a signed delta per participant.

    The deltas must cancel out, which keeps the final shares adding up to
    the total. No final share may go below zero.
    """
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    ids = [p.user_id for p in participants]
    strangers = sorted(set(split_input.adjustments) - set(ids))
    if strangers:
        return SplitResult.failure(InvalidParticipantSetError(
            f"Adjustments given for users who are not participants: {strangers}"
        ))

    for delta in split_input.adjustments.values():
        error = _check_currency(total, delta)
        if error:
            return SplitResult.failure(error)

    delta_sum = Money.total(split_input.adjustments.values(), total.currency)
    if not delta_sum.is_zero():
        return SplitResult.failure(SplitMismatchError(
            total + delta_sum,
            total,
            f"Adjustments must cancel out (they add up to {delta_sum})",
        ))

    baseline = total.allocate([1] * len(ids))
    splits = []
    for uid, base in zip(ids, baseline):
        amount = base + split_input.adjustments.get(uid, Money.zero(total.currency))
        if amount.is_negative():
            return SplitResult.failure(InvalidSplitInputError(
                f"Adjustment for user {uid} makes their share negative"
            ))
        splits.append(Split(user_id=uid, amount=amount))
    return SplitResult(splits=splits)


def compute_reimbursement(
    total: Money,
    participants: Sequence[Participant],
    split_input: ReimbursementInput,
) -> SplitResult:
    """The reimbursee owes the full total; everyone else owes nothing."""
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    ids = [p.user_id for p in participants]
    if split_input.reimbursed_user_id not in ids:
        return SplitResult.failure(InvalidParticipantSetError(
            "The person being reimbursed must be one of the participants"
        ))

    zero = Money.zero(total.currency)
    return SplitResult(splits=[
        Split(user_id=uid, amount=total if uid == split_input.reimbursed_user_id else zero)
        for uid in ids
    ])


def compute_itemized(
    total: Money,
    participants: Sequence[Participant],
    split_input: ItemizedInput,
) -> SplitResult:
    """
    Each line item is split equally among the participants sharing it.

    Item sharers are ordered by participant order before allocating, so the
    same receipt always produces the same cents regardless of how the item's
    user list was written.
    """
    error = _check_participants(participants)
    if error:
        return SplitResult.failure(error)

    if not split_input.items:
        return SplitResult.failure(InvalidSplitInputError("Please add at least one item"))

    ids = [p.user_id for p in participants]
    position = {uid: index for index, uid in enumerate(ids)}
    owed = {uid: Money.zero(total.currency) for uid in ids}

    for item in split_input.items:
        error = _check_currency(total, item.amount)
        if error:
            return SplitResult.failure(error)
        if not item.amount.is_positive():
            return SplitResult.failure(NegativeOrZeroAmountError(
                f"Item '{item.name}' must have an amount greater than zero",
                field="items",
            ))
        if not item.user_ids:
            return SplitResult.failure(
                InvalidSplitInputError(f"Item '{item.name}' is not shared by anyone")
            )
        if len(set(item.user_ids)) != len(item.user_ids):
            return SplitResult.failure(
                InvalidSplitInputError(f"Item '{item.name}' lists a user more than once")
            )
        strangers = sorted(uid for uid in item.user_ids if uid not in position)
        if strangers:
            return SplitResult.failure(InvalidParticipantSetError(
                f"Item '{item.name}' is shared by users who are not participants: {strangers}"
            ))

    item_total = Money.total((item.amount for item in split_input.items), total.currency)
    if item_total != total:
        return SplitResult.failure(SplitMismatchError(
            item_total,
            total,
            f"Item amounts must add up to the total amount ({item_total} vs {total})",
        ))

    for item in split_input.items:
        sharers = sorted(item.user_ids, key=position.__getitem__)
        for uid, part in zip(sharers, item.amount.allocate([1] * len(sharers))):
            owed[uid] = owed[uid] + part

    return SplitResult(splits=[Split(user_id=uid, amount=owed[uid]) for uid in ids])


# =============================================================================
# REGISTRY
# =============================================================================

Strategy = Callable[..., SplitResult]

STRATEGIES: dict[SplitType, tuple[Strategy, Optional[type]]] = {
    SplitType.EQUAL: (compute_equal, None),
    SplitType.EXACT: (compute_exact, ExactInput),
    SplitType.PERCENTAGE: (compute_percentage, PercentageInput),
    SplitType.SHARES: (compute_shares, SharesInput),
    SplitType.ADJUSTMENT: (compute_adjustment, AdjustmentInput),
    SplitType.REIMBURSEMENT: (compute_reimbursement, ReimbursementInput),
    SplitType.ITEMIZED: (compute_itemized, ItemizedInput),
}


def parse_split_type(split_type: Union[str, SplitType]) -> Optional[SplitType]:
    """Resolve a split type name, or None if it is not one we support."""
    try:
        return SplitType(split_type)
    except ValueError:
        return None


def compute_splits(
    split_type: Union[str, SplitType],
    total: Money,
    participants: Sequence[Participant],
    split_input: Optional[BaseModel] = None,
) -> SplitResult:
    """
    Dispatch to the strategy for split_type.

    Returns UnrecognizedSplitTypeError for an unknown type and
    InvalidSplitInputError when the input does not belong to the type.
    """
    resolved = parse_split_type(split_type)
    if resolved is None:
        return SplitResult.failure(UnrecognizedSplitTypeError(str(split_type)))

    strategy, input_type = STRATEGIES[resolved]
    if input_type is None:
        if split_input is not None:
            return SplitResult.failure(InvalidSplitInputError(
                f"{resolved.value} split does not take split input"
            ))
        return strategy(total, participants)

    if split_input is None:
        return SplitResult.failure(
            InvalidSplitInputError(f"{resolved.value} split needs split input")
        )
    if not isinstance(split_input, input_type):
        return SplitResult.failure(InvalidSplitInputError(
            f"{resolved.value} split expects {input_type.__name__}, "
            f"got {type(split_input).__name__}"
        ))
    return strategy(total, participants, split_input)
