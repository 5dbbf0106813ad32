"""
Tests for the split strategies.

Each strategy must return exactly one split per participant, in participant
order, adding up to the total. Bad input comes back as a typed error in the
result, never as an exception.
"""

import random
from decimal import Decimal

import pytest

from splitledger.errors import (
    CurrencyMismatchError,
    InvalidParticipantSetError,
    InvalidSplitInputError,
    NegativeOrZeroAmountError,
    SplitMismatchError,
    UnrecognizedSplitTypeError,
)
from splitledger.models import (
    AdjustmentInput,
    ExactInput,
    ItemizedInput,
    LineItem,
    Money,
    PercentageInput,
    ReimbursementInput,
    SharesInput,
    SplitType,
)
from splitledger.splits import (
    compute_adjustment,
    compute_equal,
    compute_exact,
    compute_itemized,
    compute_percentage,
    compute_reimbursement,
    compute_shares,
    compute_splits,
)
from tests.factories import eur, people, usd


def amounts(result) -> list[int]:
    return [split.amount.amount_minor for split in result.splits]


class TestEqualSplit:
    """Equal split."""

    def test_even_division(self):
        """900 over three is 300 each."""
        result = compute_equal(usd(900), people(1, 2, 3))
        assert result.ok
        assert amounts(result) == [300, 300, 300]

    def test_leftover_goes_to_first_participants(self):
        """1000 over three is 334/333/333."""
        result = compute_equal(usd(1000), people(1, 2, 3))
        assert amounts(result) == [334, 333, 333]
        assert [s.user_id for s in result.splits] == [1, 2, 3]

    def test_single_participant_rejected(self):
        """An expense needs at least two people."""
        result = compute_equal(usd(1000), people(1))
        assert not result.ok
        assert isinstance(result.error, InvalidParticipantSetError)
        assert result.splits == []

    def test_duplicate_participant_rejected(self):
        """Each participant appears once."""
        result = compute_equal(usd(1000), people(1, 2, 2))
        assert isinstance(result.error, InvalidParticipantSetError)


class TestExactSplit:
    """Exact split."""

    def test_matching_amounts(self):
        """500 + 300 + 200 against 1000 is accepted as given."""
        split_input = ExactInput(amounts={1: usd(500), 2: usd(300), 3: usd(200)})
        result = compute_exact(usd(1000), people(1, 2, 3), split_input)
        assert result.ok
        assert amounts(result) == [500, 300, 200]

    def test_mismatch_reports_allocated_and_total(self):
        """500 + 300 + 200 against 999 is a mismatch of (1000, 999)."""
        split_input = ExactInput(amounts={1: usd(500), 2: usd(300), 3: usd(200)})
        result = compute_exact(usd(999), people(1, 2, 3), split_input)

        assert isinstance(result.error, SplitMismatchError)
        assert result.error.allocated == usd(1000)
        assert result.error.total == usd(999)
        assert result.error.delta == 1
        assert "Exact amounts must equal the total amount" in result.error.message

    def test_missing_participant_amount(self):
        """Every participant needs an amount."""
        split_input = ExactInput(amounts={1: usd(500), 2: usd(500)})
        result = compute_exact(usd(1000), people(1, 2, 3), split_input)
        assert isinstance(result.error, InvalidSplitInputError)

    def test_amount_for_stranger(self):
        """Amounts for non-participants are rejected."""
        split_input = ExactInput(amounts={1: usd(500), 2: usd(300), 9: usd(200)})
        result = compute_exact(usd(1000), people(1, 2), split_input)
        assert isinstance(result.error, InvalidParticipantSetError)

    def test_wrong_currency(self):
        """Every amount must be in the expense currency."""
        split_input = ExactInput(amounts={1: usd(500), 2: eur(500)})
        result = compute_exact(usd(1000), people(1, 2), split_input)
        assert isinstance(result.error, CurrencyMismatchError)

    def test_negative_amount(self):
        """Negative shares are not allowed, even if the sum matches."""
        split_input = ExactInput(amounts={1: usd(1100), 2: usd(-100)})
        result = compute_exact(usd(1000), people(1, 2), split_input)
        assert isinstance(result.error, InvalidSplitInputError)


class TestPercentageSplit:
    """Percentage split."""

    @staticmethod
    def _input(*values: str) -> PercentageInput:
        return PercentageInput(percentages={
            uid: Decimal(v) for uid, v in enumerate(values, start=1)
        })

    def test_exact_hundred(self):
        """50/30/20 of 1000 is 500/300/200, with the percentages echoed."""
        result = compute_percentage(usd(1000), people(1, 2, 3), self._input("50", "30", "20"))
        assert result.ok
        assert amounts(result) == [500, 300, 200]
        assert [s.percentage for s in result.splits] == [Decimal("50"), Decimal("30"), Decimal("20")]

    def test_thirds_sum_exactly(self):
        """33.33/33.33/33.34 of 100.00 adds up exactly."""
        result = compute_percentage(
            usd(10000), people(1, 2, 3), self._input("33.33", "33.33", "33.34")
        )
        assert sum(amounts(result)) == 10000

    @pytest.mark.parametrize("values", [
        ("50.00", "50.00"),
        ("50", "49.995"),
        ("50", "49.99"),
        ("50", "50.01"),
    ])
    def test_within_tolerance_accepted(self, values):
        """Sums within 0.01 of 100 are accepted, boundary included."""
        result = compute_percentage(usd(1000), people(1, 2), self._input(*values))
        assert result.ok
        assert sum(amounts(result)) == 1000

    @pytest.mark.parametrize("values", [
        ("50", "49.5"),
        ("50", "50.5"),
        ("60", "60"),
    ])
    def test_outside_tolerance_rejected(self, values):
        """99.5 and 100.5 are not 100."""
        result = compute_percentage(usd(1000), people(1, 2), self._input(*values))
        assert isinstance(result.error, InvalidSplitInputError)
        assert "Percentages must sum to 100%" in result.error.message

    def test_tolerance_comes_from_settings(self, monkeypatch):
        """A wider epsilon accepts what the default rejects."""
        monkeypatch.setenv("SPLITLEDGER_PERCENTAGE_EPSILON", "0.5")
        result = compute_percentage(usd(1000), people(1, 2), self._input("50", "49.5"))
        assert result.ok

    def test_negative_percentage(self):
        """Negative percentages are rejected."""
        result = compute_percentage(usd(1000), people(1, 2), self._input("110", "-10"))
        assert isinstance(result.error, InvalidSplitInputError)


class TestSharesSplit:
    """Shares split."""

    def test_proportional(self):
        """1:2:3 shares of 1200 is 200/400/600."""
        split_input = SharesInput(shares={1: 1, 2: 2, 3: 3})
        result = compute_shares(usd(1200), people(1, 2, 3), split_input)
        assert amounts(result) == [200, 400, 600]
        assert [s.shares for s in result.splits] == [1, 2, 3]

    def test_uneven_division_sums(self):
        """2:1 shares of 100 still adds up."""
        split_input = SharesInput(shares={1: 2, 2: 1})
        result = compute_shares(usd(100), people(1, 2), split_input)
        assert amounts(result) == [67, 33]

    def test_zero_shares_rejected(self):
        """Share counts must be positive."""
        split_input = SharesInput(shares={1: 0, 2: 1})
        result = compute_shares(usd(100), people(1, 2), split_input)
        assert isinstance(result.error, InvalidSplitInputError)


class TestAdjustmentSplit:
    """Equal baseline plus signed deltas."""

    def test_adjustments_applied(self):
        """+1.00 for one and -1.00 for another on top of 3.00 each."""
        split_input = AdjustmentInput(adjustments={1: usd(100), 2: usd(-100)})
        result = compute_adjustment(usd(900), people(1, 2, 3), split_input)
        assert amounts(result) == [400, 200, 300]

    def test_no_adjustments_is_equal(self):
        """With no deltas the result is an equal split."""
        result = compute_adjustment(usd(1000), people(1, 2, 3), AdjustmentInput())
        assert amounts(result) == [334, 333, 333]

    def test_deltas_must_cancel(self):
        """Deltas that do not sum to zero are a split mismatch."""
        split_input = AdjustmentInput(adjustments={1: usd(100)})
        result = compute_adjustment(usd(900), people(1, 2, 3), split_input)
        assert isinstance(result.error, SplitMismatchError)
        assert result.error.delta == 100

    def test_negative_share_rejected(self):
        """A delta may not push anyone below zero."""
        split_input = AdjustmentInput(adjustments={1: usd(200), 2: usd(-200)})
        result = compute_adjustment(usd(300), people(1, 2, 3), split_input)
        assert isinstance(result.error, InvalidSplitInputError)

    def test_stranger_rejected(self):
        """Adjustments only apply to participants."""
        split_input = AdjustmentInput(adjustments={1: usd(100), 7: usd(-100)})
        result = compute_adjustment(usd(900), people(1, 2, 3), split_input)
        assert isinstance(result.error, InvalidParticipantSetError)


class TestReimbursementSplit:
    """One participant owes everything back."""

    def test_reimbursee_owes_total(self):
        """[A, B] with A reimbursed: A owes the total, B nothing."""
        split_input = ReimbursementInput(reimbursed_user_id=1)
        result = compute_reimbursement(usd(4200), people(1, 2), split_input)
        assert amounts(result) == [4200, 0]

    def test_reimbursee_must_participate(self):
        """The reimbursee must be one of the participants."""
        split_input = ReimbursementInput(reimbursed_user_id=5)
        result = compute_reimbursement(usd(4200), people(1, 2), split_input)
        assert isinstance(result.error, InvalidParticipantSetError)


class TestItemizedSplit:
    """Line items shared among subsets of participants."""

    def test_items_shared(self):
        """Each item is split equally among its sharers."""
        split_input = ItemizedInput(items=[
            LineItem(name="Pizza", amount=usd(600), user_ids=[1, 2, 3]),
            LineItem(name="Wine", amount=usd(400), user_ids=[2, 1]),
        ])
        result = compute_itemized(usd(1000), people(1, 2, 3), split_input)
        assert amounts(result) == [400, 400, 200]

    def test_sharers_follow_participant_order(self):
        """The odd cent goes to the earliest participant, whatever the item's list order."""
        split_input = ItemizedInput(items=[
            LineItem(name="Dessert", amount=usd(101), user_ids=[3, 1]),
        ])
        result = compute_itemized(usd(101), people(1, 2, 3), split_input)
        assert amounts(result) == [51, 0, 50]

    def test_empty_items(self):
        """At least one item is required."""
        result = compute_itemized(usd(100), people(1, 2), ItemizedInput(items=[]))
        assert isinstance(result.error, InvalidSplitInputError)
        assert result.error.message == "Please add at least one item"

    def test_item_total_mismatch(self):
        """Items must add up to the expense total."""
        split_input = ItemizedInput(items=[
            LineItem(name="Pizza", amount=usd(600), user_ids=[1, 2]),
        ])
        result = compute_itemized(usd(1000), people(1, 2), split_input)
        assert isinstance(result.error, SplitMismatchError)
        assert result.error.allocated == usd(600)

    def test_zero_item_amount(self):
        """Items must cost something."""
        split_input = ItemizedInput(items=[
            LineItem(name="Water", amount=usd(0), user_ids=[1, 2]),
            LineItem(name="Pizza", amount=usd(600), user_ids=[1, 2]),
        ])
        result = compute_itemized(usd(600), people(1, 2), split_input)
        assert isinstance(result.error, NegativeOrZeroAmountError)

    def test_item_with_stranger(self):
        """Items can only be shared by participants."""
        split_input = ItemizedInput(items=[
            LineItem(name="Pizza", amount=usd(600), user_ids=[1, 4]),
        ])
        result = compute_itemized(usd(600), people(1, 2), split_input)
        assert isinstance(result.error, InvalidParticipantSetError)

    def test_unshared_item(self):
        """An item nobody shares cannot be allocated."""
        split_input = ItemizedInput(items=[
            LineItem(name="Pizza", amount=usd(600), user_ids=[]),
        ])
        result = compute_itemized(usd(600), people(1, 2), split_input)
        assert isinstance(result.error, InvalidSplitInputError)


class TestComputeSplits:
    """Dispatch by split type."""

    def test_unknown_split_type(self):
        """Unknown names are reported, not guessed."""
        result = compute_splits("bogus", usd(100), people(1, 2))
        assert isinstance(result.error, UnrecognizedSplitTypeError)
        assert result.error.split_type == "bogus"

    def test_equal_takes_no_input(self):
        """Equal split rejects any strategy input."""
        result = compute_splits("equal", usd(100), people(1, 2), SharesInput(shares={1: 1, 2: 1}))
        assert isinstance(result.error, InvalidSplitInputError)

    def test_missing_input(self):
        """Input-driven strategies need their input."""
        result = compute_splits("exact", usd(100), people(1, 2))
        assert isinstance(result.error, InvalidSplitInputError)

    def test_wrong_input_type(self):
        """Input must match the split type."""
        result = compute_splits(
            SplitType.PERCENTAGE, usd(100), people(1, 2), SharesInput(shares={1: 1, 2: 1})
        )
        assert isinstance(result.error, InvalidSplitInputError)

    def test_accepts_enum_or_name(self):
        """Split type may be given as enum member or string."""
        by_name = compute_splits("equal", usd(100), people(1, 2))
        by_enum = compute_splits(SplitType.EQUAL, usd(100), people(1, 2))
        assert amounts(by_name) == amounts(by_enum) == [50, 50]


def _random_input(split_type: SplitType, total: Money, user_ids: list[int], rng: random.Random):
    n = len(user_ids)
    if split_type == SplitType.EQUAL:
        return None
    if split_type == SplitType.EXACT:
        parts = total.allocate([rng.randint(0, 9) + 1 for _ in range(n)])
        return ExactInput(amounts=dict(zip(user_ids, parts)))
    if split_type == SplitType.PERCENTAGE:
        basis_points = Money.of(10000, "USD").allocate([rng.randint(1, 9) for _ in range(n)])
        return PercentageInput(percentages={
            uid: Decimal(bp.amount_minor) / 100 for uid, bp in zip(user_ids, basis_points)
        })
    if split_type == SplitType.SHARES:
        return SharesInput(shares={uid: rng.randint(1, 5) for uid in user_ids})
    if split_type == SplitType.ADJUSTMENT:
        delta = rng.randint(0, total.amount_minor // n)
        a, b = rng.sample(user_ids, 2)
        return AdjustmentInput(adjustments={
            a: Money.of(delta, total.currency),
            b: Money.of(-delta, total.currency),
        })
    if split_type == SplitType.REIMBURSEMENT:
        return ReimbursementInput(reimbursed_user_id=rng.choice(user_ids))
    item_count = rng.randint(1, min(5, total.amount_minor))
    cuts = sorted(rng.sample(range(1, total.amount_minor), item_count - 1))
    bounds = [0, *cuts, total.amount_minor]
    return ItemizedInput(items=[
        LineItem(
            name=f"item {i}",
            amount=Money.of(bounds[i + 1] - bounds[i], total.currency),
            user_ids=rng.sample(user_ids, rng.randint(1, n)),
        )
        for i in range(item_count)
    ])


class TestSplitSumProperty:
    """Splits always add up to the total, whatever the strategy."""

    @pytest.mark.parametrize("split_type", list(SplitType))
    @pytest.mark.parametrize("seed", range(10))
    def test_splits_sum_to_total(self, split_type, seed):
        """Random participant counts (2-20) and totals, exact sums every time."""
        rng = random.Random(f"{split_type.value}-{seed}")
        n = rng.randint(2, 20)
        user_ids = rng.sample(range(1, 1000), n)
        total = Money.of(rng.randint(2, 1_000_000), "USD")

        result = compute_splits(
            split_type, total, people(*user_ids), _random_input(split_type, total, user_ids, rng)
        )

        assert result.ok, result.error
        assert [s.user_id for s in result.splits] == user_ids
        assert sum(amounts(result)) == total.amount_minor
        assert all(s.amount.currency == "USD" for s in result.splits)
        assert all(not s.amount.is_negative() for s in result.splits)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
