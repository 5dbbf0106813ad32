"""
Tests for the Money type.

Money is the foundation every other module stands on: if allocate() loses
or invents a minor unit, no split or balance can be trusted.
"""

import random

import pytest
from decimal import Decimal
from pydantic import ValidationError

from splitledger.errors import CurrencyMismatchError
from splitledger.models import Money


class TestMoneyConstruction:
    """Building Money values."""

    def test_currency_is_normalized(self):
        """Currency codes are stripped and upper-cased."""
        assert Money.of(100, " usd ").currency == "USD"

    def test_amount_must_be_integer(self):
        """Floats never enter Money, not even whole ones."""
        with pytest.raises(ValidationError):
            Money(amount_minor=1.5, currency="USD")
        with pytest.raises(ValidationError):
            Money(amount_minor=1.0, currency="USD")

    def test_money_is_immutable(self):
        """Money values are frozen."""
        money = Money.of(100, "USD")
        with pytest.raises(ValidationError):
            money.amount_minor = 200

    def test_from_decimal_two_places(self):
        """Major units convert to cents for a 2-decimal currency."""
        assert Money.from_decimal(Decimal("12.34"), "USD").amount_minor == 1234
        assert Money.from_decimal("0.10", "EUR").amount_minor == 10

    def test_from_decimal_zero_decimal_currency(self):
        """JPY has no minor unit."""
        assert Money.from_decimal("500", "JPY").amount_minor == 500

    def test_from_decimal_three_decimal_currency(self):
        """KWD has three decimal places."""
        assert Money.from_decimal("1.234", "KWD").amount_minor == 1234

    def test_from_decimal_rejects_excess_precision(self):
        """Amounts are never rounded on the way in."""
        with pytest.raises(ValueError):
            Money.from_decimal("12.345", "USD")
        with pytest.raises(ValueError):
            Money.from_decimal("10.5", "JPY")

    def test_total_of_empty_is_zero(self):
        """Summing nothing gives zero in the requested currency."""
        assert Money.total([], "USD") == Money.zero("USD")

    def test_str(self):
        """String form is major units followed by the code."""
        assert str(Money.of(1234, "USD")) == "12.34 USD"
        assert str(Money.of(500, "JPY")) == "500 JPY"


class TestMoneyArithmetic:
    """Addition, subtraction and comparison."""

    def test_add_and_subtract(self):
        """Same-currency arithmetic works on minor units."""
        a = Money.of(1050, "USD")
        b = Money.of(250, "USD")
        assert (a + b).amount_minor == 1300
        assert (a - b).amount_minor == 800
        assert (-a).amount_minor == -1050
        assert abs(Money.of(-5, "USD")).amount_minor == 5

    def test_add_across_currencies_raises(self):
        """Currencies are never mixed implicitly."""
        with pytest.raises(CurrencyMismatchError) as exc_info:
            Money.of(100, "USD") + Money.of(100, "EUR")
        assert exc_info.value.left == "USD"
        assert exc_info.value.right == "EUR"

    def test_compare(self):
        """compare() returns -1, 0 or 1."""
        assert Money.of(1, "USD").compare(Money.of(2, "USD")) == -1
        assert Money.of(2, "USD").compare(Money.of(2, "USD")) == 0
        assert Money.of(3, "USD").compare(Money.of(2, "USD")) == 1
        assert Money.of(1, "USD") < Money.of(2, "USD")
        assert Money.of(2, "USD") >= Money.of(2, "USD")

    def test_compare_across_currencies_raises(self):
        """Ordering across currencies is meaningless."""
        with pytest.raises(CurrencyMismatchError):
            Money.of(1, "USD") < Money.of(2, "GBP")

    def test_sign_predicates(self):
        """is_zero / is_positive / is_negative."""
        assert Money.zero("USD").is_zero()
        assert Money.of(1, "USD").is_positive()
        assert Money.of(-1, "USD").is_negative()


class TestAllocate:
    """The single primitive for dividing an amount."""

    def test_equal_thirds_give_leftover_to_first(self):
        """100 cents over three equal weights is 34/33/33."""
        parts = Money.of(100, "USD").allocate([1, 1, 1])
        assert [p.amount_minor for p in parts] == [34, 33, 33]

    def test_proportional_weights(self):
        """Weights that divide evenly need no remainder."""
        parts = Money.of(1000, "USD").allocate([50, 30, 20])
        assert [p.amount_minor for p in parts] == [500, 300, 200]

    def test_largest_remainder_wins(self):
        """The leftover unit goes to the largest fractional remainder, not the first index."""
        # quotas: 10 * 1/6 = 1.67, 10 * 5/6 = 8.33
        parts = Money.of(10, "USD").allocate([1, 5])
        assert [p.amount_minor for p in parts] == [2, 8]

    def test_decimal_weights(self):
        """Percentages can be used directly as weights."""
        parts = Money.of(10000, "USD").allocate([Decimal("33.33"), Decimal("33.33"), Decimal("33.34")])
        assert [p.amount_minor for p in parts] == [3333, 3333, 3334]

    def test_zero_weight_gets_nothing(self):
        """A zero weight receives zero."""
        parts = Money.of(5, "USD").allocate([0, 1])
        assert [p.amount_minor for p in parts] == [0, 5]

    def test_negative_amount_allocates_by_magnitude(self):
        """Negative totals mirror positive ones."""
        parts = Money.of(-100, "USD").allocate([1, 1, 1])
        assert [p.amount_minor for p in parts] == [-34, -33, -33]

    def test_invalid_weights_raise(self):
        """Empty, negative and all-zero weights are programming errors."""
        money = Money.of(100, "USD")
        with pytest.raises(ValueError):
            money.allocate([])
        with pytest.raises(ValueError):
            money.allocate([1, -1])
        with pytest.raises(ValueError):
            money.allocate([0, 0])

    def test_parts_keep_currency(self):
        """Allocation never changes currency."""
        parts = Money.of(7, "JPY").allocate([1, 1])
        assert all(p.currency == "JPY" for p in parts)

    @pytest.mark.parametrize("seed", range(25))
    def test_parts_always_sum_to_total(self, seed):
        """For any total and any weights, nothing is lost or invented."""
        rng = random.Random(seed)
        total = rng.randint(-1_000_000, 1_000_000)
        weights = [rng.randint(0, 50) for _ in range(rng.randint(1, 20))]
        weights[0] += 1

        parts = Money.of(total, "USD").allocate(weights)

        assert sum(p.amount_minor for p in parts) == total
        assert len(parts) == len(weights)


class TestConvert:
    """Explicit currency conversion."""

    def test_convert_at_rate(self):
        """10.00 USD at 0.9 is 9.00 EUR."""
        assert Money.of(1000, "USD").convert("0.9", "EUR") == Money.of(900, "EUR")

    def test_convert_rounds_half_up(self):
        """0.005 EUR rounds up to one cent."""
        assert Money.of(1, "USD").convert("0.5", "EUR") == Money.of(1, "EUR")

    def test_convert_respects_target_exponent(self):
        """Converting into JPY lands on whole yen."""
        assert Money.of(1050, "USD").convert("150", "JPY") == Money.of(1575, "JPY")

    def test_convert_rejects_non_positive_rate(self):
        """A zero or negative rate is an error."""
        with pytest.raises(ValueError):
            Money.of(100, "USD").convert("0", "EUR")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
