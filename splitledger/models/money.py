"""
Money - Fixed-Point, Currency-Tagged Amounts

Every amount in the ledger is an integer count of minor units (cents, yen,
fils) tagged with an ISO 4217 code. Floats never enter the arithmetic.

Rules:
1. Arithmetic and comparison require equal currencies (CurrencyMismatchError)
2. Conversion between currencies only happens through convert()
3. allocate() is the single primitive for dividing an amount; its parts
   always add up to the original amount exactly
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Iterable, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from splitledger.config.currencies import minor_unit_exponent
from splitledger.errors import CurrencyMismatchError

Weight = Union[int, Decimal, Fraction]


class Money(BaseModel):
    """An immutable amount of a single currency, held in minor units."""

    model_config = ConfigDict(frozen=True)

    amount_minor: int = Field(
        ...,
        strict=True,
        description="Amount in the currency's minor unit (e.g. cents)"
    )
    currency: str = Field(
        ...,
        min_length=1,
        max_length=8,
        description="ISO 4217 currency code"
    )

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(amount_minor=0, currency=currency)

    @classmethod
    def of(cls, amount_minor: int, currency: str) -> "Money":
        return cls(amount_minor=amount_minor, currency=currency)

    @classmethod
    def from_decimal(cls, amount: Union[Decimal, str, int], currency: str) -> "Money":
        """
        Build Money from a major-unit amount such as Decimal("12.34").

        Raises ValueError if the amount carries more decimal places than
        the currency's minor unit allows. Amounts are never rounded here.
        """
        value = Decimal(str(amount))
        exponent = minor_unit_exponent(currency.strip().upper())
        scaled = value.scaleb(exponent)
        if scaled != scaled.to_integral_value():
            raise ValueError(
                f"{amount} has more than {exponent} decimal places for {currency}"
            )
        return cls(amount_minor=int(scaled), currency=currency)

    @classmethod
    def total(cls, values: Iterable["Money"], currency: str) -> "Money":
        """Sum values of one currency; an empty iterable sums to zero."""
        result = cls.zero(currency)
        for value in values:
            result = result.add(value)
        return result

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount_minor=self.amount_minor + other.amount_minor, currency=self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount_minor=self.amount_minor - other.amount_minor, currency=self.currency)

    def negate(self) -> "Money":
        return Money(amount_minor=-self.amount_minor, currency=self.currency)

    def is_zero(self) -> bool:
        return self.amount_minor == 0

    def is_positive(self) -> bool:
        return self.amount_minor > 0

    def is_negative(self) -> bool:
        return self.amount_minor < 0

    def compare(self, other: "Money") -> int:
        """Return -1, 0 or 1 as self is less than, equal to or greater than other."""
        self._check_currency(other)
        return (self.amount_minor > other.amount_minor) - (self.amount_minor < other.amount_minor)

    def __add__(self, other: "Money") -> "Money":
        return self.add(other)

    def __sub__(self, other: "Money") -> "Money":
        return self.subtract(other)

    def __neg__(self) -> "Money":
        return self.negate()

    def __abs__(self) -> "Money":
        return self.negate() if self.is_negative() else self

    def __lt__(self, other: "Money") -> bool:
        return self.compare(other) < 0

    def __le__(self, other: "Money") -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: "Money") -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: "Money") -> bool:
        return self.compare(other) >= 0

    # -------------------------------------------------------------------------
    # Division and conversion
    # -------------------------------------------------------------------------

    def allocate(self, weights: Sequence[Weight]) -> list["Money"]:
        """
        Split this amount into len(weights) parts proportional to weights.

        Largest-remainder method: every part first receives the floor of its
        exact quota, then the leftover minor units go one each to the parts
        with the largest fractional remainder. Equal remainders are resolved
        by ascending index, so allocate([1, 1, 1]) of 100 cents is
        [34, 33, 33].

        A negative amount is allocated by magnitude and the parts negated.

        Raises:
            ValueError: if weights is empty, contains a negative weight,
                or all weights are zero
        """
        if not weights:
            raise ValueError("allocate() needs at least one weight")

        exact = [Fraction(w) for w in weights]
        if any(w < 0 for w in exact):
            raise ValueError("allocation weights must not be negative")
        weight_sum = sum(exact)
        if weight_sum == 0:
            raise ValueError("allocation weights must not all be zero")

        magnitude = abs(self.amount_minor)
        quotas = [magnitude * w / weight_sum for w in exact]
        parts = [math.floor(q) for q in quotas]

        leftover = magnitude - sum(parts)
        by_remainder = sorted(
            range(len(parts)),
            key=lambda i: (-(quotas[i] - parts[i]), i),
        )
        for i in by_remainder[:leftover]:
            parts[i] += 1

        sign = -1 if self.amount_minor < 0 else 1
        return [Money(amount_minor=sign * p, currency=self.currency) for p in parts]

    def convert(self, rate: Union[Decimal, str], to_currency: str) -> "Money":
        """
        Convert to another currency at an explicit rate.

        `rate` is the number of major units of `to_currency` per major unit
        of this currency. The result is rounded half-up to the target's
        minor unit.
        """
        rate = Decimal(str(rate))
        if rate <= 0:
            raise ValueError(f"Conversion rate must be positive, got {rate}")
        target = to_currency.strip().upper()
        converted = self.to_decimal() * rate
        scaled = converted.scaleb(minor_unit_exponent(target))
        return Money(
            amount_minor=int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
            currency=target,
        )

    def to_decimal(self) -> Decimal:
        """Major-unit value, e.g. Decimal('12.34') for 1234 USD cents."""
        return Decimal(self.amount_minor).scaleb(-minor_unit_exponent(self.currency))

    def __str__(self) -> str:
        return f"{self.to_decimal()} {self.currency}"
