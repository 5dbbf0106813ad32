"""
Balance View Models

Balances are DERIVED. They are recomputed from the event history on every
request and never stored, so a stored balance can never drift from the
ledger that produced it.

Sign convention everywhere: a positive net_amount means the counterpart
owes the viewpoint user; negative means the viewpoint user owes the
counterpart.

The richer per-counterpart, per-currency Balance is authoritative.
FriendBalance and GroupBalance are projections of it in the shapes the
presentation layer consumes.
"""

import calendar
from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from splitledger.models.money import Money


class Balance(BaseModel):
    """Net position between the viewpoint user and one counterpart in one currency."""
    model_config = ConfigDict(frozen=True)

    counterpart_user_id: int
    currency: str
    net_amount: Money

    @property
    def settled(self) -> bool:
        """Counterparts who transacted but net out to zero are settled, not absent."""
        return self.net_amount.is_zero()

    @property
    def owes_you(self) -> bool:
        return self.net_amount.is_positive()

    @property
    def you_owe(self) -> bool:
        return self.net_amount.is_negative()


class FriendBalance(BaseModel):
    """Everything one friend and the viewpoint user owe each other."""

    friend_user_id: int
    balances_by_currency: list[Money] = Field(
        default_factory=list,
        description="Net amount per currency, positive = friend owes you"
    )
    converted_balance: Optional[Money] = Field(
        default=None,
        description="All currencies converted into converted_currency, when rates are supplied"
    )

    @property
    def converted_currency(self) -> Optional[str]:
        return self.converted_balance.currency if self.converted_balance else None

    @property
    def is_settled(self) -> bool:
        return all(amount.is_zero() for amount in self.balances_by_currency)


class GroupBalance(BaseModel):
    """
    The viewpoint user's standing inside one group.

    user_balance is the viewpoint user's overall net per currency within the
    group; balances breaks it down by member.
    """

    group_id: int
    user_balance: list[Money] = Field(default_factory=list)
    balances: list[Balance] = Field(default_factory=list)

    def flat_balance(self, currency: str) -> Money:
        """Legacy {group, balance} projection for a single currency."""
        for amount in self.user_balance:
            if amount.currency == currency:
                return amount
        return Money.zero(currency)


class HighestOwed(BaseModel):
    """Largest single amount owed to the viewpoint user by a friend or group."""

    counterpart_id: int = Field(
        ...,
        description="Friend user id or group id, depending on context"
    )
    amount: Money


class DashboardSummary(BaseModel):
    """Dashboard rollup for one viewpoint user."""

    user_id: int
    you_are_owed: list[Money] = Field(
        default_factory=list,
        description="Sum of positive balances, per currency"
    )
    you_owe: list[Money] = Field(
        default_factory=list,
        description="Sum of negative balances as positive amounts, per currency"
    )
    total_balance: list[Money] = Field(
        default_factory=list,
        description="you_are_owed minus you_owe, per currency"
    )
    highest_owed_friend: Optional[HighestOwed] = None
    highest_owed_group: Optional[HighestOwed] = None
    friends_count: int = Field(
        default=0,
        ge=0,
        description="Counterparts the user has transacted with, settled ones included"
    )
    groups_count: int = Field(default=0, ge=0)


class SpendingSummary(BaseModel):
    """What one user paid and consumed in one currency over a date range."""

    user_id: int
    currency: str
    total_expenses: Money = Field(
        ...,
        description="Total of all expenses the user took part in or paid for"
    )
    total_paid: Money = Field(
        ...,
        description="Amount the user paid out for expenses"
    )
    total_owed: Money = Field(
        ...,
        description="The user's own share of those expenses"
    )
    expense_count: int = Field(default=0, ge=0)
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @property
    def net_balance(self) -> Money:
        return self.total_paid - self.total_owed


class CategorySpending(BaseModel):
    """The user's share of expenses in one category."""

    category_id: Optional[int] = Field(
        default=None,
        description="None collects expenses without a category"
    )
    total: Money
    expense_count: int = Field(default=0, ge=0)


class MonthlySpending(BaseModel):
    """The user's share of expenses dated in one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    total: Money
    expense_count: int = Field(default=0, ge=0)

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]
