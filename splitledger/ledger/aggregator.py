"""
Ledger Aggregation

Folds a list of ledger events into balances. Nothing here is stored or
cached: every call recomputes from the events it is given, so the same
events always produce the same balances, and a partial event list simply
produces an older (still consistent) view.

Fold rules:
- Expense: for every split whose user is not the payer, that user owes the
  payer split.amount
- Payment: what from_user owes to_user goes down by amount
- ExpenseDeletion, PaymentDeletion and supersedes_id: the referenced
  expense or payment drops out before folding

Balances are kept per currency and never converted implicitly. Each rule
credits one side exactly what it debits the other, so for any event list
the balances of all users net to zero in every currency.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from splitledger.config import get_settings
from splitledger.errors import UnbalancedLedgerError
from splitledger.models.balance import (
    Balance,
    CategorySpending,
    DashboardSummary,
    FriendBalance,
    GroupBalance,
    HighestOwed,
    MonthlySpending,
    SpendingSummary,
)
from splitledger.models.ledger import (
    Expense,
    ExpenseDeletion,
    LedgerEvent,
    Payment,
    PaymentDeletion,
)
from splitledger.models.money import Money

BalanceMap = dict[tuple[int, str], Money]


def _credit(balances: BalanceMap, counterpart: int, amount: Money) -> None:
    key = (counterpart, amount.currency)
    balances[key] = balances.get(key, Money.zero(amount.currency)) + amount


def _totals_by_currency(amounts: Iterable[Money]) -> list[Money]:
    totals: dict[str, Money] = {}
    for amount in amounts:
        totals[amount.currency] = totals.get(amount.currency, Money.zero(amount.currency)) + amount
    return [totals[currency] for currency in sorted(totals)]


class LedgerAggregator:
    """
    Computes balances and derived views from ledger events.

    Holds no state; safe to share between threads and requests.
    """

    # -------------------------------------------------------------------------
    # Event resolution
    # -------------------------------------------------------------------------

    @staticmethod
    def retired_ids(events: Iterable[LedgerEvent]) -> set[UUID]:
        """Ids of every expense or payment that was deleted or edited away."""
        retired: set[UUID] = set()
        for event in events:
            if isinstance(event, (Expense, Payment)):
                if event.supersedes_id is not None:
                    retired.add(event.supersedes_id)
            elif isinstance(event, ExpenseDeletion):
                retired.add(event.expense_id)
            elif isinstance(event, PaymentDeletion):
                retired.add(event.payment_id)
            else:
                raise TypeError(f"Not a ledger event: {type(event).__name__}")
        return retired

    @classmethod
    def effective_events(
        cls,
        events: Iterable[LedgerEvent],
        group_id: Optional[int] = None,
    ) -> tuple[list[Expense], list[Payment]]:
        """
        Resolve edits and deletions, then optionally restrict to one group.

        Retirement is computed over the whole event set first, so the
        result does not depend on event order.
        """
        events = list(events)
        retired = cls.retired_ids(events)
        expenses = [e for e in events if isinstance(e, Expense) and e.id not in retired]
        payments = [p for p in events if isinstance(p, Payment) and p.id not in retired]
        if group_id is not None:
            expenses = [e for e in expenses if e.group_id == group_id]
            payments = [p for p in payments if p.group_id == group_id]
        return expenses, payments

    # -------------------------------------------------------------------------
    # Pairwise balances
    # -------------------------------------------------------------------------

    def balances_for(
        self,
        viewpoint_user_id: int,
        events: Iterable[LedgerEvent],
        group_id: Optional[int] = None,
    ) -> BalanceMap:
        """
        Net balance between the viewpoint user and every counterpart.

        Returns:
            {(counterpart_user_id, currency): Money}, positive when the
            counterpart owes the viewpoint user. Counterparts who transacted
            but are square appear with a zero amount.
        """
        expenses, payments = self.effective_events(events, group_id)
        balances: BalanceMap = {}

        for expense in expenses:
            payer = expense.paid_by
            for split in expense.splits:
                if split.user_id == payer:
                    continue
                if payer == viewpoint_user_id:
                    _credit(balances, split.user_id, split.amount)
                elif split.user_id == viewpoint_user_id:
                    _credit(balances, payer, split.amount.negate())

        for payment in payments:
            if payment.to_user_id == viewpoint_user_id:
                _credit(balances, payment.from_user_id, payment.amount.negate())
            elif payment.from_user_id == viewpoint_user_id:
                _credit(balances, payment.to_user_id, payment.amount)

        return balances

    def balance_list(
        self,
        viewpoint_user_id: int,
        events: Iterable[LedgerEvent],
        group_id: Optional[int] = None,
    ) -> list[Balance]:
        """balances_for() as Balance models, ordered by counterpart then currency."""
        balances = self.balances_for(viewpoint_user_id, events, group_id)
        return [
            Balance(counterpart_user_id=counterpart, currency=currency, net_amount=amount)
            for (counterpart, currency), amount in sorted(balances.items())
        ]

    def group_balances_for(
        self,
        viewpoint_user_id: int,
        group_id: int,
        events: Iterable[LedgerEvent],
    ) -> BalanceMap:
        """Same fold, restricted to events recorded against group_id."""
        return self.balances_for(viewpoint_user_id, events, group_id=group_id)

    # -------------------------------------------------------------------------
    # Whole-ledger positions
    # -------------------------------------------------------------------------

    def net_positions(
        self,
        events: Iterable[LedgerEvent],
        group_id: Optional[int] = None,
    ) -> dict[str, dict[int, Money]]:
        """
        Every user's overall net position per currency.

        Positive means the user is owed money overall. This is the input the
        settlement planner works from.

        Raises:
            UnbalancedLedgerError: if positions in a currency do not sum to zero
        """
        expenses, payments = self.effective_events(events, group_id)
        positions: dict[str, dict[int, Money]] = defaultdict(dict)

        def move(creditor: int, debtor: int, amount: Money) -> None:
            book = positions[amount.currency]
            zero = Money.zero(amount.currency)
            book[creditor] = book.get(creditor, zero) + amount
            book[debtor] = book.get(debtor, zero) - amount

        for expense in expenses:
            for split in expense.splits:
                if split.user_id != expense.paid_by:
                    move(expense.paid_by, split.user_id, split.amount)

        for payment in payments:
            move(payment.from_user_id, payment.to_user_id, payment.amount)

        for currency, book in positions.items():
            credits = sum(m.amount_minor for m in book.values() if m.is_positive())
            debits = -sum(m.amount_minor for m in book.values() if m.is_negative())
            if credits != debits:
                raise UnbalancedLedgerError(currency, credits, debits)

        return {
            currency: dict(sorted(positions[currency].items()))
            for currency in sorted(positions)
        }

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    @staticmethod
    def owed_to_you(balances: BalanceMap) -> BalanceMap:
        return {key: amount for key, amount in balances.items() if amount.is_positive()}

    @staticmethod
    def you_owe(balances: BalanceMap) -> BalanceMap:
        return {key: amount for key, amount in balances.items() if amount.is_negative()}

    @staticmethod
    def highest_owed(balances: BalanceMap) -> Optional[tuple[int, Money]]:
        """
        The single largest positive balance.

        Compared by absolute minor units; ties go to the lower counterpart
        id, then the alphabetically first currency.
        """
        candidates = [
            (counterpart, amount)
            for (counterpart, _), amount in balances.items()
            if amount.is_positive()
        ]
        if not candidates:
            return None
        return min(
            candidates,
            key=lambda item: (-item[1].amount_minor, item[0], item[1].currency),
        )

    def friend_balance(
        self,
        viewpoint_user_id: int,
        friend_user_id: int,
        events: Iterable[LedgerEvent],
        convert_to: Optional[str] = None,
        rates: Optional[dict[str, Decimal]] = None,
    ) -> FriendBalance:
        """
        Balances with one friend across all currencies.

        When convert_to is given, rates must map every other currency present
        to the number of convert_to units per unit of that currency.
        """
        balances = self.balances_for(viewpoint_user_id, events)
        by_currency = [
            amount for (counterpart, currency), amount in sorted(balances.items())
            if counterpart == friend_user_id
        ]

        converted = None
        if convert_to is not None:
            target = convert_to.upper()
            rates = rates or {}
            converted = Money.zero(target)
            for amount in by_currency:
                if amount.currency == target:
                    converted = converted + amount
                    continue
                if amount.currency not in rates:
                    raise ValueError(f"No conversion rate from {amount.currency} to {target}")
                converted = converted + amount.convert(rates[amount.currency], target)

        return FriendBalance(
            friend_user_id=friend_user_id,
            balances_by_currency=by_currency,
            converted_balance=converted,
        )

    def group_balance(
        self,
        viewpoint_user_id: int,
        group_id: int,
        events: Iterable[LedgerEvent],
    ) -> GroupBalance:
        balances = self.balance_list(viewpoint_user_id, events, group_id=group_id)
        return GroupBalance(
            group_id=group_id,
            user_balance=_totals_by_currency(b.net_amount for b in balances),
            balances=balances,
        )

    def dashboard_summary(
        self,
        viewpoint_user_id: int,
        events: Sequence[LedgerEvent],
    ) -> DashboardSummary:
        """
        You-are-owed / you-owe totals and the largest amounts owed to the user.

        friends_count counts every counterpart the user has transacted with,
        including those now settled at zero.
        """
        events = list(events)
        balances = self.balances_for(viewpoint_user_id, events)

        owed = self.owed_to_you(balances)
        owing = self.you_owe(balances)
        highest_friend = self.highest_owed(balances)

        expenses, payments = self.effective_events(events)
        group_ids = sorted({
            e.group_id for e in expenses
            if e.group_id is not None
            and (e.paid_by == viewpoint_user_id or viewpoint_user_id in e.participant_ids)
        } | {
            p.group_id for p in payments
            if p.group_id is not None
            and viewpoint_user_id in (p.from_user_id, p.to_user_id)
        })

        group_totals: BalanceMap = {}
        for gid in group_ids:
            group_view = self.group_balance(viewpoint_user_id, gid, events)
            for amount in group_view.user_balance:
                group_totals[(gid, amount.currency)] = amount
        highest_group = self.highest_owed(group_totals)

        return DashboardSummary(
            user_id=viewpoint_user_id,
            you_are_owed=_totals_by_currency(owed.values()),
            you_owe=_totals_by_currency(amount.negate() for amount in owing.values()),
            total_balance=_totals_by_currency(balances.values()),
            highest_owed_friend=(
                HighestOwed(counterpart_id=highest_friend[0], amount=highest_friend[1])
                if highest_friend else None
            ),
            highest_owed_group=(
                HighestOwed(counterpart_id=highest_group[0], amount=highest_group[1])
                if highest_group else None
            ),
            friends_count=len({counterpart for counterpart, _ in balances}),
            groups_count=len(group_ids),
        )

    # -------------------------------------------------------------------------
    # Spending reports
    # -------------------------------------------------------------------------

    def _spending_expenses(
        self,
        user_id: int,
        events: Iterable[LedgerEvent],
        currency: Optional[str],
        date_from: Optional[date],
        date_to: Optional[date],
        group_id: Optional[int],
    ) -> tuple[str, list[Expense]]:
        """Live expenses the user paid for or shares in, in one currency and date range."""
        currency = (currency or get_settings().ledger.default_currency).upper()
        expenses, _ = self.effective_events(events, group_id)
        selected = [
            expense for expense in expenses
            if expense.currency == currency
            and not (date_from and expense.expense_date < date_from)
            and not (date_to and expense.expense_date > date_to)
            and (expense.paid_by == user_id or user_id in expense.participant_ids)
        ]
        return currency, selected

    def spending_summary(
        self,
        user_id: int,
        events: Iterable[LedgerEvent],
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> SpendingSummary:
        """
        Totals over the user's expenses in one currency, by expense date.

        currency defaults to LedgerSettings.default_currency.
        """
        currency, expenses = self._spending_expenses(
            user_id, events, currency, date_from, date_to, group_id
        )
        total_paid = Money.total(
            (e.total_amount for e in expenses if e.paid_by == user_id), currency
        )
        return SpendingSummary(
            user_id=user_id,
            currency=currency,
            total_expenses=Money.total((e.total_amount for e in expenses), currency),
            total_paid=total_paid,
            total_owed=Money.total((e.share_of(user_id) for e in expenses), currency),
            expense_count=len(expenses),
            date_from=date_from,
            date_to=date_to,
        )

    def spending_by_category(
        self,
        user_id: int,
        events: Iterable[LedgerEvent],
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> list[CategorySpending]:
        """
        The user's own share of spending, per category.

        Largest total first; ties by category id, uncategorized last.
        """
        currency, expenses = self._spending_expenses(
            user_id, events, currency, date_from, date_to, group_id
        )
        totals: dict[Optional[int], Money] = {}
        counts: dict[Optional[int], int] = defaultdict(int)
        for expense in expenses:
            key = expense.category_id
            totals[key] = totals.get(key, Money.zero(currency)) + expense.share_of(user_id)
            counts[key] += 1

        rows = [
            CategorySpending(category_id=key, total=total, expense_count=counts[key])
            for key, total in totals.items()
        ]
        return sorted(
            rows,
            key=lambda row: (
                -row.total.amount_minor,
                row.category_id is None,
                row.category_id or 0,
            ),
        )

    def spending_by_month(
        self,
        user_id: int,
        events: Iterable[LedgerEvent],
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> list[MonthlySpending]:
        """The user's own share of spending per calendar month, oldest first."""
        currency, expenses = self._spending_expenses(
            user_id, events, currency, date_from, date_to, group_id
        )
        totals: dict[tuple[int, int], Money] = {}
        counts: dict[tuple[int, int], int] = defaultdict(int)
        for expense in expenses:
            key = (expense.expense_date.year, expense.expense_date.month)
            totals[key] = totals.get(key, Money.zero(currency)) + expense.share_of(user_id)
            counts[key] += 1

        return [
            MonthlySpending(
                year=year,
                month=month,
                total=totals[(year, month)],
                expense_count=counts[(year, month)],
            )
            for year, month in sorted(totals)
        ]

    def top_expenses(
        self,
        user_id: int,
        events: Iterable[LedgerEvent],
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
        limit: int = 5,
    ) -> list[Expense]:
        """The user's largest expenses by total amount; newer first on ties."""
        _, expenses = self._spending_expenses(
            user_id, events, currency, date_from, date_to, group_id
        )
        ranked = sorted(
            expenses,
            key=lambda e: (-e.total_amount.amount_minor, -e.expense_date.toordinal(), str(e.id)),
        )
        return ranked[:limit]
