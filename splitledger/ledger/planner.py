"""
Settlement Planning (Debt Simplification)

Given each member's net position in one currency, propose payments that
bring everyone to zero.

Greedy largest-vs-largest matching: the member owed the most is paid by the
member owing the most, for the smaller of the two amounts; whoever reaches
zero drops out, and the rest are re-ranked. Ranking is by magnitude
descending, then user id ascending, so the plan is deterministic. Each
payment retires at least one member, so n members never need more than
n - 1 payments.
"""

from typing import Iterable, Mapping, Optional, Sequence, Union

from splitledger.config import get_settings
from splitledger.errors import CurrencyMismatchError, UnbalancedLedgerError
from splitledger.ledger.aggregator import LedgerAggregator
from splitledger.models.balance import Balance
from splitledger.models.ledger import LedgerEvent, Payment, PaymentMethod
from splitledger.models.money import Money

Positions = Union[Mapping[int, Money], Sequence[Balance]]


class SettlementPlanner:
    """Proposes the payments that settle a group."""

    def __init__(self, aggregator: Optional[LedgerAggregator] = None):
        self._aggregator = aggregator or LedgerAggregator()
        self._default_method = PaymentMethod(get_settings().ledger.default_payment_method)

    @staticmethod
    def _normalize(balances: Positions) -> dict[int, Money]:
        if isinstance(balances, Mapping):
            positions = dict(balances)
        else:
            positions = {}
            for balance in balances:
                if balance.counterpart_user_id in positions:
                    raise ValueError(
                        f"User {balance.counterpart_user_id} appears more than once"
                    )
                positions[balance.counterpart_user_id] = balance.net_amount

        currencies = sorted({amount.currency for amount in positions.values()})
        if len(currencies) > 1:
            raise CurrencyMismatchError(currencies[0], currencies[1])
        return positions

    def simplify(
        self,
        balances: Positions,
        group_id: Optional[int] = None,
        method: Optional[PaymentMethod] = None,
    ) -> list[Payment]:
        """
        Propose payments settling one currency's net positions.

        Args:
            balances: {user_id: net Money} or Balance models (one per member),
                positive for members who are owed
            group_id: stamped on the proposed payments
            method: payment method for the proposals (settings default if None)

        Raises:
            CurrencyMismatchError: positions in more than one currency
            UnbalancedLedgerError: credits and debits do not cancel out
        """
        positions = self._normalize(balances)
        if not positions:
            return []
        currency = next(iter(positions.values())).currency

        creditors = {uid: m.amount_minor for uid, m in positions.items() if m.is_positive()}
        debtors = {uid: -m.amount_minor for uid, m in positions.items() if m.is_negative()}

        credits = sum(creditors.values())
        debits = sum(debtors.values())
        if credits != debits:
            raise UnbalancedLedgerError(currency, credits, debits)

        method = method or self._default_method
        payments = []
        while creditors and debtors:
            creditor = min(creditors, key=lambda uid: (-creditors[uid], uid))
            debtor = min(debtors, key=lambda uid: (-debtors[uid], uid))
            amount = min(creditors[creditor], debtors[debtor])

            payments.append(Payment(
                from_user_id=debtor,
                to_user_id=creditor,
                amount=Money.of(amount, currency),
                method=method,
                group_id=group_id,
            ))

            creditors[creditor] -= amount
            debtors[debtor] -= amount
            if creditors[creditor] == 0:
                del creditors[creditor]
            if debtors[debtor] == 0:
                del debtors[debtor]

        return payments

    def plan_group(
        self,
        group_id: int,
        events: Iterable[LedgerEvent],
        method: Optional[PaymentMethod] = None,
    ) -> dict[str, list[Payment]]:
        """Run simplify() once per currency present in the group."""
        positions = self._aggregator.net_positions(events, group_id=group_id)
        return {
            currency: self.simplify(book, group_id=group_id, method=method)
            for currency, book in positions.items()
        }
