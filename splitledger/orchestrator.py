"""
Ledger Service

Ties the engine to the storage boundary and defines the end-to-end flows:
1. Write (draft -> validate -> build -> append -> audit)
2. Correct (load live event -> append replacement or tombstone -> audit)
3. Read (fetch events -> aggregate -> audit)
4. Settle (fetch group events -> net positions -> plan)

The service enforces the boundaries the engine relies on:
- Nothing reaches the sink unless it passed validation
- A rejected write is audited and raised, and nothing is persisted
- Every flow carries one correlation id through its audit events

The engine calls themselves are synchronous; only storage and audit are
awaited.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from splitledger.audit import AuditLogger, create_correlation_id
from splitledger.errors import (
    InvalidExpenseError,
    InvalidPaymentError,
    LedgerError,
    UnbalancedLedgerError,
)
from splitledger.ledger import LedgerAggregator, SettlementPlanner
from splitledger.models.balance import (
    Balance,
    CategorySpending,
    DashboardSummary,
    FriendBalance,
    GroupBalance,
    MonthlySpending,
    SpendingSummary,
)
from splitledger.models.ledger import (
    Expense,
    ExpenseDeletion,
    ExpenseDraft,
    LedgerEvent,
    Payment,
    PaymentDeletion,
    PaymentMethod,
)
from splitledger.models.money import Money
from splitledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerEventSource,
    LedgerSink,
    NotFoundError,
    RecordReceipt,
    StorageError,
)
from splitledger.validation import ExpenseValidator


class LedgerService:
    """
    Async facade over the ledger engine.

    Usage:
        service = create_ledger_service()
        expense = await service.record_expense(draft, created_by=1)
        balances = await service.balances_for(user_id=1)
    """

    def __init__(
        self,
        source: LedgerEventSource,
        sink: LedgerSink,
        validator: Optional[ExpenseValidator] = None,
        aggregator: Optional[LedgerAggregator] = None,
        planner: Optional[SettlementPlanner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._source = source
        self._sink = sink
        self._validator = validator or ExpenseValidator()
        self._aggregator = aggregator or LedgerAggregator()
        self._planner = planner or SettlementPlanner(self._aggregator)
        self._audit_logger = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def _reject_expense(
        self,
        error: LedgerError,
        draft: Optional[ExpenseDraft],
        correlation_id: UUID,
        actor_user_id: Optional[int],
    ) -> None:
        details = error.to_dict()
        if draft is not None:
            details["split_type"] = draft.split_type
            details["participant_count"] = len(draft.participants)
        await self._audit_logger.log_expense_rejected(
            error_code=error.code.value,
            error_message=error.message,
            details=details,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )

    async def _build_expense(
        self,
        draft: ExpenseDraft,
        correlation_id: UUID,
        created_by: Optional[int],
        supersedes_id: Optional[UUID] = None,
    ) -> Expense:
        try:
            expense = self._validator.build_expense(
                draft,
                created_by=created_by,
                supersedes_id=supersedes_id,
            )
        except LedgerError as e:
            await self._reject_expense(e, draft, correlation_id, created_by)
            raise

        await self._audit_logger.log_expense_validated(
            description=expense.description,
            split_type=expense.split_type.value,
            participant_count=len(expense.splits),
            correlation_id=correlation_id,
        )
        return expense

    async def _append(
        self,
        operation: str,
        append: Callable[[Any], Awaitable[RecordReceipt]],
        event: LedgerEvent,
        correlation_id: UUID,
    ) -> RecordReceipt:
        """Hand an event to the sink, auditing any failure before re-raising it."""
        try:
            return await append(event)
        except StorageError as e:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise
        except Exception as e:
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation},
                correlation_id=correlation_id,
            )
            raise

    async def record_expense(
        self,
        draft: ExpenseDraft,
        created_by: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Validate a draft and append the resulting Expense.

        Raises:
            LedgerError: the draft failed validation (nothing is stored)
            StorageError: the sink refused the append
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = await self._build_expense(draft, correlation_id, created_by)
        receipt = await self._append(
            "append_expense", self._sink.append_expense, expense, correlation_id
        )

        await self._audit_logger.log_expense_recorded(
            expense_id=expense.id,
            amount=str(expense.total_amount),
            split_type=expense.split_type.value,
            content_hash=receipt.content_hash,
            correlation_id=correlation_id,
            actor_user_id=created_by,
        )
        return expense

    async def _retired_ids(self) -> set[UUID]:
        return self._aggregator.retired_ids(await self._source.list_retirements())

    async def _load_live_expense(
        self,
        expense_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int],
    ) -> Expense:
        expense = await self._source.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense {expense_id} not found")
        if expense_id in await self._retired_ids():
            error = InvalidExpenseError(
                "This expense was already edited or deleted",
                field="expense_id",
            )
            await self._reject_expense(error, None, correlation_id, actor_user_id)
            raise error
        return expense

    async def edit_expense(
        self,
        expense_id: UUID,
        draft: ExpenseDraft,
        edited_by: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace an expense with an edited version.

        The original stays in the ledger; the replacement carries its id in
        supersedes_id and the aggregator ignores the original from then on.

        Raises:
            NotFoundError: no expense with that id
            InvalidExpenseError: the expense was already edited or deleted
            LedgerError: the edited draft failed validation
        """
        correlation_id = correlation_id or create_correlation_id()

        await self._load_live_expense(expense_id, correlation_id, edited_by)
        expense = await self._build_expense(
            draft,
            correlation_id,
            created_by=edited_by,
            supersedes_id=expense_id,
        )
        await self._append("append_expense", self._sink.append_expense, expense, correlation_id)

        await self._audit_logger.log_expense_edited(
            expense_id=expense.id,
            supersedes_id=expense_id,
            correlation_id=correlation_id,
            actor_user_id=edited_by,
        )
        return expense

    async def delete_expense(
        self,
        expense_id: UUID,
        deleted_by: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExpenseDeletion:
        """
        Retire an expense by appending a deletion event.

        Raises:
            NotFoundError: no expense with that id
            InvalidExpenseError: the expense was already edited or deleted
        """
        correlation_id = correlation_id or create_correlation_id()

        expense = await self._load_live_expense(expense_id, correlation_id, deleted_by)
        deletion = ExpenseDeletion(
            expense_id=expense_id,
            group_id=expense.group_id,
            deleted_by=deleted_by,
        )
        await self._append("append_deletion", self._sink.append_deletion, deletion, correlation_id)

        await self._audit_logger.log_expense_deleted(
            expense_id=expense_id,
            deletion_id=deletion.id,
            correlation_id=correlation_id,
            actor_user_id=deleted_by,
        )
        return deletion

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def _reject_payment(
        self,
        error: LedgerError,
        correlation_id: UUID,
        actor_user_id: Optional[int],
    ) -> None:
        await self._audit_logger.log_payment_rejected(
            error_code=error.code.value,
            error_message=error.message,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )

    async def record_payment(
        self,
        from_user_id: int,
        to_user_id: int,
        amount: Money,
        method: PaymentMethod = PaymentMethod.MANUAL,
        group_id: Optional[int] = None,
        notes: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        """
        Record that from_user_id paid to_user_id.

        Raises:
            LedgerError: invalid parties, amount or currency (nothing is stored)
            StorageError: the sink refused the append
        """
        correlation_id = correlation_id or create_correlation_id()

        error = self._validator.validate_payment(from_user_id, to_user_id, amount)
        if error is not None:
            await self._reject_payment(error, correlation_id, from_user_id)
            raise error

        payment = Payment(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            method=method,
            group_id=group_id,
            notes=notes,
        )
        await self._append("append_payment", self._sink.append_payment, payment, correlation_id)

        await self._audit_logger.log_payment_recorded(
            payment_id=payment.id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=str(amount),
            correlation_id=correlation_id,
        )
        return payment

    async def _load_live_payment(
        self,
        payment_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int],
    ) -> Payment:
        payment = await self._source.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        if payment_id in await self._retired_ids():
            error = InvalidPaymentError(
                "This payment was already edited or deleted",
                field="payment_id",
            )
            await self._reject_payment(error, correlation_id, actor_user_id)
            raise error
        return payment

    async def edit_payment(
        self,
        payment_id: UUID,
        amount: Optional[Money] = None,
        method: Optional[PaymentMethod] = None,
        notes: Optional[str] = None,
        from_user_id: Optional[int] = None,
        to_user_id: Optional[int] = None,
        edited_by: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        """
        Correct a recorded payment.

        Fields left as None keep their recorded value. The corrected payment
        is appended with supersedes_id set and keeps the original group and
        paid_at.

        Raises:
            NotFoundError: no payment with that id
            InvalidPaymentError: the payment was already edited or deleted
            LedgerError: the corrected payment is invalid (nothing is stored)
        """
        correlation_id = correlation_id or create_correlation_id()

        original = await self._load_live_payment(payment_id, correlation_id, edited_by)
        from_user_id = from_user_id if from_user_id is not None else original.from_user_id
        to_user_id = to_user_id if to_user_id is not None else original.to_user_id
        amount = amount if amount is not None else original.amount

        error = self._validator.validate_payment(from_user_id, to_user_id, amount)
        if error is not None:
            await self._reject_payment(error, correlation_id, edited_by)
            raise error

        payment = Payment(
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            method=method if method is not None else original.method,
            group_id=original.group_id,
            notes=notes if notes is not None else original.notes,
            paid_at=original.paid_at,
            supersedes_id=payment_id,
        )
        await self._append("append_payment", self._sink.append_payment, payment, correlation_id)

        await self._audit_logger.log_payment_edited(
            payment_id=payment.id,
            supersedes_id=payment_id,
            amount=str(amount),
            correlation_id=correlation_id,
            actor_user_id=edited_by,
        )
        return payment

    async def delete_payment(
        self,
        payment_id: UUID,
        deleted_by: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> PaymentDeletion:
        """
        Retire a payment recorded by mistake.

        Raises:
            NotFoundError: no payment with that id
            InvalidPaymentError: the payment was already edited or deleted
        """
        correlation_id = correlation_id or create_correlation_id()

        payment = await self._load_live_payment(payment_id, correlation_id, deleted_by)
        deletion = PaymentDeletion(
            payment_id=payment_id,
            group_id=payment.group_id,
            deleted_by=deleted_by,
        )
        await self._append(
            "append_payment_deletion",
            self._sink.append_payment_deletion,
            deletion,
            correlation_id,
        )

        await self._audit_logger.log_payment_deleted(
            payment_id=payment_id,
            deletion_id=deletion.id,
            correlation_id=correlation_id,
            actor_user_id=deleted_by,
        )
        return deletion

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def balances_for(
        self,
        user_id: int,
        group_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Balance]:
        """Per-counterpart, per-currency balances from user_id's viewpoint."""
        correlation_id = correlation_id or create_correlation_id()

        events = await self._source.list_events(user_id=user_id, group_id=group_id)
        balances = self._aggregator.balance_list(user_id, events, group_id=group_id)

        await self._audit_logger.log_balances_computed(
            user_id=user_id,
            balance_count=len(balances),
            event_count=len(events),
            correlation_id=correlation_id,
            group_id=group_id,
        )
        return balances

    async def friend_balance(
        self,
        user_id: int,
        friend_user_id: int,
        convert_to: Optional[str] = None,
        rates: Optional[dict[str, Decimal]] = None,
    ) -> FriendBalance:
        events = await self._source.list_events(user_id=user_id)
        return self._aggregator.friend_balance(
            user_id,
            friend_user_id,
            events,
            convert_to=convert_to,
            rates=rates,
        )

    async def group_balance(self, user_id: int, group_id: int) -> GroupBalance:
        events = await self._source.list_events(group_id=group_id)
        return self._aggregator.group_balance(user_id, group_id, events)

    async def dashboard(self, user_id: int) -> DashboardSummary:
        events = await self._source.list_events(user_id=user_id)
        return self._aggregator.dashboard_summary(user_id, events)

    async def _spending_events(
        self,
        user_id: int,
        currency: Optional[str],
        date_from: Optional[date],
        date_to: Optional[date],
        group_id: Optional[int],
    ) -> list[LedgerEvent]:
        return await self._source.list_events(
            user_id=user_id,
            group_id=group_id,
            date_from=date_from,
            date_to=date_to,
            currency=currency,
        )

    async def spending_summary(
        self,
        user_id: int,
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> SpendingSummary:
        events = await self._spending_events(user_id, currency, date_from, date_to, group_id)
        return self._aggregator.spending_summary(
            user_id, events, currency, date_from, date_to, group_id
        )

    async def spending_by_category(
        self,
        user_id: int,
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> list[CategorySpending]:
        events = await self._spending_events(user_id, currency, date_from, date_to, group_id)
        return self._aggregator.spending_by_category(
            user_id, events, currency, date_from, date_to, group_id
        )

    async def spending_by_month(
        self,
        user_id: int,
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
    ) -> list[MonthlySpending]:
        events = await self._spending_events(user_id, currency, date_from, date_to, group_id)
        return self._aggregator.spending_by_month(
            user_id, events, currency, date_from, date_to, group_id
        )

    async def top_expenses(
        self,
        user_id: int,
        currency: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        group_id: Optional[int] = None,
        limit: int = 5,
    ) -> list[Expense]:
        events = await self._spending_events(user_id, currency, date_from, date_to, group_id)
        return self._aggregator.top_expenses(
            user_id, events, currency, date_from, date_to, group_id, limit=limit
        )

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    async def simplify_group_debts(
        self,
        group_id: int,
        method: Optional[PaymentMethod] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, list[Payment]]:
        """
        Propose the payments that settle a group, per currency.

        The proposals are not recorded; call record_payment() for each one
        the members actually make.

        Raises:
            UnbalancedLedgerError: the group's positions do not net to zero
        """
        correlation_id = correlation_id or create_correlation_id()

        events = await self._source.list_events(group_id=group_id)
        try:
            plan = self._planner.plan_group(group_id, events, method=method)
        except UnbalancedLedgerError as e:
            await self._audit_logger.log_integrity_violation(
                error_code=e.code.value,
                error_message=e.message,
                details=e.to_dict(),
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_settlement_planned(
            group_id=group_id,
            payment_counts={currency: len(payments) for currency, payments in plan.items()},
            correlation_id=correlation_id,
        )
        return plan


def create_ledger_service(
    store: Optional[InMemoryLedgerStore] = None,
    audit_storage: Optional[InMemoryAuditStorage] = None,
) -> LedgerService:
    """
    Factory function to create a fully configured LedgerService.

    Uses the in-memory store and audit storage unless others are given.
    """
    if store is None:
        store = InMemoryLedgerStore()
    if audit_storage is None:
        audit_storage = InMemoryAuditStorage()
    return LedgerService(
        source=store,
        sink=store,
        audit_logger=AuditLogger(storage=audit_storage),
    )
