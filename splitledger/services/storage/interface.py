"""
Abstract Storage Interface

The engine never performs I/O itself. Callers feed it events from a
LedgerEventSource and hand validated events to a LedgerSink. Both are
abstract so the backing store (SQL database, REST API, in-memory list) can
be swapped without touching business logic.

The ledger is append-only: there is no update or delete operation. Edits
and deletions of expenses and payments are themselves appended as events.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from splitledger.models.audit import AuditEvent
from splitledger.models.ledger import (
    Expense,
    ExpenseDeletion,
    LedgerEvent,
    Payment,
    PaymentDeletion,
)


class RecordReceipt(BaseModel):
    """What the sink hands back for an appended event."""

    record_id: UUID = Field(
        ...,
        description="Identifier of the stored event"
    )
    sequence: int = Field(
        ...,
        ge=0,
        description="Position of the event in the append log"
    )
    content_hash: Optional[str] = Field(
        default=None,
        description="Tamper-evidence digest, if the backend provides one"
    )


class LedgerEventSource(ABC):
    """
    Read side of the ledger.

    Implementations must return a consistent snapshot per call; balances
    computed from a partial list are stale, not wrong.
    """

    @abstractmethod
    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_expenses(
        self,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        currency: Optional[str] = None,
    ) -> list[Expense]:
        """
        List expenses with optional filters.

        Args:
            user_id: Only expenses the user paid for or takes part in
            group_id: Only expenses recorded against this group
            date_from: Expenses dated on or after this date
            date_to: Expenses dated on or before this date
            currency: Only expenses in this currency

        Returns:
            Matching expenses in append order
        """
        pass

    @abstractmethod
    async def list_payments(
        self,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        currency: Optional[str] = None,
    ) -> list[Payment]:
        """
        List payments with optional filters.

        Args:
            user_id: Only payments the user sent or received
            group_id: Only payments recorded against this group
            date_from: Payments made on or after this date
            date_to: Payments made on or before this date
            currency: Only payments in this currency

        Returns:
            Matching payments in append order
        """
        pass

    @abstractmethod
    async def list_deletions(self) -> list[ExpenseDeletion]:
        """All expense deletions, in append order."""
        pass

    @abstractmethod
    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        """
        Retrieve a payment by its ID.

        Returns:
            The payment if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_payment_deletions(self) -> list[PaymentDeletion]:
        """All payment deletions, in append order."""
        pass

    async def list_retirements(self) -> list[LedgerEvent]:
        """
        Every event that retires another one.

        That is each deletion of either kind, plus each expense or payment
        carrying a supersedes_id.
        """
        expense_edits = [e for e in await self.list_expenses() if e.supersedes_id is not None]
        payment_edits = [p for p in await self.list_payments() if p.supersedes_id is not None]
        return [
            *expense_edits,
            *payment_edits,
            *await self.list_deletions(),
            *await self.list_payment_deletions(),
        ]

    async def list_events(
        self,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        currency: Optional[str] = None,
    ) -> list[LedgerEvent]:
        """
        Expenses and payments matching the filters, plus every retirement.

        Retiring events are never filtered out: an edited or deleted event
        must stay retired no matter which slice of the ledger is being
        aggregated, even when its replacement falls outside the slice.
        Replacements outside the slice are returned too, so callers must
        fold with the same group, date and currency restrictions they
        queried with.
        """
        expenses = await self.list_expenses(user_id, group_id, date_from, date_to, currency)
        payments = await self.list_payments(user_id, group_id, date_from, date_to, currency)
        matched: list[LedgerEvent] = [*expenses, *payments]
        seen = {event.id for event in matched}
        retirements = [e for e in await self.list_retirements() if e.id not in seen]
        return matched + retirements


class LedgerSink(ABC):
    """Write side of the ledger. Append only."""

    @abstractmethod
    async def append_expense(self, expense: Expense) -> RecordReceipt:
        """
        Append a validated expense.

        Raises:
            DuplicateError: an event with this ID already exists
            NotFoundError: expense.supersedes_id names an unknown expense
        """
        pass

    @abstractmethod
    async def append_payment(self, payment: Payment) -> RecordReceipt:
        """
        Append a payment.

        Raises:
            DuplicateError: an event with this ID already exists
            NotFoundError: payment.supersedes_id names an unknown payment
        """
        pass

    @abstractmethod
    async def append_deletion(self, deletion: ExpenseDeletion) -> RecordReceipt:
        """
        Append an expense deletion.

        Raises:
            NotFoundError: the expense does not exist
            DuplicateError: the expense was already deleted
        """
        pass

    @abstractmethod
    async def append_payment_deletion(self, deletion: PaymentDeletion) -> RecordReceipt:
        """
        Append a payment deletion.

        Raises:
            NotFoundError: the payment does not exist
            DuplicateError: the payment was already deleted
        """
        pass


class AuditSink(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one expense submission).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
