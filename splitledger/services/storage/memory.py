"""
In-Memory Ledger Storage

Reference implementation of the storage interfaces, used by tests and as the
default backend of LedgerService.

Every appended event is hash-chained: its content hash is the SHA-256 of the
previous hash plus the event's canonical JSON. Rewriting any stored event
breaks every hash after it, which verify_chain() detects.
"""

import asyncio
import hashlib
import json
from datetime import date
from typing import Optional
from uuid import UUID

from splitledger.models.audit import AuditEvent
from splitledger.models.ledger import (
    Expense,
    ExpenseDeletion,
    LedgerEvent,
    Payment,
    PaymentDeletion,
)
from splitledger.services.storage.interface import (
    AuditSink,
    DuplicateError,
    LedgerEventSource,
    LedgerSink,
    NotFoundError,
    RecordReceipt,
)

GENESIS_HASH = "0" * 64


def hash_event(event: LedgerEvent, previous_hash: str) -> str:
    """SHA-256 over the previous hash and the event's canonical JSON."""
    payload = json.dumps(
        {
            "kind": type(event).__name__,
            "event": event.model_dump(mode="json"),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256((previous_hash + payload).encode("utf-8")).hexdigest()


def _in_range(day: date, date_from: Optional[date], date_to: Optional[date]) -> bool:
    if date_from and day < date_from:
        return False
    if date_to and day > date_to:
        return False
    return True


class InMemoryLedgerStore(LedgerEventSource, LedgerSink):
    """Append-only, hash-chained event log held in a Python list."""

    def __init__(self):
        self._records: list[tuple[LedgerEvent, str]] = []
        self._ids: set[UUID] = set()
        self._expenses: dict[UUID, Expense] = {}
        self._payments: dict[UUID, Payment] = {}
        self._deleted: set[UUID] = set()
        self._lock = asyncio.Lock()

    @property
    def head_hash(self) -> str:
        return self._records[-1][1] if self._records else GENESIS_HASH

    def _append(self, event: LedgerEvent) -> RecordReceipt:
        if event.id in self._ids:
            raise DuplicateError(f"Event {event.id} already recorded")
        content_hash = hash_event(event, self.head_hash)
        self._records.append((event, content_hash))
        self._ids.add(event.id)
        return RecordReceipt(
            record_id=event.id,
            sequence=len(self._records) - 1,
            content_hash=content_hash,
        )

    # -------------------------------------------------------------------------
    # LedgerSink
    # -------------------------------------------------------------------------

    async def append_expense(self, expense: Expense) -> RecordReceipt:
        async with self._lock:
            if expense.supersedes_id is not None and expense.supersedes_id not in self._expenses:
                raise NotFoundError(f"Expense {expense.supersedes_id} not found")
            receipt = self._append(expense)
            self._expenses[expense.id] = expense
            return receipt

    async def append_payment(self, payment: Payment) -> RecordReceipt:
        async with self._lock:
            if payment.supersedes_id is not None and payment.supersedes_id not in self._payments:
                raise NotFoundError(f"Payment {payment.supersedes_id} not found")
            receipt = self._append(payment)
            self._payments[payment.id] = payment
            return receipt

    async def append_deletion(self, deletion: ExpenseDeletion) -> RecordReceipt:
        async with self._lock:
            if deletion.expense_id not in self._expenses:
                raise NotFoundError(f"Expense {deletion.expense_id} not found")
            if deletion.expense_id in self._deleted:
                raise DuplicateError(f"Expense {deletion.expense_id} already deleted")
            receipt = self._append(deletion)
            self._deleted.add(deletion.expense_id)
            return receipt

    async def append_payment_deletion(self, deletion: PaymentDeletion) -> RecordReceipt:
        async with self._lock:
            if deletion.payment_id not in self._payments:
                raise NotFoundError(f"Payment {deletion.payment_id} not found")
            if deletion.payment_id in self._deleted:
                raise DuplicateError(f"Payment {deletion.payment_id} already deleted")
            receipt = self._append(deletion)
            self._deleted.add(deletion.payment_id)
            return receipt

    # -------------------------------------------------------------------------
    # LedgerEventSource
    # -------------------------------------------------------------------------

    async def get_expense(self, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(expense_id)

    async def get_payment(self, payment_id: UUID) -> Optional[Payment]:
        return self._payments.get(payment_id)

    async def list_expenses(
        self,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        currency: Optional[str] = None,
    ) -> list[Expense]:
        results = []
        for event, _ in self._records:
            if not isinstance(event, Expense):
                continue
            if user_id is not None and (
                event.paid_by != user_id and user_id not in event.participant_ids
            ):
                continue
            if group_id is not None and event.group_id != group_id:
                continue
            if currency and event.currency != currency.upper():
                continue
            if not _in_range(event.expense_date, date_from, date_to):
                continue
            results.append(event)
        return results

    async def list_payments(
        self,
        user_id: Optional[int] = None,
        group_id: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        currency: Optional[str] = None,
    ) -> list[Payment]:
        results = []
        for event, _ in self._records:
            if not isinstance(event, Payment):
                continue
            if user_id is not None and user_id not in (event.from_user_id, event.to_user_id):
                continue
            if group_id is not None and event.group_id != group_id:
                continue
            if currency and event.currency != currency.upper():
                continue
            if not _in_range(event.paid_at.date(), date_from, date_to):
                continue
            results.append(event)
        return results

    async def list_deletions(self) -> list[ExpenseDeletion]:
        return [event for event, _ in self._records if isinstance(event, ExpenseDeletion)]

    async def list_payment_deletions(self) -> list[PaymentDeletion]:
        return [event for event, _ in self._records if isinstance(event, PaymentDeletion)]

    # -------------------------------------------------------------------------
    # Tamper evidence
    # -------------------------------------------------------------------------

    def verify_chain(self) -> bool:
        """Recompute every hash; False if any stored event was altered."""
        previous = GENESIS_HASH
        for event, content_hash in self._records:
            if hash_event(event, previous) != content_hash:
                return False
            previous = content_hash
        return True

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAuditStorage(AuditSink):
    """Audit events kept in a list, oldest first."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
