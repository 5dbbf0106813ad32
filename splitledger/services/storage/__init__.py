"""
Storage Services Package

Provides abstract interfaces for the ledger's event source, persistence sink
and audit log, plus an in-memory implementation.
"""

from splitledger.services.storage.interface import (
    AuditSink,
    DuplicateError,
    LedgerEventSource,
    LedgerSink,
    NotFoundError,
    RecordReceipt,
    StorageError,
)
from splitledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    hash_event,
)

__all__ = [
    # Interfaces
    "AuditSink",
    "LedgerEventSource",
    "LedgerSink",
    "RecordReceipt",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStore",
    "hash_event",
]
