"""Services package."""

from splitledger.services.storage import (
    AuditSink,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerEventSource,
    LedgerSink,
    NotFoundError,
    RecordReceipt,
    StorageError,
)

__all__ = [
    "AuditSink",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStore",
    "LedgerEventSource",
    "LedgerSink",
    "NotFoundError",
    "RecordReceipt",
    "StorageError",
]
