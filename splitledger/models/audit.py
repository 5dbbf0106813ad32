"""
Audit Models for Split Ledger

Every write to the ledger, and every rejected attempt, produces an audit
event. Balance queries and settlement plans are audited too, so the history
of what a user was shown can be reconstructed.

Audit logs are append-only. They are never modified or deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses
    EXPENSE_VALIDATED = "expense_validated"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_EDITED = "expense_edited"
    EXPENSE_DELETED = "expense_deleted"

    # Payments
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_REJECTED = "payment_rejected"
    PAYMENT_EDITED = "payment_edited"
    PAYMENT_DELETED = "payment_deleted"

    # Reads
    BALANCES_COMPUTED = "balances_computed"
    SETTLEMENT_PLANNED = "settlement_planned"

    # System events
    LEDGER_INTEGRITY_VIOLATION = "ledger_integrity_violation"
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'payment', 'group')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., validate + record of one expense)"
    )

    # Who triggered it
    actor_user_id: Optional[int] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "actor_user_id": self.actor_user_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_recorded(expense_id, ...)
        event = AuditEventBuilder.expense_rejected(error, correlation_id)
    """

    @staticmethod
    def expense_validated(
        description: str,
        split_type: str,
        participant_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_VALIDATED,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Expense validated: {description}",
            details={
                "split_type": split_type,
                "participant_count": participant_count,
            },
        )

    @staticmethod
    def expense_rejected(
        error_code: str,
        error_message: str,
        details: dict,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description=f"Expense rejected: {error_code}",
            details=details,
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def expense_recorded(
        expense_id: UUID,
        amount: str,
        split_type: str,
        content_hash: Optional[str],
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description=f"Expense recorded: {amount} split {split_type}",
            details={
                "amount": amount,
                "split_type": split_type,
                "content_hash": content_hash,
            },
        )

    @staticmethod
    def expense_edited(
        expense_id: UUID,
        supersedes_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_EDITED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description="Expense replaced by an edited version",
            details={
                "supersedes_id": str(supersedes_id),
            },
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        deletion_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description="Expense deleted",
            details={
                "deletion_id": str(deletion_id),
            },
        )

    @staticmethod
    def payment_recorded(
        payment_id: UUID,
        from_user_id: int,
        to_user_id: int,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            actor_user_id=from_user_id,
            description=f"Payment recorded: {from_user_id} paid {to_user_id} {amount}",
            details={
                "from_user_id": from_user_id,
                "to_user_id": to_user_id,
                "amount": amount,
            },
        )

    @staticmethod
    def payment_rejected(
        error_code: str,
        error_message: str,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="payment",
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description=f"Payment rejected: {error_code}",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def payment_edited(
        payment_id: UUID,
        supersedes_id: UUID,
        amount: str,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_EDITED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description=f"Payment corrected to {amount}",
            details={
                "supersedes_id": str(supersedes_id),
                "amount": amount,
            },
        )

    @staticmethod
    def payment_deleted(
        payment_id: UUID,
        deletion_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_DELETED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
            description="Payment deleted",
            details={
                "deletion_id": str(deletion_id),
            },
        )

    @staticmethod
    def balances_computed(
        user_id: int,
        balance_count: int,
        event_count: int,
        correlation_id: UUID,
        group_id: Optional[int] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="group" if group_id is not None else "user",
            correlation_id=correlation_id,
            actor_user_id=user_id,
            description=f"Computed {balance_count} balances from {event_count} events",
            details={
                "group_id": group_id,
                "balance_count": balance_count,
                "event_count": event_count,
            },
        )

    @staticmethod
    def settlement_planned(
        group_id: int,
        payment_counts: dict[str, int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_PLANNED,
            entity_type="group",
            correlation_id=correlation_id,
            description=(
                f"Settlement planned for group {group_id}: "
                f"{sum(payment_counts.values())} payments"
            ),
            details={
                "group_id": group_id,
                "payments_by_currency": payment_counts,
            },
        )

    @staticmethod
    def integrity_violation(
        error_code: str,
        error_message: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_INTEGRITY_VIOLATION,
            severity=AuditSeverity.CRITICAL,
            description="Ledger integrity violation",
            error_code=error_code,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
