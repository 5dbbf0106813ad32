"""
Audit Logger

Every write to the ledger, and every rejected attempt, is logged. Settlement
plans and balance reads are logged too, at lower severity.

The audit logger:
- Is async so it can sit in the same flow as the storage calls
- Never fails the caller if the audit sink is down
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from splitledger.config import get_settings
from splitledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from splitledger.services.storage import AuditSink

LOGGER_NAME = "splitledger"


def configure_logging() -> None:
    """
    Configure structlog from LoggingSettings.

    Called once at import; call again after changing SPLITLEDGER_LOG_*
    (and clearing the settings cache) to pick up the new values.
    """
    log_settings = get_settings().logging
    logging.getLogger(LOGGER_NAME).setLevel(log_settings.level)

    renderer = (
        structlog.processors.JSONRenderer()
        if log_settings.json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An AuditSink, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(f"{LOGGER_NAME}.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence must not break a ledger write
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_validated(
        self,
        description: str,
        split_type: str,
        participant_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_validated(
            description=description,
            split_type=split_type,
            participant_count=participant_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_rejected(
        self,
        error_code: str,
        error_message: str,
        details: dict,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        """Log an expense that failed validation."""
        event = AuditEventBuilder.expense_rejected(
            error_code=error_code,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_expense_recorded(
        self,
        expense_id: UUID,
        amount: str,
        split_type: str,
        content_hash: Optional[str],
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.expense_recorded(
            expense_id=expense_id,
            amount=amount,
            split_type=split_type,
            content_hash=content_hash,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_expense_edited(
        self,
        expense_id: UUID,
        supersedes_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.expense_edited(
            expense_id=expense_id,
            supersedes_id=supersedes_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        deletion_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            deletion_id=deletion_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_payment_recorded(
        self,
        payment_id: UUID,
        from_user_id: int,
        to_user_id: int,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_rejected(
        self,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.payment_rejected(
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_payment_edited(
        self,
        payment_id: UUID,
        supersedes_id: UUID,
        amount: str,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.payment_edited(
            payment_id=payment_id,
            supersedes_id=supersedes_id,
            amount=amount,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_payment_deleted(
        self,
        payment_id: UUID,
        deletion_id: UUID,
        correlation_id: UUID,
        actor_user_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.payment_deleted(
            payment_id=payment_id,
            deletion_id=deletion_id,
            correlation_id=correlation_id,
            actor_user_id=actor_user_id,
        )
        await self.log(event)

    async def log_balances_computed(
        self,
        user_id: int,
        balance_count: int,
        event_count: int,
        correlation_id: UUID,
        group_id: Optional[int] = None,
    ) -> None:
        event = AuditEventBuilder.balances_computed(
            user_id=user_id,
            balance_count=balance_count,
            event_count=event_count,
            correlation_id=correlation_id,
            group_id=group_id,
        )
        await self.log(event)

    async def log_settlement_planned(
        self,
        group_id: int,
        payment_counts: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.settlement_planned(
            group_id=group_id,
            payment_counts=payment_counts,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_integrity_violation(
        self,
        error_code: str,
        error_message: str,
        details: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a ledger whose balances do not sum to zero."""
        event = AuditEventBuilder.integrity_violation(
            error_code=error_code,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected exception raised outside the ledger error taxonomy."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
