"""
Tests for Split Ledger models, errors and configuration

Test strategy:
1. Unit tests for individual components (models, errors, settings)
2. Flow tests live in test_orchestrator.py and use the in-memory stores
3. No external services are involved anywhere
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from splitledger.config import (
    get_currency,
    get_settings,
    is_recognized_currency,
    minor_unit_exponent,
    validate_all_settings,
)
from splitledger.errors import (
    ErrorCode,
    SplitMismatchError,
    UnbalancedLedgerError,
)
from splitledger.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Balance,
    Expense,
    ExpenseDraft,
    ItemizedInput,
    Money,
    Payment,
    PaymentDeletion,
    PaymentMethod,
    PercentageInput,
    Split,
    SplitType,
)


class TestLedgerModels:
    """Tests for ledger-related Pydantic models."""

    def test_expense_splits_must_sum(self):
        """Expense refuses splits that do not add up to the total."""
        with pytest.raises(ValidationError):
            Expense(
                description="Dinner",
                total_amount=Money.of(1000, "USD"),
                expense_date=date(2024, 1, 1),
                paid_by=1,
                split_type=SplitType.EXACT,
                splits=(
                    Split(user_id=1, amount=Money.of(500, "USD")),
                    Split(user_id=2, amount=Money.of(400, "USD")),
                ),
            )

    def test_expense_split_currency_must_match(self):
        with pytest.raises(ValidationError):
            Expense(
                description="Dinner",
                total_amount=Money.of(1000, "USD"),
                expense_date=date(2024, 1, 1),
                paid_by=1,
                split_type=SplitType.EXACT,
                splits=(
                    Split(user_id=1, amount=Money.of(500, "USD")),
                    Split(user_id=2, amount=Money.of(500, "EUR")),
                ),
            )

    def test_expense_share_of(self):
        expense = Expense(
            description="Dinner",
            total_amount=Money.of(1000, "USD"),
            expense_date=date(2024, 1, 1),
            paid_by=1,
            split_type=SplitType.EQUAL,
            splits=(
                Split(user_id=1, amount=Money.of(500, "USD")),
                Split(user_id=2, amount=Money.of(500, "USD")),
            ),
        )
        assert expense.currency == "USD"
        assert expense.participant_ids == [1, 2]
        assert expense.share_of(2) == Money.of(500, "USD")
        assert expense.share_of(9) == Money.zero("USD")

    def test_payment_needs_two_users(self):
        with pytest.raises(ValidationError):
            Payment(from_user_id=1, to_user_id=1, amount=Money.of(100, "USD"))

    def test_payment_needs_positive_amount(self):
        with pytest.raises(ValidationError):
            Payment(from_user_id=1, to_user_id=2, amount=Money.of(0, "USD"))

    def test_payment_defaults(self):
        payment = Payment(from_user_id=1, to_user_id=2, amount=Money.of(100, "USD"))
        assert payment.method == PaymentMethod.MANUAL
        assert payment.currency == "USD"
        assert payment.paid_at.tzinfo is not None

    def test_draft_parses_split_input_by_kind(self):
        """Strategy input is picked from plain data by its kind."""
        draft = ExpenseDraft.model_validate({
            "description": " Lunch ",
            "total_amount": {"amount_minor": 1000, "currency": "usd"},
            "paid_by": 1,
            "participants": [{"user_id": 1}, {"user_id": 2}],
            "split_type": "percentage",
            "split_input": {"kind": "percentage", "percentages": {"1": "60", "2": "40"}},
        })
        assert draft.description == "Lunch"
        assert isinstance(draft.split_input, PercentageInput)
        assert draft.split_input.percentages == {1: Decimal("60"), 2: Decimal("40")}
        assert draft.participant_ids == [1, 2]
        assert draft.expense_date == date.today()

    def test_draft_parses_itemized_input(self):
        draft = ExpenseDraft.model_validate({
            "total_amount": {"amount_minor": 1000, "currency": "USD"},
            "paid_by": 1,
            "participants": [{"user_id": 1}, {"user_id": 2}],
            "split_type": "itemized",
            "split_input": {
                "kind": "itemized",
                "items": [{
                    "name": "Pizza",
                    "amount": {"amount_minor": 1000, "currency": "USD"},
                    "quantity": 2,
                    "user_ids": [1, 2],
                }],
            },
        })
        assert isinstance(draft.split_input, ItemizedInput)
        assert draft.split_input.items[0].quantity == 2

    def test_draft_plain_amount_uses_default_currency(self):
        """A bare major-unit amount takes the configured default currency."""
        draft = ExpenseDraft.model_validate({
            "description": "Taxi",
            "total_amount": "12.50",
            "paid_by": 1,
            "participants": [{"user_id": 1}, {"user_id": 2}],
        })
        assert draft.total_amount == Money.of(1250, "USD")

    def test_draft_plain_amount_follows_environment(self, monkeypatch):
        monkeypatch.setenv("SPLITLEDGER_DEFAULT_CURRENCY", "EUR")
        draft = ExpenseDraft(total_amount="7", paid_by=1, participants=[{"user_id": 1}])
        assert draft.total_amount == Money.of(700, "EUR")

    def test_draft_plain_amount_with_currency(self):
        draft = ExpenseDraft.model_validate({
            "total_amount": "1200",
            "currency": "JPY",
            "paid_by": 1,
            "participants": [{"user_id": 1}],
        })
        assert draft.total_amount == Money.of(1200, "JPY")

    def test_draft_rejects_unparseable_amount(self):
        with pytest.raises(ValidationError):
            ExpenseDraft(total_amount="twelve", paid_by=1, participants=[{"user_id": 1}])

    def test_payment_correction_and_deletion(self):
        original = Payment(from_user_id=1, to_user_id=2, amount=Money.of(500, "USD"))
        corrected = Payment(
            from_user_id=1,
            to_user_id=2,
            amount=Money.of(450, "USD"),
            supersedes_id=original.id,
        )
        deletion = PaymentDeletion(payment_id=corrected.id, deleted_by=1)
        assert original.supersedes_id is None
        assert corrected.supersedes_id == original.id
        assert deletion.payment_id == corrected.id
        assert deletion.deleted_at.tzinfo is not None
        with pytest.raises(ValidationError):
            deletion.deleted_by = 2

    def test_all_split_types_exist(self):
        assert {t.value for t in SplitType} == {
            "equal", "exact", "percentage", "shares",
            "adjustment", "reimbursement", "itemized",
        }

    def test_all_payment_methods_exist(self):
        assert {m.value for m in PaymentMethod} == {
            "cash", "bank_transfer", "stripe", "paypal", "manual", "other",
        }

    def test_balance_flags(self):
        owed = Balance(counterpart_user_id=2, currency="USD", net_amount=Money.of(5, "USD"))
        owing = Balance(counterpart_user_id=3, currency="USD", net_amount=Money.of(-5, "USD"))
        assert owed.owes_you and not owed.you_owe
        assert owing.you_owe and not owing.settled


class TestErrors:
    """Tests for the error taxonomy."""

    def test_split_mismatch_to_dict(self):
        error = SplitMismatchError(Money.of(1000, "USD"), Money.of(999, "USD"))
        data = error.to_dict()
        assert data["code"] == ErrorCode.SPLIT_MISMATCH.value
        assert data["allocated"] == 1000
        assert data["total"] == 999
        assert data["delta"] == 1
        assert data["field"] == "splits"
        assert "10.00 USD" in error.message

    def test_unbalanced_ledger_to_dict(self):
        error = UnbalancedLedgerError("EUR", 500, 400)
        assert error.to_dict()["credits"] == 500
        assert error.code == ErrorCode.UNBALANCED_LEDGER


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.EXPENSE_RECORDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            description="Payment",
            correlation_id=correlation_id,
            actor_user_id=7,
            details={"amount": "5.00 USD"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "payment_recorded"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["actor_user_id"] == 7
        assert log_dict["details"] == {"amount": "5.00 USD"}

    def test_builder_expense_rejected(self):
        """Rejections are warnings carrying the error code."""
        correlation_id = uuid4()
        event = AuditEventBuilder.expense_rejected(
            error_code="split_mismatch",
            error_message="Exact amounts must equal the total amount",
            details={"delta": 1},
            correlation_id=correlation_id,
            actor_user_id=3,
        )
        assert event.event_type == AuditEventType.EXPENSE_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "split_mismatch"
        assert event.correlation_id == correlation_id

    def test_builder_settlement_planned(self):
        event = AuditEventBuilder.settlement_planned(
            group_id=10,
            payment_counts={"USD": 3, "EUR": 1},
            correlation_id=uuid4(),
        )
        assert "4 payments" in event.description
        assert event.details["payments_by_currency"] == {"USD": 3, "EUR": 1}

    def test_builder_integrity_violation_is_critical(self):
        event = AuditEventBuilder.integrity_violation("unbalanced_ledger", "boom", {})
        assert event.severity == AuditSeverity.CRITICAL

    def test_builder_payment_corrections(self):
        correlation_id = uuid4()
        payment_id, original_id, deletion_id = uuid4(), uuid4(), uuid4()

        edited = AuditEventBuilder.payment_edited(
            payment_id=payment_id,
            supersedes_id=original_id,
            amount="4.50 USD",
            correlation_id=correlation_id,
            actor_user_id=1,
        )
        assert edited.event_type == AuditEventType.PAYMENT_EDITED
        assert edited.details == {"supersedes_id": str(original_id), "amount": "4.50 USD"}

        deleted = AuditEventBuilder.payment_deleted(
            payment_id=payment_id,
            deletion_id=deletion_id,
            correlation_id=correlation_id,
        )
        assert deleted.event_type == AuditEventType.PAYMENT_DELETED
        assert deleted.entity_id == payment_id
        assert deleted.details["deletion_id"] == str(deletion_id)

    def test_builder_system_error(self):
        event = AuditEventBuilder.system_error("RuntimeError", "disk on fire")
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {}


class TestConfiguration:
    """Tests for settings and currency reference data."""

    def test_defaults(self):
        ledger = get_settings().ledger
        assert ledger.percentage_epsilon == Decimal("0.01")
        assert ledger.default_currency == "USD"
        assert ledger.default_payment_method == "manual"
        assert ledger.extra_currency_codes == []

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SPLITLEDGER_DEFAULT_CURRENCY", "eur")
        monkeypatch.setenv("SPLITLEDGER_EXTRA_CURRENCIES", "btc, xyz")
        ledger = get_settings().ledger
        assert ledger.default_currency == "EUR"
        assert ledger.extra_currency_codes == ["BTC", "XYZ"]

    def test_validate_all_settings(self, monkeypatch):
        assert validate_all_settings() == {"ledger": True, "logging": True}
        monkeypatch.setenv("SPLITLEDGER_LOG_LEVEL", "LOUD")
        results = validate_all_settings()
        assert results["logging"] is False
        assert "logging_error" in results

    def test_currency_table(self):
        assert get_currency("usd").symbol == "$"
        assert minor_unit_exponent("JPY") == 0
        assert minor_unit_exponent("KWD") == 3
        assert minor_unit_exponent("EUR") == 2

    def test_recognized_currency(self):
        assert is_recognized_currency("USD")
        assert not is_recognized_currency("usd")
        assert not is_recognized_currency("US")
        assert not is_recognized_currency("XYZ")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
