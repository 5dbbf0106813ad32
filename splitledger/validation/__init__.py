"""Expense validation package."""

from splitledger.validation.validator import ExpenseValidator, ValidationResult

__all__ = ["ExpenseValidator", "ValidationResult"]
