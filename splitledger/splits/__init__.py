"""Split strategies package."""

from splitledger.splits.strategies import (
    STRATEGIES,
    SplitResult,
    compute_adjustment,
    compute_equal,
    compute_exact,
    compute_itemized,
    compute_percentage,
    compute_reimbursement,
    compute_shares,
    compute_splits,
    parse_split_type,
)

__all__ = [
    "STRATEGIES",
    "SplitResult",
    "compute_adjustment",
    "compute_equal",
    "compute_exact",
    "compute_itemized",
    "compute_percentage",
    "compute_reimbursement",
    "compute_shares",
    "compute_splits",
    "parse_split_type",
]
