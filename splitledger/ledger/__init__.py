"""Balance aggregation and settlement planning."""

from splitledger.ledger.aggregator import BalanceMap, LedgerAggregator
from splitledger.ledger.planner import SettlementPlanner

__all__ = ["BalanceMap", "LedgerAggregator", "SettlementPlanner"]
