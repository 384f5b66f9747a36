# PATH: strategy/__init__.py
"""Strategy package: spreads, cost models, simulation, compounding engine."""

from strategy.costs import CostModelRegistry
from strategy.engine import MonitorEngine
from strategy.ledger import BudgetLedger
from strategy.simulator import ArbitrageSimulator
from strategy.spread import best_spread_pair, spread_pct

__all__ = [
    "ArbitrageSimulator",
    "BudgetLedger",
    "CostModelRegistry",
    "MonitorEngine",
    "best_spread_pair",
    "spread_pct",
]
