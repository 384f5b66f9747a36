"""
strategy/ledger.py - Compounding simulated budget.

The budget only grows: each profitable simulation adds its net profit.
Losses are never applied since nothing is executed.
"""

from decimal import Decimal

from core.exceptions import ValidationError
from core.logging import get_logger
from core.math import to_decimal

logger = get_logger(__name__)


class BudgetLedger:
    """
    Process-wide simulated trading budget in quote units.

    apply_profit() is the only mutation path. Not persisted across restarts.
    """

    def __init__(self, initial_budget: Decimal | int | str):
        initial = to_decimal(initial_budget)
        if initial <= 0:
            raise ValidationError(
                f"Initial budget must be positive, got {initial}",
                details={"initial_budget": str(initial)},
            )
        self._initial = initial
        self._current = initial
        self._applied_count = 0

    def snapshot(self) -> Decimal:
        """Current budget (pure read)."""
        return self._current

    def apply_profit(self, amount: Decimal | int | str) -> bool:
        """
        Compound a simulated profit into the budget.

        Returns:
            True if the budget grew, False for zero or negative amounts
            (which leave the ledger unchanged).
        """
        value = to_decimal(amount)
        if value <= 0:
            logger.debug(
                "Ignoring non-positive profit",
                extra={"context": {"amount": str(value)}}
            )
            return False

        self._current += value
        self._applied_count += 1
        return True

    @property
    def initial_budget(self) -> Decimal:
        return self._initial

    @property
    def applied_count(self) -> int:
        return self._applied_count

    @property
    def total_profit(self) -> Decimal:
        return self._current - self._initial

    def get_summary(self) -> dict:
        return {
            "initial_budget": str(self._initial),
            "current_budget": str(self._current),
            "total_profit": str(self.total_profit),
            "applied_count": self._applied_count,
        }
