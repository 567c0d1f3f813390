"""Exit rules checked against the open position every cycle.

A triggered rule forces a full-volume market sell without consulting the
signal evaluator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal

from upbit_autotrader.execution.models import Position


@dataclass
class ExitRule(ABC):
    """Abstract exit rule base class."""

    name: str

    @abstractmethod
    def evaluate(self, position: Position | None, price: Decimal) -> str | None:
        """Evaluate the rule.

        Args:
            position: Open position (if any)
            price: Current trade price

        Returns:
            Exit reason if triggered, None otherwise
        """
        ...


@dataclass
class StopLossRule(ExitRule):
    """Fixed stop loss as a fraction of the entry price."""

    name: str = "stop_loss"
    stop_loss_ratio: Decimal = Decimal("0.05")

    def evaluate(self, position: Position | None, price: Decimal) -> str | None:
        if not position or position.avg_price <= 0:
            return None

        pnl = position.pnl_ratio(price)
        if pnl <= -self.stop_loss_ratio:
            return f"Stop loss triggered: PnL {pnl * 100:.2f}% <= -{self.stop_loss_ratio * 100}%"
        return None


@dataclass
class TakeProfitRule(ExitRule):
    """Fixed take profit as a fraction of the entry price."""

    name: str = "take_profit"
    take_profit_ratio: Decimal = Decimal("0.1")

    def evaluate(self, position: Position | None, price: Decimal) -> str | None:
        if not position or position.avg_price <= 0:
            return None

        pnl = position.pnl_ratio(price)
        if pnl >= self.take_profit_ratio:
            return f"Take profit triggered: PnL {pnl * 100:.2f}% >= {self.take_profit_ratio * 100}%"
        return None
