"""Risk manager: size orders and force exits."""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from upbit_autotrader.core.errors import ValidationError
from upbit_autotrader.core.types import OrderType, Side, Signal
from upbit_autotrader.execution.models import AccountBalance, Order, Position, Rejection, format_decimal
from upbit_autotrader.risk.rules import ExitRule, StopLossRule, TakeProfitRule
from upbit_autotrader.strategy.signals.types import Decision

logger = logging.getLogger(__name__)


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValidationError(f"{name} is not a number: {value!r}") from e


@dataclass(frozen=True)
class RiskConfig:
    """Per-session risk policy.

    Ratios are fractions in (0, 1]; construction fails otherwise.
    """

    max_order_amount: Decimal = Decimal("100000")
    portfolio_ratio: Decimal = Decimal("0.1")
    stop_loss_pct: Decimal = Decimal("0.05")
    take_profit_pct: Decimal = Decimal("0.1")

    def __post_init__(self) -> None:
        for name in ("max_order_amount", "portfolio_ratio", "stop_loss_pct", "take_profit_pct"):
            object.__setattr__(self, name, _decimal(getattr(self, name), name))

        if self.max_order_amount <= 0:
            raise ValidationError(f"max_order_amount must be positive, got {self.max_order_amount}")
        for name in ("portfolio_ratio", "stop_loss_pct", "take_profit_pct"):
            value = getattr(self, name)
            if not Decimal("0") < value <= Decimal("1"):
                raise ValidationError(f"{name} must be in (0, 1], got {value}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "max_order_amount": format_decimal(self.max_order_amount),
            "portfolio_ratio": format_decimal(self.portfolio_ratio),
            "stop_loss_pct": format_decimal(self.stop_loss_pct),
            "take_profit_pct": format_decimal(self.take_profit_pct),
        }


class RiskManager:
    """Turns decisions into orders or rejections.

    Only market orders are produced: a buy spends a quote notional, a sell
    closes the whole position.
    """

    def __init__(self, min_order_amount: Decimal = Decimal("5000"), allow_pyramiding: bool = False) -> None:
        """Initialize risk manager.

        Args:
            min_order_amount: Smallest buy notional the exchange accepts
            allow_pyramiding: Whether to buy again while a position is open
        """
        self._min_order_amount = Decimal(min_order_amount)
        self._allow_pyramiding = allow_pyramiding

    @staticmethod
    def exit_rules(risk: RiskConfig) -> list[ExitRule]:
        """Exit rules for a risk policy, in checking order."""
        return [
            StopLossRule(stop_loss_ratio=risk.stop_loss_pct),
            TakeProfitRule(take_profit_ratio=risk.take_profit_pct),
        ]

    def check_exit(self, position: Position | None, price: Decimal, risk: RiskConfig) -> Order | None:
        """Forced full-volume market sell when stop loss or take profit triggers."""
        if position is None or position.volume <= 0:
            return None

        for rule in self.exit_rules(risk):
            reason = rule.evaluate(position, price)
            if reason:
                logger.info(f"{position.market}: {reason}")
                return Order(
                    market=position.market,
                    side=Side.SELL,
                    order_type=OrderType.MARKET,
                    volume=position.volume,
                    reason=reason,
                )
        return None

    def authorize(
        self,
        decision: Decision,
        balance: AccountBalance | None,
        risk: RiskConfig,
        position: Position | None,
        market: str,
    ) -> Order | Rejection:
        """Size an order for a decision, or explain why not."""
        signal = decision.signal

        if signal == Signal.HOLD:
            return Rejection("hold", signal)

        if signal == Signal.SELL:
            if position is None or position.volume <= 0:
                return Rejection("no open position to sell", signal)
            return Order(
                market=market,
                side=Side.SELL,
                order_type=OrderType.MARKET,
                volume=position.volume,
                reason=decision.reason,
            )

        if position is not None and position.volume > 0 and not self._allow_pyramiding:
            return Rejection("position already open", signal)
        if balance is None:
            return Rejection("balance unavailable", signal)

        notional = min(risk.max_order_amount, balance.quote_available * risk.portfolio_ratio)
        if notional <= 0 or notional < self._min_order_amount:
            return Rejection(
                f"order amount {format_decimal(notional)} below minimum "
                f"{format_decimal(self._min_order_amount)}",
                signal,
            )

        return Order(
            market=market,
            side=Side.BUY,
            order_type=OrderType.MARKET,
            price=notional,
            reason=decision.reason,
        )
