"""RSI threshold signal."""

from collections.abc import Sequence

from upbit_autotrader.core.types import Signal
from upbit_autotrader.indicators.technical import last, rsi
from upbit_autotrader.strategy.signals.base import SignalSource


class RSISignal(SignalSource):
    """BUY below the oversold level, SELL above the overbought level."""

    def __init__(
        self,
        period: int = 14,
        oversold: float = 30.0,
        overbought: float = 70.0,
        enabled: bool = True,
    ) -> None:
        """Initialize RSI signal source.

        Args:
            period: RSI calculation period
            oversold: RSI level for oversold (default: 30)
            overbought: RSI level for overbought (default: 70)
            enabled: Whether the source votes
        """
        super().__init__(name="rsi", enabled=enabled)
        self._period = period
        self._oversold = oversold
        self._overbought = overbought

    @property
    def min_history(self) -> int:
        return self._period + 1

    def _compute(
        self, closes: Sequence[float]
    ) -> tuple[Signal | None, dict[str, float | None]]:
        value = last(rsi(closes, self._period))
        values = {"rsi": value}
        if value is None:
            return None, values
        # No gains and no losses over the period reads as 100; treat as neutral
        if len(set(closes[-(self._period + 1):])) == 1:
            return Signal.HOLD, values
        if value < self._oversold:
            return Signal.BUY, values
        if value > self._overbought:
            return Signal.SELL, values
        return Signal.HOLD, values
