"""Moving average crossover signal.

BUY when the short MA crosses above the long MA between the last two
candles, SELL on the opposite cross.
"""

from collections.abc import Sequence

from upbit_autotrader.core.types import Signal
from upbit_autotrader.indicators.technical import last, sma
from upbit_autotrader.strategy.signals.base import SignalSource


class MACrossoverSignal(SignalSource):
    """Detects short/long SMA crossovers."""

    def __init__(self, short_period: int = 20, long_period: int = 50, enabled: bool = True) -> None:
        super().__init__(name="ma_crossover", enabled=enabled)
        self._short_period = short_period
        self._long_period = long_period

    @property
    def min_history(self) -> int:
        # Long MA on both the previous and the current candle
        return self._long_period + 1

    def _compute(
        self, closes: Sequence[float]
    ) -> tuple[Signal | None, dict[str, float | None]]:
        short_ma = sma(closes, self._short_period)
        long_ma = sma(closes, self._long_period)

        prev_short, curr_short = last(short_ma, 2), last(short_ma)
        prev_long, curr_long = last(long_ma, 2), last(long_ma)
        values = {"short_ma": curr_short, "long_ma": curr_long}

        if None in (prev_short, curr_short, prev_long, curr_long):
            return None, values

        if prev_short <= prev_long and curr_short > curr_long:
            return Signal.BUY, values
        if prev_short >= prev_long and curr_short < curr_long:
            return Signal.SELL, values
        return Signal.HOLD, values
