"""Bollinger band touch signal."""

from collections.abc import Sequence

from upbit_autotrader.core.types import Signal
from upbit_autotrader.indicators.technical import bollinger, last
from upbit_autotrader.strategy.signals.base import SignalSource


class BollingerBandSignal(SignalSource):
    """BUY at or below the lower band, SELL at or above the upper band."""

    def __init__(self, period: int = 20, std_dev: float = 2.0, enabled: bool = True) -> None:
        super().__init__(name="bollinger", enabled=enabled)
        self._period = period
        self._std_dev = std_dev

    @property
    def min_history(self) -> int:
        return self._period

    def _compute(
        self, closes: Sequence[float]
    ) -> tuple[Signal | None, dict[str, float | None]]:
        bands = last(bollinger(closes, self._period, self._std_dev))
        close = closes[-1]
        if bands is None:
            return None, {"close": close}

        values = {"lower": bands.lower, "middle": bands.middle, "upper": bands.upper, "close": close}
        # Zero-width bands on a flat series carry no signal
        if bands.upper == bands.lower:
            return Signal.HOLD, values
        if close <= bands.lower:
            return Signal.BUY, values
        if close >= bands.upper:
            return Signal.SELL, values
        return Signal.HOLD, values
