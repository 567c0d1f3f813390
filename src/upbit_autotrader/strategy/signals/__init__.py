"""Per-indicator signal sources."""

from upbit_autotrader.strategy.signals.base import SignalSource
from upbit_autotrader.strategy.signals.bollinger import BollingerBandSignal
from upbit_autotrader.strategy.signals.ma_crossover import MACrossoverSignal
from upbit_autotrader.strategy.signals.rsi import RSISignal
from upbit_autotrader.strategy.signals.types import Decision, IndicatorResult

__all__ = [
    "BollingerBandSignal",
    "Decision",
    "IndicatorResult",
    "MACrossoverSignal",
    "RSISignal",
    "SignalSource",
]
