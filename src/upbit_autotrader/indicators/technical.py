"""Technical indicators using talipp library.

Each helper takes a chronological list of closes and returns the full
output series, aligned with the input; entries are None until the
indicator has enough history.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from talipp.indicators import BB, RSI, SMA


@dataclass(frozen=True)
class Bands:
    """Bollinger band values for one candle."""

    lower: float
    middle: float
    upper: float


def sma(closes: Sequence[float], period: int) -> list[float | None]:
    """Simple moving average."""
    ma = SMA(period, list(closes))
    return [float(v) if v is not None else None for v in ma.output_values]


def rsi(closes: Sequence[float], period: int = 14) -> list[float | None]:
    """Relative Strength Index with Wilder smoothing."""
    indicator = RSI(period, list(closes))
    return [float(v) if v is not None else None for v in indicator.output_values]


def bollinger(
    closes: Sequence[float], period: int = 20, std_dev: float = 2.0
) -> list[Bands | None]:
    """Bollinger bands (SMA middle, +/- std_dev standard deviations)."""
    bb = BB(period, std_dev, list(closes))
    return [
        Bands(lower=float(v.lb), middle=float(v.cb), upper=float(v.ub)) if v is not None else None
        for v in bb.output_values
    ]


def last(series: Sequence[float | Bands | None], offset: int = 1):
    """Value `offset` places from the end, or None when missing."""
    if len(series) < offset:
        return None
    return series[-offset]
