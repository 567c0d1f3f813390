"""Technical indicators."""

from upbit_autotrader.indicators.technical import bollinger, rsi, sma

__all__ = ["bollinger", "rsi", "sma"]
