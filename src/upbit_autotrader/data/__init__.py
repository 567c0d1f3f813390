"""Market data models.

The feed lives in `upbit_autotrader.data.feed`; it wraps the exchange client,
which depends on these models.
"""

from upbit_autotrader.data.models import Candle, Ticker, split_market, validate_market

__all__ = ["Candle", "Ticker", "split_market", "validate_market"]
