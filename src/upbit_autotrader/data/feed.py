"""Market data feed over the exchange client."""

import logging
from collections import deque
from collections.abc import Iterable

from upbit_autotrader.core.errors import ValidationError
from upbit_autotrader.core.types import CandleUnit
from upbit_autotrader.data.models import Candle, Ticker, validate_market
from upbit_autotrader.exchange.client import UpbitClient

logger = logging.getLogger(__name__)

MAX_CANDLE_COUNT = 200


def parse_candle_unit(value: str | CandleUnit) -> CandleUnit:
    """Parse a granularity such as "minutes/15" or "days".

    Raises:
        ValidationError: If the granularity is not offered by the exchange
    """
    if isinstance(value, CandleUnit):
        return value
    try:
        return CandleUnit(str(value).strip().strip("/"))
    except ValueError as e:
        allowed = ", ".join(u.value for u in CandleUnit)
        raise ValidationError(f"Unsupported candle granularity {value!r} (allowed: {allowed})") from e


class MarketDataFeed:
    """Ticker and candle access with exchange payloads parsed into models.

    Nothing is cached; every call reaches the client.
    """

    def __init__(self, client: UpbitClient) -> None:
        self._client = client

    async def ticker(self, market: str) -> Ticker:
        """Current ticker for a market."""
        validate_market(market)
        data = await self._client.get_ticker(market)
        return Ticker.from_exchange(data)

    async def candles(
        self, market: str, granularity: str | CandleUnit, count: int
    ) -> list[Candle]:
        """Most recent `count` candles, oldest first.

        Raises:
            ValidationError: Bad market, granularity or count
        """
        validate_market(market)
        unit = parse_candle_unit(granularity)
        if not 1 <= count <= MAX_CANDLE_COUNT:
            raise ValidationError(f"count must be between 1 and {MAX_CANDLE_COUNT}, got {count}")

        data = await self._client.get_candles(market, unit, count)
        candles = [Candle.from_exchange(item) for item in data]
        # Exchange returns newest first
        candles.sort(key=lambda c: c.timestamp)
        return candles


class CandleWindow:
    """Rolling chronological candle buffer for one session."""

    def __init__(self, maxlen: int) -> None:
        if maxlen < 1:
            raise ValidationError(f"maxlen must be positive, got {maxlen}")
        self._candles: deque[Candle] = deque(maxlen=maxlen)

    @property
    def maxlen(self) -> int:
        return self._candles.maxlen or 0

    def merge(self, candles: Iterable[Candle]) -> list[Candle]:
        """Merge fetched candles into the window.

        A candle with the timestamp of one already held replaces it (the
        in-progress bucket updates); newer candles are appended. Older
        candles are ignored.

        Returns:
            The window contents, oldest first
        """
        for candle in sorted(candles, key=lambda c: c.timestamp):
            if not self._candles or candle.timestamp > self._candles[-1].timestamp:
                self._candles.append(candle)
                continue
            for i, held in enumerate(self._candles):
                if held.timestamp == candle.timestamp:
                    self._candles[i] = candle
                    break
        return list(self._candles)

    def closes(self) -> list[float]:
        return [float(c.close) for c in self._candles]

    def __len__(self) -> int:
        return len(self._candles)
