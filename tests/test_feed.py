"""Tests for market data models and the feed."""

import asyncio
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from upbit_autotrader.core.errors import ValidationError
from upbit_autotrader.core.types import CandleUnit
from upbit_autotrader.data.feed import CandleWindow, MarketDataFeed, parse_candle_unit
from upbit_autotrader.data.models import Candle, Ticker, split_market, validate_market


class TestMarketCodes:
    """Test market code validation."""

    @pytest.mark.parametrize("market", ["KRW-BTC", "BTC-ETH", "USDT-1INCH"])
    def test_valid(self, market):
        assert validate_market(market) == market

    @pytest.mark.parametrize("market", ["", "krw-btc", "KRWBTC", "KRW-", "KRW_BTC", None])
    def test_invalid(self, market):
        with pytest.raises(ValidationError):
            validate_market(market)

    def test_split(self):
        assert split_market("KRW-BTC") == ("KRW", "BTC")


class TestModels:
    """Test parsing of exchange payloads."""

    def test_candle_from_exchange(self):
        candle = Candle.from_exchange(
            {
                "candle_date_time_utc": "2024-01-01T09:00:00",
                "opening_price": 100,
                "high_price": 110.5,
                "low_price": 95,
                "trade_price": 105,
                "candle_acc_trade_volume": 12.25,
            }
        )
        assert candle.timestamp == datetime(2024, 1, 1, 9, tzinfo=UTC)
        assert candle.high == Decimal("110.5")
        assert candle.close == Decimal("105")
        assert candle.volume == Decimal("12.25")

    def test_ticker_from_exchange(self):
        ticker = Ticker.from_exchange(
            {"market": "KRW-BTC", "trade_price": 50000000, "timestamp": 1704067200000}
        )
        assert ticker.trade_price == Decimal("50000000")
        assert ticker.timestamp == datetime(2024, 1, 1, tzinfo=UTC)


class TestCandleUnits:
    """Test granularity parsing."""

    def test_known_units(self):
        assert parse_candle_unit("minutes/15") is CandleUnit.MINUTE_15
        assert parse_candle_unit("days") is CandleUnit.DAY
        assert CandleUnit.MINUTE_240.path == "/candles/minutes/240"

    @pytest.mark.parametrize("unit", ["minutes/2", "weeks", "hours/1", ""])
    def test_unknown_units(self, unit):
        with pytest.raises(ValidationError):
            parse_candle_unit(unit)


class TestMarketDataFeed:
    """Test feed fetching and ordering."""

    def test_candles_returned_oldest_first(self, exchange):
        exchange.closes = [float(i) for i in range(1, 11)]
        feed = MarketDataFeed(exchange.client())

        candles = asyncio.run(feed.candles("KRW-BTC", "minutes/1", 5))

        assert [float(c.close) for c in candles] == [6.0, 7.0, 8.0, 9.0, 10.0]
        assert candles[0].timestamp < candles[-1].timestamp

    @pytest.mark.parametrize("count", [0, 201, -1])
    def test_count_bounds(self, exchange, count):
        feed = MarketDataFeed(exchange.client())
        with pytest.raises(ValidationError):
            asyncio.run(feed.candles("KRW-BTC", "minutes/1", count))
        assert exchange.requests == []

    def test_bad_granularity_rejected_before_request(self, exchange):
        feed = MarketDataFeed(exchange.client())
        with pytest.raises(ValidationError):
            asyncio.run(feed.candles("KRW-BTC", "minutes/7", 10))
        assert exchange.requests == []

    def test_ticker(self, exchange):
        exchange.price = 123.5
        feed = MarketDataFeed(exchange.client())
        ticker = asyncio.run(feed.ticker("KRW-ETH"))
        assert ticker.market == "KRW-ETH"
        assert ticker.trade_price == Decimal("123.5")

    def test_no_caching(self, exchange):
        feed = MarketDataFeed(exchange.client())
        asyncio.run(feed.ticker("KRW-BTC"))
        asyncio.run(feed.ticker("KRW-BTC"))
        assert len(exchange.requests) == 2


class TestCandleWindow:
    """Test the rolling candle buffer."""

    def test_appends_and_trims(self, make_candles):
        window = CandleWindow(maxlen=3)
        window.merge(make_candles([1, 2, 3, 4, 5]))
        assert window.closes() == [3.0, 4.0, 5.0]

    def test_in_progress_candle_replaced(self, make_candles):
        window = CandleWindow(maxlen=10)
        window.merge(make_candles([1, 2, 3]))

        updated = make_candles([1, 2, 9, 4])
        window.merge(updated[2:])

        assert window.closes() == [1.0, 2.0, 9.0, 4.0]
        assert len(window) == 4

    def test_older_candles_ignored(self, make_candles):
        candles = make_candles([1, 2, 3])
        window = CandleWindow(maxlen=10)
        window.merge(candles[1:])
        window.merge(candles[:1])
        assert window.closes() == [2.0, 3.0]
