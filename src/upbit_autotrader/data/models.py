"""Data models for market data."""

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from upbit_autotrader.core.errors import ValidationError

MARKET_PATTERN = re.compile(r"^[A-Z0-9]+-[A-Z0-9]+$")


def validate_market(market: str) -> str:
    """Validate a QUOTE-BASE market code (e.g. KRW-BTC).

    Raises:
        ValidationError: If the code is not of the QUOTE-BASE form
    """
    if not isinstance(market, str) or not MARKET_PATTERN.match(market):
        raise ValidationError(f"Invalid market code: {market!r} (expected QUOTE-BASE, e.g. KRW-BTC)")
    return market


def split_market(market: str) -> tuple[str, str]:
    """Split a market code into (quote, base) currencies."""
    quote, base = validate_market(market).split("-", 1)
    return quote, base


def _decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    return Decimal(str(value))


def _parse_utc(value: str) -> datetime:
    # Exchange timestamps are naive ISO strings in UTC
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class Candle:
    """OHLCV summary for one time bucket."""

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Decimal

    @classmethod
    def from_exchange(cls, data: dict[str, Any]) -> "Candle":
        """Build a candle from an exchange candle object."""
        return cls(
            timestamp=_parse_utc(data["candle_date_time_utc"]),
            open=_decimal(data.get("opening_price")),
            high=_decimal(data.get("high_price")),
            low=_decimal(data.get("low_price")),
            close=_decimal(data.get("trade_price")),
            volume=_decimal(data.get("candle_acc_trade_volume")),
        )


@dataclass(frozen=True)
class Ticker:
    """Current-price snapshot for a market."""

    market: str
    trade_price: Decimal
    high_price: Decimal
    low_price: Decimal
    acc_trade_volume_24h: Decimal
    signed_change_rate: Decimal
    timestamp: datetime | None = None

    @classmethod
    def from_exchange(cls, data: dict[str, Any]) -> "Ticker":
        """Build a ticker from an exchange ticker object."""
        ts = data.get("timestamp")
        return cls(
            market=data.get("market", ""),
            trade_price=_decimal(data.get("trade_price")),
            high_price=_decimal(data.get("high_price")),
            low_price=_decimal(data.get("low_price")),
            acc_trade_volume_24h=_decimal(data.get("acc_trade_volume_24h")),
            signed_change_rate=_decimal(data.get("signed_change_rate")),
            timestamp=datetime.fromtimestamp(ts / 1000, tz=UTC) if ts else None,
        )
