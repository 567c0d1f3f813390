"""Global type definitions."""

from enum import Enum


class Side(str, Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def wire(self) -> str:
        """Exchange representation (bid/ask)."""
        return "bid" if self is Side.BUY else "ask"

    @classmethod
    def from_wire(cls, value: str) -> "Side":
        mapping = {"bid": cls.BUY, "ask": cls.SELL}
        return mapping[value]


class OrderType(str, Enum):
    """Order type."""

    LIMIT = "LIMIT"
    MARKET = "MARKET"


class Signal(str, Enum):
    """Indicator or combined trade signal."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class SessionStatus(str, Enum):
    """Trading session lifecycle status."""

    STOPPED = "STOPPED"
    RUNNING = "RUNNING"
    ERROR = "ERROR"


class CandleUnit(str, Enum):
    """Candle granularities supported by the exchange."""

    MINUTE_1 = "minutes/1"
    MINUTE_3 = "minutes/3"
    MINUTE_5 = "minutes/5"
    MINUTE_10 = "minutes/10"
    MINUTE_15 = "minutes/15"
    MINUTE_30 = "minutes/30"
    MINUTE_60 = "minutes/60"
    MINUTE_240 = "minutes/240"
    DAY = "days"

    @property
    def path(self) -> str:
        """Request path for this granularity."""
        return f"/candles/{self.value}"
