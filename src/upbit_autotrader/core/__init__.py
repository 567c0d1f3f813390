"""Core types, errors and session control."""

from upbit_autotrader.core.errors import (
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    TradingError,
    UpstreamError,
    ValidationError,
)
from upbit_autotrader.core.types import CandleUnit, OrderType, SessionStatus, Side, Signal

__all__ = [
    "AuthError",
    "CandleUnit",
    "ConflictError",
    "NetworkError",
    "NotFoundError",
    "OrderType",
    "RateLimitError",
    "SessionStatus",
    "Side",
    "Signal",
    "TradingError",
    "UpstreamError",
    "ValidationError",
]
