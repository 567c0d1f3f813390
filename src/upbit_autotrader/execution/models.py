"""Execution layer data models."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from upbit_autotrader.core.errors import ValidationError
from upbit_autotrader.core.types import OrderType, Side, Signal
from upbit_autotrader.data.models import split_market, validate_market


def format_decimal(value: Decimal) -> str:
    """Fixed-point string without exponent or trailing zeros."""
    text = format(value.normalize(), "f")
    return text or "0"


def _to_decimal(value: Any, name: str) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(f"{name} is not a number: {value!r}") from e


@dataclass
class Order:
    """Order request as authorized by the risk manager or supplied by a caller.

    For MARKET orders the exchange reads `price` as the quote notional of a
    buy and `volume` as the base amount of a sell.
    """

    market: str
    side: Side
    order_type: OrderType
    volume: Decimal | None = None
    price: Decimal | None = None
    reason: str = ""

    def validate(self) -> "Order":
        """Check the order against the exchange's field requirements.

        Raises:
            ValidationError: If a field required for this side/type is missing
        """
        validate_market(self.market)

        needs_volume = self.order_type == OrderType.LIMIT or self.side == Side.SELL
        needs_price = self.order_type == OrderType.LIMIT or self.side == Side.BUY

        if needs_volume and self.volume is None:
            raise ValidationError(
                f"volume is required for {self.order_type.value} {self.side.value} orders"
            )
        if needs_price and self.price is None:
            raise ValidationError(
                f"price is required for {self.order_type.value} {self.side.value} orders"
            )
        if self.volume is not None and self.volume <= 0:
            raise ValidationError(f"volume must be positive, got {self.volume}")
        if self.price is not None and self.price <= 0:
            raise ValidationError(f"price must be positive, got {self.price}")
        return self

    @property
    def ord_type(self) -> str:
        """Exchange order type (limit, price for market buy, market for market sell)."""
        if self.order_type == OrderType.LIMIT:
            return "limit"
        return "price" if self.side == Side.BUY else "market"

    def to_params(self) -> dict[str, str]:
        """Exchange order parameters, in signing order."""
        self.validate()
        params = {"market": self.market, "side": self.side.wire}
        if self.ord_type != "price" and self.volume is not None:
            params["volume"] = format_decimal(self.volume)
        if self.ord_type != "market" and self.price is not None:
            params["price"] = format_decimal(self.price)
        params["ord_type"] = self.ord_type
        return params

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Order":
        """Parse an order in exchange form ({market, side, volume, price, ord_type}).

        Raises:
            ValidationError: If the side or ord_type is unknown
        """
        side_raw = data.get("side")
        try:
            side = Side.from_wire(side_raw)
        except KeyError as e:
            raise ValidationError(f"side must be 'bid' or 'ask', got {side_raw!r}") from e

        ord_type = data.get("ord_type")
        if ord_type == "limit":
            order_type = OrderType.LIMIT
        elif ord_type in ("market", "price"):
            order_type = OrderType.MARKET
            expected = "price" if side == Side.BUY else "market"
            if ord_type != expected:
                raise ValidationError(
                    f"ord_type {ord_type!r} does not match side {side_raw!r} (expected {expected!r})"
                )
        else:
            raise ValidationError(f"ord_type must be limit, market or price, got {ord_type!r}")

        return cls(
            market=str(data.get("market", "")),
            side=side,
            order_type=order_type,
            volume=_to_decimal(data.get("volume"), "volume"),
            price=_to_decimal(data.get("price"), "price"),
        ).validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "market": self.market,
            "side": self.side.value,
            "order_type": self.order_type.value,
            "volume": format_decimal(self.volume) if self.volume is not None else None,
            "price": format_decimal(self.price) if self.price is not None else None,
            "reason": self.reason,
        }


@dataclass
class Rejection:
    """Risk manager refusal to trade."""

    reason: str
    signal: Signal = Signal.HOLD

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason, "signal": self.signal.value}


@dataclass
class Fill:
    """Outcome of a submitted order."""

    order_id: str
    side: Side
    volume: Decimal
    price: Decimal
    simulated: bool = False
    state: str | None = None  # Exchange order state, e.g. "wait" or "done"

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "side": self.side.value,
            "volume": format_decimal(self.volume),
            "price": format_decimal(self.price),
            "simulated": self.simulated,
            "state": self.state,
        }


@dataclass
class Position:
    """Open spot position held by a session."""

    market: str
    volume: Decimal
    avg_price: Decimal
    opened_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def pnl_ratio(self, price: Decimal) -> Decimal:
        """Unrealized P&L as a fraction of the entry price."""
        if self.avg_price <= 0:
            return Decimal("0")
        return (price - self.avg_price) / self.avg_price

    def to_dict(self) -> dict[str, Any]:
        return {
            "market": self.market,
            "volume": format_decimal(self.volume),
            "avg_price": format_decimal(self.avg_price),
            "opened_at": self.opened_at.isoformat(),
        }


@dataclass
class Balance:
    """One currency entry from the accounts endpoint."""

    currency: str
    balance: Decimal
    locked: Decimal = Decimal("0")
    avg_buy_price: Decimal = Decimal("0")

    @classmethod
    def from_exchange(cls, data: dict[str, Any]) -> "Balance":
        return cls(
            currency=str(data.get("currency", "")),
            balance=Decimal(str(data.get("balance") or "0")),
            locked=Decimal(str(data.get("locked") or "0")),
            avg_buy_price=Decimal(str(data.get("avg_buy_price") or "0")),
        )


@dataclass
class AccountBalance:
    """Balances relevant to one market."""

    quote_currency: str
    quote_available: Decimal
    base_currency: str
    base_volume: Decimal = Decimal("0")
    base_avg_price: Decimal = Decimal("0")

    @classmethod
    def for_market(cls, market: str, balances: list[Balance]) -> "AccountBalance":
        """Pick the quote and base entries for a market out of all balances."""
        quote, base = split_market(market)
        by_currency = {b.currency: b for b in balances}
        quote_entry = by_currency.get(quote)
        base_entry = by_currency.get(base)
        return cls(
            quote_currency=quote,
            quote_available=quote_entry.balance if quote_entry else Decimal("0"),
            base_currency=base,
            base_volume=base_entry.balance if base_entry else Decimal("0"),
            base_avg_price=base_entry.avg_buy_price if base_entry else Decimal("0"),
        )
