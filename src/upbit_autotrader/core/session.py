"""Trading session state.

One session trades one market for one user. The session holds the
credentials for as long as it lives; `snapshot()` is the only view that
leaves the process and never includes them.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from upbit_autotrader.core.types import SessionStatus, Side
from upbit_autotrader.data.feed import CandleWindow
from upbit_autotrader.exchange.signing import Credentials
from upbit_autotrader.execution.models import (
    AccountBalance,
    Fill,
    Order,
    Position,
    Rejection,
    format_decimal,
)
from upbit_autotrader.risk.manager import RiskConfig
from upbit_autotrader.strategy.evaluator import StrategyConfig
from upbit_autotrader.strategy.signals.types import Decision

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


def _now() -> datetime:
    return datetime.now(UTC)


def _append_capped(history: list[dict[str, Any]], entry: dict[str, Any]) -> None:
    history.append(entry)
    if len(history) > HISTORY_LIMIT:
        del history[: len(history) - HISTORY_LIMIT]


@dataclass(eq=False)
class TradingSession:
    """Live state of one (user, market) trading session."""

    user_id: str
    market: str
    credentials: Credentials | None
    strategy: StrategyConfig
    risk: RiskConfig
    interval: float
    test_mode: bool
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: SessionStatus = SessionStatus.RUNNING
    created_at: datetime = field(default_factory=_now)
    stopped_at: datetime | None = None
    last_cycle_at: datetime | None = None
    last_decision: Decision | None = None
    last_price: Decimal | None = None
    open_position: Position | None = None
    cycles_run: int = 0
    skipped_cycles: int = 0
    last_error: dict[str, Any] | None = None
    orders: list[dict[str, Any]] = field(default_factory=list)
    rejections: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    window: CandleWindow | None = None

    # Scheduling
    scheduler_task: asyncio.Task | None = field(default=None, repr=False)
    cycle_task: asyncio.Task | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.window is None:
            self.window = CandleWindow(self.strategy.lookback)

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.market)

    @property
    def is_running(self) -> bool:
        return self.status == SessionStatus.RUNNING

    def record_order(self, order: Order, fill: Fill) -> None:
        """Record a submitted order and move the position accordingly."""
        _append_capped(
            self.orders,
            {"at": _now().isoformat(), "order": order.to_dict(), "fill": fill.to_dict()},
        )
        self.apply_fill(fill)

    def apply_fill(self, fill: Fill) -> None:
        if fill.side == Side.SELL:
            remaining = (self.open_position.volume if self.open_position else Decimal("0")) - fill.volume
            if remaining <= 0:
                self.open_position = None
            else:
                self.open_position.volume = remaining
            return

        if fill.volume <= 0:
            return
        if self.open_position is None:
            self.open_position = Position(self.market, fill.volume, fill.price)
            return

        # Pyramiding: volume-weighted entry
        pos = self.open_position
        total = pos.volume + fill.volume
        pos.avg_price = (pos.avg_price * pos.volume + fill.price * fill.volume) / total
        pos.volume = total

    def reconcile(self, balance: AccountBalance) -> None:
        """Align the open position with the exchange's account balance."""
        if balance.base_volume <= 0:
            if self.open_position is not None:
                logger.info(f"{self.market}: no {balance.base_currency} held, clearing position")
            self.open_position = None
            return

        if self.open_position is None:
            self.open_position = Position(self.market, balance.base_volume, balance.base_avg_price)
        else:
            self.open_position.volume = balance.base_volume
            if balance.base_avg_price > 0:
                self.open_position.avg_price = balance.base_avg_price

    def record_rejection(self, rejection: Rejection) -> None:
        _append_capped(self.rejections, {"at": _now().isoformat(), **rejection.to_dict()})

    def record_skip(self, reason: str) -> None:
        self.skipped_cycles += 1
        _append_capped(self.skipped, {"at": _now().isoformat(), "reason": reason})

    def record_error(self, kind: str, message: str) -> None:
        self.last_error = {"at": _now().isoformat(), "kind": kind, "message": message}

    def drop_credentials(self) -> None:
        self.credentials = None

    def snapshot(self) -> dict[str, Any]:
        """JSON-safe view of the session, without credentials."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "market": self.market,
            "status": self.status.value,
            "is_running": self.is_running,
            "test_mode": self.test_mode,
            "interval": self.interval,
            "created_at": self.created_at.isoformat(),
            "stopped_at": self.stopped_at.isoformat() if self.stopped_at else None,
            "last_cycle_at": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
            "last_price": format_decimal(self.last_price) if self.last_price is not None else None,
            "last_decision": self.last_decision.to_dict() if self.last_decision else None,
            "open_position": self.open_position.to_dict() if self.open_position else None,
            "cycles_run": self.cycles_run,
            "skipped_cycles": self.skipped_cycles,
            "last_error": self.last_error,
            "strategy": self.strategy.to_dict(),
            "risk": self.risk.to_dict(),
            "orders": list(self.orders),
            "rejections": list(self.rejections),
            "skipped": list(self.skipped),
        }
