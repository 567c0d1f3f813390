"""Order executors: live exchange submission and dry-run simulation."""

import logging
import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

from upbit_autotrader.core.errors import UpstreamError
from upbit_autotrader.core.types import Side
from upbit_autotrader.exchange.client import UpbitClient
from upbit_autotrader.exchange.signing import Credentials
from upbit_autotrader.execution.models import Fill, Order, format_decimal

logger = logging.getLogger(__name__)


def _wire_decimal(data: dict[str, Any], key: str) -> Decimal | None:
    value = data.get(key)
    if value in (None, ""):
        return None
    return Decimal(str(value))


class Executor(ABC):
    """Submits authorized orders."""

    @abstractmethod
    async def submit(self, order: Order, credentials: Credentials, price: Decimal) -> Fill:
        """Submit an order.

        Args:
            order: Validated market order
            credentials: Session key pair
            price: Last trade price, used to estimate volume and fill price

        Returns:
            Fill describing what was (or is expected to be) executed
        """
        ...


class LiveExecutor(Executor):
    """Sends orders to the exchange."""

    def __init__(self, client: UpbitClient) -> None:
        self._client = client

    async def submit(self, order: Order, credentials: Credentials, price: Decimal) -> Fill:
        response = await self._client.place_order(order, credentials)
        order_id = response.get("uuid")
        if not order_id:
            raise UpstreamError(f"Order response without uuid for {order.market}")

        # Market orders are acknowledged before they fill; estimate from the last price
        volume = _wire_decimal(response, "executed_volume") or Decimal("0")
        if volume <= 0:
            volume = order.volume if order.volume is not None else (order.price or Decimal("0")) / price

        logger.info(
            f"Order {order_id} accepted: {order.side.value} {format_decimal(volume)} "
            f"{order.market} @ ~{format_decimal(price)}"
        )
        return Fill(
            order_id=order_id,
            side=order.side,
            volume=volume,
            price=price,
            state=response.get("state"),
        )


class DryRunExecutor(Executor):
    """Simulates an immediate fill at the last trade price.

    No request reaches the exchange.
    """

    async def submit(self, order: Order, credentials: Credentials, price: Decimal) -> Fill:
        order.validate()
        if price <= 0:
            raise UpstreamError(f"No trade price to simulate a fill on {order.market}")

        if order.side == Side.BUY:
            volume = order.volume if order.volume is not None else order.price / price
        else:
            volume = order.volume

        order_id = f"dry_{uuid.uuid4().hex[:12]}"
        logger.info(
            f"[DRY RUN] Filled {order.side.value} {format_decimal(volume)} {order.market} "
            f"@ {format_decimal(price)}"
        )
        return Fill(
            order_id=order_id,
            side=order.side,
            volume=volume,
            price=price,
            simulated=True,
            state="done",
        )
