"""Pytest configuration and shared fixtures."""

import asyncio
import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import httpx
import pytest

from upbit_autotrader.data.models import Candle
from upbit_autotrader.exchange.client import UpbitClient
from upbit_autotrader.exchange.signing import Credentials

BASE_URL = "https://api.upbit.test/v1"
START = datetime(2024, 1, 1, tzinfo=UTC)


def candle_payload(closes: list[float], market: str = "KRW-BTC") -> list[dict]:
    """Exchange candle objects for the closes, newest first."""
    items = []
    for i, close in enumerate(closes):
        ts = START + timedelta(minutes=i)
        items.append(
            {
                "market": market,
                "candle_date_time_utc": ts.strftime("%Y-%m-%dT%H:%M:%S"),
                "opening_price": close,
                "high_price": close,
                "low_price": close,
                "trade_price": close,
                "candle_acc_trade_volume": 1.5,
            }
        )
    return list(reversed(items))


class FakeExchange:
    """In-memory exchange served through httpx.MockTransport."""

    def __init__(self, closes: list[float] | None = None, price: float = 100.0) -> None:
        self.closes = list(closes) if closes is not None else [100.0, 101.0] * 30
        self.price = price
        self.accounts = [
            {"currency": "KRW", "balance": "1000000", "locked": "0", "avg_buy_price": "0"}
        ]
        self.requests: list[httpx.Request] = []
        self.queued: dict[str, list[httpx.Response | Exception]] = {}
        self.delay = 0.0

    def queue(self, path: str, *responses: httpx.Response | Exception) -> None:
        """Serve these responses (or raise these errors) before the normal ones."""
        self.queued.setdefault(path, []).extend(responses)

    def paths(self) -> list[str]:
        return [r.url.path.removeprefix("/v1") for r in self.requests]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)

        path = request.url.path.removeprefix("/v1")
        pending = self.queued.get(path)
        if pending:
            item = pending.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        if path.startswith("/candles/"):
            count = int(request.url.params.get("count", "1"))
            market = request.url.params.get("market", "KRW-BTC")
            return httpx.Response(200, json=candle_payload(self.closes[-count:], market))
        if path == "/ticker":
            market = request.url.params.get("markets", "KRW-BTC")
            return httpx.Response(
                200,
                json=[
                    {
                        "market": market,
                        "trade_price": self.price,
                        "high_price": self.price,
                        "low_price": self.price,
                        "acc_trade_volume_24h": 10.0,
                        "signed_change_rate": 0.01,
                        "timestamp": 1704067200000,
                    }
                ],
            )
        if path == "/accounts":
            return httpx.Response(200, json=self.accounts)
        if path == "/market/all":
            return httpx.Response(200, json=[{"market": "KRW-BTC", "korean_name": "비트코인"}])
        if path == "/orders/chance":
            return httpx.Response(200, json={"market": {"id": request.url.params.get("market")}})
        if path == "/orders" and request.method == "POST":
            body = json.loads(request.content)
            return httpx.Response(
                201,
                json={
                    "uuid": f"order-{len(self.requests)}",
                    "side": body["side"],
                    "ord_type": body["ord_type"],
                    "market": body["market"],
                    "state": "wait",
                    "executed_volume": "0",
                },
            )
        return httpx.Response(404, json={"error": {"name": "not_found", "message": "not found"}})

    def client(self) -> UpbitClient:
        http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(self.handler))
        return UpbitClient(BASE_URL, http_client=http)


@pytest.fixture
def exchange() -> FakeExchange:
    return FakeExchange()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials("access-key-0001", "secret-key-0001")


@pytest.fixture
def make_candles() -> Callable[[list[float]], list[Candle]]:
    """Chronological candles, one minute apart, for the given closes."""

    def _make(closes: list[float]) -> list[Candle]:
        return [
            Candle(
                timestamp=START + timedelta(minutes=i),
                open=Decimal(str(c)),
                high=Decimal(str(c)),
                low=Decimal(str(c)),
                close=Decimal(str(c)),
                volume=Decimal("1"),
            )
            for i, c in enumerate(closes)
        ]

    return _make
