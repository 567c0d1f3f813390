"""Tests for the HTTP control surface."""

import httpx
import pytest
from fastapi.testclient import TestClient

from upbit_autotrader.api.app import create_app
from upbit_autotrader.config import Config, EngineConfig

KEYS = {"accessKey": "access-key-0001", "secretKey": "secret-key-0001"}

DASHBOARD_CONFIG = {
    "strategy": {
        "useMAStrategy": True,
        "useRSIStrategy": True,
        "useBollingerStrategy": False,
        "requireConfirmation": True,
    },
    "riskManagement": {
        "maxOrderAmount": 50000,
        "portfolioRatio": 0.2,
        "stopLoss": 0.03,
        "takeProfit": 0.08,
    },
    "testMode": True,
    "interval": 60000,
}


@pytest.fixture
def api(exchange):
    config = Config(engine=EngineConfig(interval_seconds=60.0, min_interval_seconds=0.01))
    app = create_app(config, client=exchange.client())
    with TestClient(app) as client:
        yield client


def start(api, market="KRW-BTC", **extra):
    return api.post("/api/trading/start", json={**KEYS, "market": market, **extra})


class TestTradingRoutes:
    """Test session start, stop and status."""

    def test_start_with_dashboard_config(self, api):
        response = start(api, config=DASHBOARD_CONFIG)

        assert response.status_code == 200
        status = response.json()["status"]
        assert status["status"] == "RUNNING"
        assert status["isRunning"] is True
        assert status["interval"] == 60.0
        assert status["strategy"]["use_bollinger"] is False
        assert status["strategy"]["require_confirmation"] is True
        assert status["risk"]["max_order_amount"] == "50000"
        assert status["risk"]["stop_loss_pct"] == "0.03"
        assert "secretKey" not in response.text
        assert KEYS["secretKey"] not in response.text

    def test_start_with_top_level_fields(self, api):
        response = start(
            api,
            strategyConfig={"useMAStrategy": False},
            riskManagement={"portfolioRatio": 0.5},
            testMode=False,
            interval=30,
        )
        status = response.json()["status"]
        assert status["strategy"]["use_ma"] is False
        assert status["risk"]["portfolio_ratio"] == "0.5"
        assert status["test_mode"] is False
        assert status["interval"] == 30.0

    def test_duplicate_start_conflicts(self, api):
        assert start(api).status_code == 200
        response = start(api)
        assert response.status_code == 409
        assert response.json()["error"]["kind"] == "ConflictError"

    def test_start_without_keys_unauthorized(self, api):
        response = api.post("/api/trading/start", json={"market": "KRW-BTC"})
        assert response.status_code == 401
        assert response.json()["error"]["kind"] == "AuthError"

    @pytest.mark.parametrize(
        "extra",
        [
            {"market": "btc"},
            {"riskManagement": {"portfolioRatio": 2}},
            {"strategyConfig": {"maShortPeriod": 60}},
            {"interval": -5},
        ],
    )
    def test_start_invalid_input(self, api, extra):
        response = start(api, **extra)
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"

    def test_malformed_body(self, api):
        response = api.post("/api/trading/start", json={**KEYS})
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"

    def test_stop_without_market_uses_only_session(self, api):
        start(api)
        response = api.post("/api/trading/stop", json=KEYS)
        assert response.status_code == 200
        assert response.json()["status"]["status"] == "STOPPED"
        assert response.json()["status"]["isRunning"] is False

        again = api.post("/api/trading/stop", json={**KEYS, "market": "KRW-BTC"})
        assert again.status_code == 200
        assert again.json()["status"]["status"] == "STOPPED"

    def test_stop_unknown_session(self, api):
        response = api.post("/api/trading/stop", json={**KEYS, "market": "KRW-BTC"})
        assert response.status_code == 404
        assert response.json()["error"]["kind"] == "NotFoundError"

    def test_status_with_body(self, api):
        start(api)
        response = api.request("GET", "/api/trading/status", json=KEYS)
        assert response.status_code == 200
        assert response.json()["status"]["market"] == "KRW-BTC"

    def test_status_with_market_query(self, api):
        start(api, market="KRW-ETH")
        response = api.request("GET", "/api/trading/status?market=KRW-ETH", json=KEYS)
        assert response.json()["status"]["market"] == "KRW-ETH"

    def test_status_without_session_is_null(self, api):
        response = api.request("GET", "/api/trading/status", json=KEYS)
        assert response.status_code == 200
        assert response.json() == {"status": None}

        response = api.request("GET", "/api/trading/status?market=KRW-BTC", json=KEYS)
        assert response.json() == {"status": None}

    def test_status_ambiguous_without_market(self, api):
        start(api, market="KRW-BTC")
        start(api, market="KRW-ETH")
        response = api.request("GET", "/api/trading/status", json=KEYS)
        assert response.status_code == 400

    def test_status_requires_keys(self, api):
        assert api.get("/api/trading/status").status_code == 401

    def test_health_counts_sessions(self, api):
        start(api)
        response = api.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["sessions"]["running"] == 1
        assert body["uptime"].endswith("s")


class TestPassThroughRoutes:
    """Test routes that forward to the exchange."""

    def test_accounts(self, api, exchange):
        response = api.post("/api/accounts", json=KEYS)
        assert response.status_code == 200
        assert response.json()[0]["currency"] == "KRW"
        assert exchange.requests[-1].headers["Access-Key"] == KEYS["accessKey"]

    def test_accounts_requires_keys(self, api, exchange):
        response = api.post("/api/accounts", json={})
        assert response.status_code == 401
        assert exchange.requests == []

    def test_exchange_auth_failure(self, api, exchange):
        exchange.queue("/accounts", httpx.Response(401, json={"error": {"message": "invalid key"}}))
        response = api.post("/api/accounts", json=KEYS)
        assert response.status_code == 401
        assert response.json() == {"error": {"kind": "AuthError", "message": "invalid key"}}

    def test_ticker_is_public(self, api, exchange):
        response = api.post("/api/ticker", json={"market": "KRW-BTC"})
        assert response.status_code == 200
        body = response.json()
        assert body["market"] == "KRW-BTC"
        assert body["trade_price"] == 100.0
        assert "Access-Key" not in exchange.requests[-1].headers

    def test_markets(self, api):
        response = api.get("/api/markets")
        assert response.status_code == 200
        assert response.json()[0]["market"] == "KRW-BTC"

    def test_minute_candles(self, api, exchange):
        response = api.post(
            "/api/candles/minutes", json={"market": "KRW-BTC", "minutes": 15, "count": 3}
        )
        assert response.status_code == 200
        assert len(response.json()) == 3
        assert exchange.paths()[-1] == "/candles/minutes/15"

    def test_day_candles(self, api, exchange):
        response = api.post("/api/candles/days", json={"market": "KRW-BTC", "count": 2})
        assert response.status_code == 200
        assert exchange.paths()[-1] == "/candles/days"

    def test_candle_count_defaults_to_100(self, api, exchange):
        response = api.post("/api/candles/minutes", json={"market": "KRW-BTC"})
        assert response.status_code == 200
        assert exchange.requests[-1].url.params["count"] == "100"
        assert len(response.json()) == 60

    @pytest.mark.parametrize(
        "path,body",
        [
            ("/api/candles/weeks", {"market": "KRW-BTC"}),
            ("/api/candles/minutes", {"market": "KRW-BTC", "minutes": 7}),
            ("/api/candles/days", {"market": "KRW-BTC", "count": 500}),
        ],
    )
    def test_bad_candle_requests(self, api, exchange, path, body):
        response = api.post(path, json=body)
        assert response.status_code == 400
        assert exchange.requests == []

    def test_place_order(self, api, exchange):
        order = {"market": "KRW-BTC", "side": "bid", "price": "10000", "ord_type": "price"}
        response = api.post("/api/orders", json={**KEYS, "order": order})
        assert response.status_code == 200
        assert response.json()["uuid"]
        assert exchange.paths() == ["/orders"]

    def test_invalid_order_not_sent(self, api, exchange):
        order = {"market": "KRW-BTC", "side": "ask", "ord_type": "market"}
        response = api.post("/api/orders", json={**KEYS, "order": order})
        assert response.status_code == 400
        assert exchange.requests == []

    def test_order_chance(self, api, exchange):
        response = api.post("/api/orders/chance", json={**KEYS, "market": "KRW-BTC"})
        assert response.status_code == 200
        assert exchange.requests[-1].url.params["market"] == "KRW-BTC"

    def test_rate_limit_passes_retry_after(self, api, exchange):
        exchange.queue("/market/all", httpx.Response(429, headers={"Retry-After": "4"}))
        response = api.get("/api/markets")
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "4"
        assert response.json()["error"]["kind"] == "RateLimitError"

    def test_network_failure(self, api, exchange):
        exchange.queue("/market/all", httpx.ConnectError("down"))
        response = api.get("/api/markets")
        assert response.status_code == 503
        assert response.json()["error"]["kind"] == "NetworkError"

    def test_upstream_failure(self, api, exchange):
        exchange.queue("/market/all", httpx.Response(500, text="boom"))
        response = api.get("/api/markets")
        assert response.status_code == 502
        assert response.json()["error"]["kind"] == "UpstreamError"
