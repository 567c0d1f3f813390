"""Upbit REST API client with signed requests."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from upbit_autotrader.core.errors import AuthError, NetworkError, RateLimitError, UpstreamError
from upbit_autotrader.core.types import CandleUnit
from upbit_autotrader.exchange.signing import Credentials, auth_headers
from upbit_autotrader.execution.models import Order

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.upbit.com/v1"


def _error_message(response: httpx.Response) -> str:
    """Extract the exchange's error message, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return response.text or response.reason_phrase


def _retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


class UpbitClient:
    """Upbit REST API client.

    Every call goes straight to the exchange. Failures are mapped to the
    engine's error taxonomy and never retried here; order placement must
    not be repeated blindly.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Exchange API root
            timeout: Per-request timeout in seconds
            http_client: Pre-configured httpx client (tests inject a MockTransport)
        """
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(base_url=self._base_url, timeout=timeout)

    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._client.aclose()

    async def call(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        credentials: Credentials | None = None,
    ) -> Any:
        """Perform one request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path relative to the API root (e.g. "/accounts")
            params: Query parameters (GET/DELETE) or JSON body (POST)
            credentials: Key pair; when empty no auth headers are sent

        Raises:
            AuthError: 401/403
            RateLimitError: 429, with retry_after when provided
            UpstreamError: Any other non-2xx status
            NetworkError: Transport failure
        """
        method = method.upper()
        payload = {k: v for k, v in (params or {}).items() if v is not None}
        headers = auth_headers(credentials, payload) if credentials else {}

        request_kwargs: dict[str, Any] = {"headers": headers}
        if method in ("GET", "DELETE"):
            request_kwargs["params"] = payload or None
        else:
            request_kwargs["json"] = payload

        try:
            response = await self._client.request(method, path, **request_kwargs)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} transport failure: {e}")
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError(_error_message(response))
        if response.status_code == 429:
            retry_after = _retry_after(response)
            logger.warning(f"{method} {path} rate limited (retry_after={retry_after})")
            raise RateLimitError(_error_message(response), retry_after=retry_after)
        if not response.is_success:
            raise UpstreamError(
                f"{method} {path} -> {response.status_code}: {_error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"{method} {path} returned invalid JSON", status_code=response.status_code
            ) from e

    async def get_accounts(self, credentials: Credentials) -> list[dict[str, Any]]:
        """Get all account balances."""
        return await self.call("GET", "/accounts", credentials=credentials)

    async def get_markets(self) -> list[dict[str, Any]]:
        """Get the list of tradable markets (no authentication)."""
        return await self.call("GET", "/market/all")

    async def get_ticker(self, market: str) -> dict[str, Any]:
        """Get the current ticker for one market."""
        data = await self.call("GET", "/ticker", {"markets": market})
        if not data:
            raise UpstreamError(f"No ticker returned for {market}")
        return data[0]

    async def get_candles(
        self, market: str, unit: CandleUnit, count: int
    ) -> list[dict[str, Any]]:
        """Get candles, most recent first as the exchange returns them."""
        return await self.call("GET", unit.path, {"market": market, "count": count})

    async def get_order_chance(self, market: str, credentials: Credentials) -> dict[str, Any]:
        """Get order constraints and balances for a market."""
        return await self.call("GET", "/orders/chance", {"market": market}, credentials)

    async def place_order(self, order: Order, credentials: Credentials) -> dict[str, Any]:
        """Validate and submit an order.

        Raises:
            ValidationError: Before any request when required fields are missing
        """
        params = order.to_params()
        logger.info(
            f"Placing order {params['side']} {params['ord_type']} on {order.market} "
            f"for user {credentials.user_id}"
        )
        return await self.call("POST", "/orders", params, credentials)
