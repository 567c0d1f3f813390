"""HTTP control surface: session lifecycle and exchange pass-through routes."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Body, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from upbit_autotrader import __version__
from upbit_autotrader.api.schemas import (
    CandlesRequest,
    CredentialsBody,
    OrderChanceRequest,
    OrderRequest,
    SessionRequest,
    StartRequest,
    TickerRequest,
)
from upbit_autotrader.config import Config
from upbit_autotrader.core.controller import SessionController
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
from upbit_autotrader.core.types import CandleUnit
from upbit_autotrader.data.feed import parse_candle_unit
from upbit_autotrader.data.models import validate_market
from upbit_autotrader.exchange.client import UpbitClient
from upbit_autotrader.exchange.signing import Credentials
from upbit_autotrader.execution.models import Order

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[TradingError], int] = {
    AuthError: 401,
    RateLimitError: 429,
    UpstreamError: 502,
    NetworkError: 503,
    ConflictError: 409,
    NotFoundError: 404,
    ValidationError: 400,
}


def error_response(error: TradingError) -> JSONResponse:
    """Render a taxonomy error as `{"error": {"kind", "message"}}`."""
    status = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(error, cls)),
        500,
    )
    headers = {}
    if isinstance(error, RateLimitError) and error.retry_after is not None:
        headers["Retry-After"] = f"{error.retry_after:g}"
    return JSONResponse(
        status_code=status,
        content={"error": {"kind": error.kind, "message": error.message}},
        headers=headers,
    )


def _format_uptime(started_at: datetime) -> str:
    total_seconds = int((datetime.now() - started_at).total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h{minutes}m"
    if minutes > 0:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def _require_credentials(body: CredentialsBody | None) -> Credentials:
    credentials = body.credentials() if body is not None else Credentials("", "")
    if not credentials:
        raise AuthError("API keys are required")
    return credentials


def _present(snapshot: dict[str, Any]) -> dict[str, Any]:
    # Dashboard reads `isRunning`
    return {**snapshot, "isRunning": snapshot["is_running"]}


def _controller(request: Request) -> SessionController:
    return request.app.state.controller


def _client(request: Request) -> UpbitClient:
    return request.app.state.client


async def _resolve_market(
    controller: SessionController, user_id: str, market: str | None
) -> str | None:
    """Market named by the caller, or the user's only live session."""
    if market:
        return validate_market(market)
    sessions = await controller.sessions_for(user_id)
    if not sessions:
        return None
    if len(sessions) > 1:
        markets = ", ".join(sorted(s.market for s in sessions))
        raise ValidationError(f"market is required when several sessions are running ({markets})")
    return sessions[0].market


router = APIRouter(prefix="/api")


@router.post("/trading/start")
async def start_trading(request: Request, body: StartRequest) -> dict[str, Any]:
    credentials = _require_credentials(body)
    strategy, risk, interval, test_mode = body.resolve()
    snapshot = await _controller(request).start(
        credentials.user_id,
        body.market,
        credentials,
        strategy=strategy,
        risk=risk,
        interval=interval,
        test_mode=test_mode,
    )
    return {"status": _present(snapshot)}


@router.post("/trading/stop")
async def stop_trading(request: Request, body: SessionRequest) -> dict[str, Any]:
    credentials = _require_credentials(body)
    controller = _controller(request)
    market = await _resolve_market(controller, credentials.user_id, body.market)
    if market is None:
        raise NotFoundError("No running trading session")
    snapshot = await controller.stop(credentials.user_id, market)
    return {"status": _present(snapshot)}


@router.get("/trading/status")
async def trading_status(
    request: Request,
    body: Annotated[SessionRequest | None, Body()] = None,
    market: Annotated[str | None, Query()] = None,
) -> dict[str, Any]:
    credentials = _require_credentials(body)
    controller = _controller(request)
    market = await _resolve_market(controller, credentials.user_id, market or (body.market if body else None))
    if market is None:
        return {"status": None}
    try:
        snapshot = await controller.status(credentials.user_id, market)
    except NotFoundError:
        return {"status": None}
    return {"status": _present(snapshot)}


@router.post("/accounts")
async def accounts(request: Request, body: CredentialsBody) -> Any:
    return await _client(request).get_accounts(_require_credentials(body))


@router.post("/ticker")
async def ticker(request: Request, body: TickerRequest) -> Any:
    market = validate_market(body.market)
    return await _client(request).get_ticker(market)


@router.get("/markets")
async def markets(request: Request) -> Any:
    return await _client(request).get_markets()


@router.post("/candles/{unit}")
async def candles(request: Request, unit: str, body: CandlesRequest) -> Any:
    market = validate_market(body.market)
    if unit == "minutes":
        granularity = parse_candle_unit(f"minutes/{body.minutes}")
    elif unit == "days":
        granularity = CandleUnit.DAY
    else:
        raise ValidationError(f"Unsupported candle unit {unit!r} (use minutes or days)")
    return await _client(request).get_candles(market, granularity, body.count)


@router.post("/orders")
async def place_order(request: Request, body: OrderRequest) -> Any:
    credentials = _require_credentials(body)
    order = Order.from_wire(body.order)
    return await _client(request).place_order(order, credentials)


@router.post("/orders/chance")
async def order_chance(request: Request, body: OrderChanceRequest) -> Any:
    credentials = _require_credentials(body)
    market = validate_market(body.market)
    return await _client(request).get_order_chance(market, credentials)


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    started_at: datetime = request.app.state.started_at
    return {
        "status": "ok",
        "version": __version__,
        "uptime": _format_uptime(started_at),
        "started_at": started_at.isoformat(),
        "sessions": _controller(request).summary(),
    }


def create_app(config: Config | None = None, client: UpbitClient | None = None) -> FastAPI:
    """Build the application.

    Args:
        config: Application configuration (defaults to environment)
        client: Exchange client to use instead of one built from config
    """
    config = config or Config.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = client is None
        exchange = client or UpbitClient(config.upbit.base_url, config.upbit.timeout_seconds)
        app.state.client = exchange
        app.state.controller = SessionController(exchange, config.engine)
        app.state.started_at = datetime.now()
        logger.info(f"Control surface ready (exchange: {config.upbit.base_url})")
        try:
            yield
        finally:
            await app.state.controller.shutdown()
            if owned:
                await exchange.aclose()
            logger.info("Control surface stopped")

    app = FastAPI(title="Upbit Auto Trader", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(TradingError)
    async def handle_trading_error(request: Request, exc: TradingError) -> JSONResponse:
        level = logging.ERROR if isinstance(exc, UpstreamError | NetworkError) else logging.INFO
        logger.log(level, f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return error_response(ValidationError(details or "Invalid request"))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"{request.method} {request.url.path} failed")
        return JSONResponse(
            status_code=500,
            content={"error": {"kind": "InternalError", "message": "Internal server error"}},
        )

    app.include_router(router)
    return app
