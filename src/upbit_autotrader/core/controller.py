"""Session controller: lifecycle and periodic trading cycles.

Each running session owns one scheduler task. Every tick the scheduler
starts a cycle as its own task unless the previous cycle is still
running; such ticks are skipped and recorded, never queued.
"""

import asyncio
import contextlib
import logging
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, TypeVar

from upbit_autotrader.config import EngineConfig
from upbit_autotrader.core.errors import (
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    TradingError,
    ValidationError,
)
from upbit_autotrader.core.session import TradingSession
from upbit_autotrader.core.types import SessionStatus, Signal
from upbit_autotrader.data.feed import MAX_CANDLE_COUNT, MarketDataFeed
from upbit_autotrader.data.models import validate_market
from upbit_autotrader.exchange.client import UpbitClient
from upbit_autotrader.exchange.signing import Credentials
from upbit_autotrader.execution.executor import DryRunExecutor, Executor, LiveExecutor
from upbit_autotrader.execution.models import AccountBalance, Balance, Order, Rejection
from upbit_autotrader.risk.manager import RiskConfig, RiskManager
from upbit_autotrader.strategy.evaluator import StrategyConfig, evaluate
from upbit_autotrader.strategy.signals.types import Decision

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionKey = tuple[str, str]


class SessionController:
    """Registry of trading sessions, at most one per (user, market)."""

    def __init__(
        self,
        client: UpbitClient,
        config: EngineConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the controller.

        Args:
            client: Exchange client shared by every session
            config: Scheduling and risk defaults
            sleep: Coroutine used for retry back-off
        """
        self._client = client
        self._config = config or EngineConfig()
        self._sleep = sleep
        self._feed = MarketDataFeed(client)
        self._risk = RiskManager(self._config.min_order_amount, self._config.allow_pyramiding)
        self._live_executor: Executor = LiveExecutor(client)
        self._dry_run_executor: Executor = DryRunExecutor()

        self._lock = asyncio.Lock()
        self._sessions: dict[SessionKey, TradingSession] = {}
        self._stopped: dict[SessionKey, dict[str, Any]] = {}

    @property
    def feed(self) -> MarketDataFeed:
        return self._feed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        user_id: str,
        market: str,
        credentials: Credentials,
        strategy: StrategyConfig | None = None,
        risk: RiskConfig | None = None,
        interval: float | None = None,
        test_mode: bool | None = None,
    ) -> dict[str, Any]:
        """Create a RUNNING session and schedule its first cycle immediately.

        Raises:
            ValidationError: Bad market, configuration or missing credentials
            ConflictError: A session already exists for (user_id, market)
        """
        validate_market(market)
        if not credentials:
            raise ValidationError("accessKey and secretKey are required")
        strategy = (strategy or StrategyConfig()).validate()
        risk = risk or RiskConfig()

        if interval is None:
            interval = self._config.interval_seconds
        if interval <= 0:
            raise ValidationError(f"interval must be positive, got {interval}")
        interval = max(float(interval), self._config.min_interval_seconds)

        key = (user_id, market)
        async with self._lock:
            existing = self._sessions.get(key)
            if existing is not None:
                raise ConflictError(
                    f"Session for {market} already exists (status {existing.status.value})"
                )

            session = TradingSession(
                user_id=user_id,
                market=market,
                credentials=credentials,
                strategy=strategy,
                risk=risk,
                interval=interval,
                test_mode=self._config.test_mode if test_mode is None else test_mode,
            )
            self._sessions[key] = session
            self._stopped.pop(key, None)
            session.scheduler_task = asyncio.create_task(self._schedule(session))

        mode = "DRY RUN" if session.test_mode else "LIVE"
        logger.info(
            f"Started session {session.id} for user {user_id} on {market} "
            f"[{mode}] every {interval:g}s"
        )
        return session.snapshot()

    async def stop(self, user_id: str, market: str) -> dict[str, Any]:
        """Stop a session, waiting for an in-flight cycle to finish.

        Stopping an already stopped session returns its last snapshot.

        Raises:
            NotFoundError: No session was ever started for (user_id, market)
        """
        key = (user_id, market)
        async with self._lock:
            session = self._sessions.get(key)
            if session is None:
                if key in self._stopped:
                    return self._stopped[key]
                raise NotFoundError(f"No trading session for {market}")

        await self._halt(session)

        snapshot = session.snapshot()
        async with self._lock:
            if self._sessions.get(key) is session:
                del self._sessions[key]
            self._stopped[key] = snapshot

        logger.info(f"Stopped session {session.id} for user {user_id} on {market}")
        return snapshot

    async def status(self, user_id: str, market: str) -> dict[str, Any]:
        """Snapshot of the live session, or of the last stopped one.

        Raises:
            NotFoundError: No session was ever started for (user_id, market)
        """
        key = (user_id, market)
        async with self._lock:
            session = self._sessions.get(key)
            if session is not None:
                return session.snapshot()
            if key in self._stopped:
                return self._stopped[key]
        raise NotFoundError(f"No trading session for {market}")

    async def sessions_for(self, user_id: str) -> list[TradingSession]:
        """Live sessions of one user."""
        async with self._lock:
            return [s for (uid, _), s in self._sessions.items() if uid == user_id]

    async def shutdown(self) -> None:
        """Force-stop every live session."""
        async with self._lock:
            sessions = list(self._sessions.values())

        for session in sessions:
            await self._halt(session)

        async with self._lock:
            for session in sessions:
                self._sessions.pop(session.key, None)
                self._stopped[session.key] = session.snapshot()

        if sessions:
            logger.info(f"Shut down {len(sessions)} trading session(s)")

    def summary(self) -> dict[str, Any]:
        """Session counts by status."""
        counts = Counter(s.status.value for s in self._sessions.values())
        return {
            "total": len(self._sessions),
            "running": counts.get(SessionStatus.RUNNING.value, 0),
            "error": counts.get(SessionStatus.ERROR.value, 0),
            "stopped": len(self._stopped),
        }

    async def _halt(self, session: TradingSession) -> None:
        task = session.scheduler_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        # In-flight exchange calls are not interrupted
        if session.cycle_task is not None and not session.cycle_task.done():
            await session.cycle_task

        session.status = SessionStatus.STOPPED
        session.stopped_at = datetime.now(UTC)
        session.drop_credentials()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def _schedule(self, session: TradingSession) -> None:
        while session.is_running:
            if session.cycle_task is not None and not session.cycle_task.done():
                logger.warning(f"{session.market}: previous cycle still running, skipping tick")
                session.record_skip("previous cycle still running")
            else:
                session.cycle_task = asyncio.create_task(self._run_cycle(session))
            await asyncio.sleep(session.interval)

    async def _run_cycle(self, session: TradingSession) -> None:
        """Run one cycle and turn its failure into session state."""
        try:
            await self.run_cycle(session)
        except AuthError as e:
            logger.error(f"{session.market}: authentication failed, session halted: {e.message}")
            session.record_error(e.kind, e.message)
            session.status = SessionStatus.ERROR
        except TradingError as e:
            # Upstream failures and order submission errors that are not retried
            logger.warning(f"{session.market}: cycle failed ({e.kind}): {e.message}")
            session.record_error(e.kind, e.message)
        except Exception as e:
            logger.exception(f"{session.market}: unexpected error, session halted")
            session.record_error(type(e).__name__, str(e))
            session.status = SessionStatus.ERROR

    async def run_cycle(self, session: TradingSession) -> None:
        """One trading cycle.

        Fetch data, check forced exits, evaluate, authorize, submit.
        """
        fetched = await self._with_retry(session, "market data", lambda: self._fetch_market(session))
        if fetched is None:
            return
        candles, ticker = fetched

        window = session.window.merge(candles)
        price = ticker.trade_price
        session.last_price = price

        balance = None
        exit_order = self._risk.check_exit(session.open_position, price, session.risk)
        if exit_order is not None and not session.test_mode:
            # Size the exit from what the account actually holds
            balance = await self._load_balance(session)
            if balance is None:
                return
            exit_order = self._risk.check_exit(session.open_position, price, session.risk)

        if exit_order is not None:
            session.last_decision = Decision(Signal.SELL, (), exit_order.reason)
            if await self._submit(session, exit_order, price):
                self._finish_cycle(session)
            return

        decision = evaluate(window, session.strategy)
        session.last_decision = decision

        needs_balance = decision.signal == Signal.BUY or (
            decision.signal == Signal.SELL and not session.test_mode
        )
        if balance is None and needs_balance:
            balance = await self._load_balance(session)
            if balance is None:
                return

        result = self._risk.authorize(
            decision, balance, session.risk, session.open_position, session.market
        )
        if isinstance(result, Rejection):
            if result.signal != Signal.HOLD:
                logger.info(f"{session.market}: {result.signal.value} rejected: {result.reason}")
                session.record_rejection(result)
        elif not await self._submit(session, result, price):
            return

        self._finish_cycle(session)

    def _finish_cycle(self, session: TradingSession) -> None:
        session.cycles_run += 1
        session.last_cycle_at = datetime.now(UTC)

    async def _fetch_market(self, session: TradingSession):
        count = min(session.window.maxlen, MAX_CANDLE_COUNT)
        candles = await self._feed.candles(session.market, self._config.candle_unit, count)
        ticker = await self._feed.ticker(session.market)
        return candles, ticker

    async def _fetch_balance(self, session: TradingSession) -> AccountBalance:
        raw = await self._client.get_accounts(session.credentials)
        balances = [Balance.from_exchange(item) for item in raw]
        return AccountBalance.for_market(session.market, balances)

    async def _load_balance(self, session: TradingSession) -> AccountBalance | None:
        """Fetch balances; live sessions reconcile their position from them.

        Test-mode sessions read real balances for sizing only.
        """
        balance = await self._with_retry(session, "balances", lambda: self._fetch_balance(session))
        if balance is not None and not session.test_mode:
            session.reconcile(balance)
        return balance

    async def _with_retry(
        self,
        session: TradingSession,
        what: str,
        call: Callable[[], Awaitable[T]],
        retry_on: tuple[type[TradingError], ...] = (RateLimitError, NetworkError),
    ) -> T | None:
        """Call, retrying once on the given failures.

        Returns None (and records a skipped cycle) when the retry fails too,
        or when the exchange asks for a longer wait than the configured cap.
        """
        try:
            return await call()
        except retry_on as e:
            wait = self._retry_wait(e)
            if wait is None:
                logger.warning(
                    f"{session.market}: {what} failed ({e.kind}), retry-after "
                    f"{e.retry_after:g}s exceeds cap, skipping cycle"
                )
                session.record_skip(f"{e.kind}: {e.message}")
                return None
            logger.warning(f"{session.market}: {what} failed ({e.kind}), retrying in {wait:g}s")
            await self._sleep(wait)

        try:
            return await call()
        except retry_on as e:
            logger.warning(f"{session.market}: {what} failed again ({e.kind}), skipping cycle")
            session.record_skip(f"{e.kind}: {e.message}")
            return None

    def _retry_wait(self, error: TradingError) -> float | None:
        """Seconds to wait before retrying, None if above the cap."""
        retry_after = getattr(error, "retry_after", None)
        if retry_after is None:
            return 1.0
        if retry_after > self._config.max_retry_wait_seconds:
            return None
        return retry_after

    async def _submit(self, session: TradingSession, order: Order, price: Decimal) -> bool:
        """Submit an order and record its fill.

        A rate-limited order was refused by the exchange and is retried once.
        Other failures propagate; a network error may hide an order that did
        reach the exchange.

        Returns:
            False when the cycle was skipped instead
        """
        executor = self._dry_run_executor if session.test_mode else self._live_executor
        fill = await self._with_retry(
            session,
            f"{order.side.value} order",
            lambda: executor.submit(order, session.credentials, price),
            retry_on=(RateLimitError,),
        )
        if fill is None:
            return False
        session.record_order(order, fill)
        return True
