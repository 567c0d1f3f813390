"""Configuration management for the trading engine."""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path

from dotenv import load_dotenv

from upbit_autotrader.core.types import CandleUnit

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class UpbitConfig:
    """Exchange connection settings."""

    base_url: str = "https://api.upbit.com/v1"
    timeout_seconds: float = 30.0


@dataclass
class EngineConfig:
    """Session scheduling and risk policy defaults."""

    interval_seconds: float = 60.0
    min_interval_seconds: float = 10.0  # Exchange rate limits
    min_order_amount: Decimal = Decimal("5000")  # Exchange minimum notional (KRW)
    candle_unit: CandleUnit = CandleUnit.MINUTE_1
    test_mode: bool = True
    allow_pyramiding: bool = False
    max_retry_wait_seconds: float = 10.0


@dataclass
class ServerConfig:
    """HTTP control surface settings."""

    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class LogConfig:
    """Logging settings."""

    level: str = "INFO"
    log_to_file: bool = False


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    try:
        value = float(os.getenv(name, str(default)))
    except ValueError:
        return default
    return max(value, minimum)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class Config:
    """Main configuration container."""

    upbit: UpbitConfig = field(default_factory=UpbitConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log: LogConfig = field(default_factory=LogConfig)

    @classmethod
    def from_env(cls, env_path: Path | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            env_path: Path to .env file (optional)

        Returns:
            Config instance populated from environment
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        upbit = UpbitConfig(
            base_url=os.getenv("UPBIT_API_URL", "https://api.upbit.com/v1").rstrip("/"),
            timeout_seconds=_env_float("UPBIT_TIMEOUT_SECONDS", 30.0, minimum=1.0),
        )

        min_interval = _env_float("TRADING_MIN_INTERVAL_SECONDS", 10.0, minimum=1.0)
        interval = max(_env_float("TRADING_INTERVAL_SECONDS", 60.0), min_interval)

        try:
            min_order_amount = Decimal(os.getenv("TRADING_MIN_ORDER_AMOUNT", "5000"))
        except InvalidOperation:
            min_order_amount = Decimal("5000")
        if min_order_amount < 0:
            min_order_amount = Decimal("0")

        # Unknown candle units fall back to one-minute candles
        try:
            candle_unit = CandleUnit(os.getenv("TRADING_CANDLE_UNIT", "minutes/1").strip())
        except ValueError:
            candle_unit = CandleUnit.MINUTE_1

        engine = EngineConfig(
            interval_seconds=interval,
            min_interval_seconds=min_interval,
            min_order_amount=min_order_amount,
            candle_unit=candle_unit,
            test_mode=_env_bool("TRADING_TEST_MODE", True),
            allow_pyramiding=_env_bool("TRADING_ALLOW_PYRAMIDING", False),
            max_retry_wait_seconds=_env_float("TRADING_MAX_RETRY_WAIT_SECONDS", 10.0),
        )

        try:
            port = int(os.getenv("PORT", "5000"))
        except ValueError:
            port = 5000

        origins_raw = os.getenv("CORS_ORIGINS", "*")
        server = ServerConfig(
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            cors_origins=[o.strip() for o in origins_raw.split(",") if o.strip()] or ["*"],
        )

        log = LogConfig(
            level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            log_to_file=_env_bool("LOG_TO_FILE", False),
        )

        return cls(upbit=upbit, engine=engine, server=server, log=log)
