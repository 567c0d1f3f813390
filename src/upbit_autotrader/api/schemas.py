"""Request bodies for the HTTP control surface.

Field names follow the dashboard's camelCase payloads.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from upbit_autotrader.exchange.signing import Credentials
from upbit_autotrader.risk.manager import RiskConfig
from upbit_autotrader.strategy.evaluator import StrategyConfig


class CredentialsBody(BaseModel):
    """Any body that may carry an API key pair."""

    model_config = ConfigDict(extra="ignore")

    accessKey: str | None = None
    secretKey: str | None = Field(default=None, repr=False)

    def credentials(self) -> Credentials:
        return Credentials(self.accessKey or "", self.secretKey or "")


class StrategyBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    useMAStrategy: bool = True
    useRSIStrategy: bool = True
    useBollingerStrategy: bool = True
    requireConfirmation: bool = False
    maShortPeriod: int = 20
    maLongPeriod: int = 50
    rsiPeriod: int = 14
    rsiOversold: float = 30.0
    rsiOverbought: float = 70.0
    bbPeriod: int = 20
    bbStdDev: float = 2.0

    def to_config(self) -> StrategyConfig:
        return StrategyConfig(
            use_ma=self.useMAStrategy,
            use_rsi=self.useRSIStrategy,
            use_bollinger=self.useBollingerStrategy,
            require_confirmation=self.requireConfirmation,
            ma_short_period=self.maShortPeriod,
            ma_long_period=self.maLongPeriod,
            rsi_period=self.rsiPeriod,
            rsi_oversold=self.rsiOversold,
            rsi_overbought=self.rsiOverbought,
            bb_period=self.bbPeriod,
            bb_std_dev=self.bbStdDev,
        ).validate()


class RiskBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    maxOrderAmount: Decimal = Decimal("100000")
    portfolioRatio: Decimal = Decimal("0.1")
    stopLoss: Decimal = Decimal("0.05")
    takeProfit: Decimal = Decimal("0.1")

    def to_config(self) -> RiskConfig:
        return RiskConfig(
            max_order_amount=self.maxOrderAmount,
            portfolio_ratio=self.portfolioRatio,
            stop_loss_pct=self.stopLoss,
            take_profit_pct=self.takeProfit,
        )


class DashboardConfig(BaseModel):
    """Nested `config` object sent by the dashboard (interval in milliseconds)."""

    model_config = ConfigDict(extra="ignore")

    strategy: StrategyBody | None = None
    riskManagement: RiskBody | None = None
    testMode: bool | None = None
    interval: float | None = None


class StartRequest(CredentialsBody):
    market: str
    strategyConfig: StrategyBody | None = None
    riskManagement: RiskBody | None = None
    testMode: bool | None = None
    interval: float | None = None  # seconds
    config: DashboardConfig | None = None

    def resolve(self) -> tuple[StrategyConfig, RiskConfig, float | None, bool | None]:
        """Strategy, risk, interval (seconds) and test mode; top-level fields win."""
        nested = self.config or DashboardConfig()

        strategy = self.strategyConfig or nested.strategy or StrategyBody()
        risk = self.riskManagement or nested.riskManagement or RiskBody()

        interval = self.interval
        if interval is None and nested.interval is not None:
            interval = nested.interval / 1000

        test_mode = self.testMode if self.testMode is not None else nested.testMode
        return strategy.to_config(), risk.to_config(), interval, test_mode


class SessionRequest(CredentialsBody):
    """Stop and status bodies; market may be omitted."""

    market: str | None = None


class TickerRequest(CredentialsBody):
    market: str


class CandlesRequest(CredentialsBody):
    market: str
    count: int = Field(default=100, ge=1, le=200)
    minutes: int = 1


class OrderRequest(CredentialsBody):
    order: dict[str, Any]


class OrderChanceRequest(CredentialsBody):
    market: str
