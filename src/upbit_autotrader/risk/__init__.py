"""Risk management."""

from upbit_autotrader.risk.manager import RiskConfig, RiskManager
from upbit_autotrader.risk.rules import ExitRule, StopLossRule, TakeProfitRule

__all__ = ["ExitRule", "RiskConfig", "RiskManager", "StopLossRule", "TakeProfitRule"]
