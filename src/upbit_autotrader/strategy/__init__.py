"""Signal evaluation."""

from upbit_autotrader.strategy.evaluator import StrategyConfig, evaluate

__all__ = ["StrategyConfig", "evaluate"]
