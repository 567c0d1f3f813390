"""Signal evaluator: combine indicator votes into one decision."""

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any

from upbit_autotrader.core.errors import ValidationError
from upbit_autotrader.core.types import Signal
from upbit_autotrader.data.models import Candle
from upbit_autotrader.strategy.signals.base import SignalSource
from upbit_autotrader.strategy.signals.bollinger import BollingerBandSignal
from upbit_autotrader.strategy.signals.ma_crossover import MACrossoverSignal
from upbit_autotrader.strategy.signals.rsi import RSISignal
from upbit_autotrader.strategy.signals.types import Decision, IndicatorResult

logger = logging.getLogger(__name__)

LOOKBACK_BUFFER = 10


@dataclass(frozen=True)
class StrategyConfig:
    """Which indicators vote, how votes combine, and indicator parameters."""

    use_ma: bool = True
    use_rsi: bool = True
    use_bollinger: bool = True
    require_confirmation: bool = False
    ma_short_period: int = 20
    ma_long_period: int = 50
    rsi_period: int = 14
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    bb_period: int = 20
    bb_std_dev: float = 2.0

    def validate(self) -> "StrategyConfig":
        """Raises ValidationError when parameters are inconsistent."""
        for name in ("ma_short_period", "ma_long_period", "rsi_period", "bb_period"):
            if getattr(self, name) < 2:
                raise ValidationError(f"{name} must be at least 2, got {getattr(self, name)}")
        if self.ma_short_period >= self.ma_long_period:
            raise ValidationError(
                f"ma_short_period ({self.ma_short_period}) must be below "
                f"ma_long_period ({self.ma_long_period})"
            )
        if not 0 <= self.rsi_oversold < self.rsi_overbought <= 100:
            raise ValidationError(
                f"RSI thresholds must satisfy 0 <= oversold < overbought <= 100, "
                f"got {self.rsi_oversold}/{self.rsi_overbought}"
            )
        if self.bb_std_dev <= 0:
            raise ValidationError(f"bb_std_dev must be positive, got {self.bb_std_dev}")
        return self

    @property
    def lookback(self) -> int:
        """Candles to keep so every indicator has full history."""
        return (
            max(self.ma_long_period + 1, self.rsi_period + 1, self.bb_period) + LOOKBACK_BUFFER
        )

    def sources(self) -> list[SignalSource]:
        return [
            MACrossoverSignal(self.ma_short_period, self.ma_long_period, enabled=self.use_ma),
            RSISignal(
                self.rsi_period, self.rsi_oversold, self.rsi_overbought, enabled=self.use_rsi
            ),
            BollingerBandSignal(self.bb_period, self.bb_std_dev, enabled=self.use_bollinger),
        ]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def combine(results: Sequence[IndicatorResult], require_confirmation: bool) -> tuple[Signal, str]:
    """Combine enabled indicator votes.

    With confirmation every vote must agree on BUY or SELL. Without it the
    plurality wins and any tie at the top is a HOLD.
    """
    if not results:
        return Signal.HOLD, "no indicators enabled"

    votes = [r.signal for r in results]
    if require_confirmation:
        first = votes[0]
        if first != Signal.HOLD and all(v == first for v in votes):
            return first, f"all {len(votes)} indicators agree on {first.value}"
        return Signal.HOLD, "indicators do not all agree"

    counts = Counter(votes).most_common()
    top_signal, top_count = counts[0]
    if len(counts) > 1 and counts[1][1] == top_count:
        return Signal.HOLD, "tied vote"
    return top_signal, f"{top_count}/{len(votes)} indicators vote {top_signal.value}"


def evaluate(candles: Sequence[Candle], config: StrategyConfig) -> Decision:
    """Evaluate candles (oldest first) into a combined decision.

    Pure: the same candles and config always give the same decision.
    """
    closes = [float(c.close) for c in candles]
    results = tuple(source.evaluate(closes) for source in config.sources() if source.enabled)
    signal, reason = combine(results, config.require_confirmation)
    logger.debug(f"Evaluated {len(closes)} candles -> {signal.value} ({reason})")
    return Decision(signal=signal, indicators=results, reason=reason)
