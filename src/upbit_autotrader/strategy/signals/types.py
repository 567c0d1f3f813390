"""Signal evaluation result types."""

from dataclasses import dataclass, field
from typing import Any

from upbit_autotrader.core.types import Signal


@dataclass(frozen=True)
class IndicatorResult:
    """One indicator's vote and the values it was computed from."""

    name: str
    signal: Signal
    values: dict[str, float | None] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "signal": self.signal.value, "values": dict(self.values)}


@dataclass(frozen=True)
class Decision:
    """Combined trade signal for one evaluation."""

    signal: Signal
    indicators: tuple[IndicatorResult, ...] = ()
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "signal": self.signal.value,
            "indicators": [r.to_dict() for r in self.indicators],
            "reason": self.reason,
        }
