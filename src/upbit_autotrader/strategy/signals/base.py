"""Base class for indicator signal sources."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from upbit_autotrader.core.types import Signal
from upbit_autotrader.strategy.signals.types import IndicatorResult

logger = logging.getLogger(__name__)


class SignalSource(ABC):
    """Base class for indicator signal sources.

    Each signal source:
    1. Is responsible for a single indicator
    2. Reads only the closes it is given and keeps no state between calls
    3. Votes HOLD when there is not enough history

    Subclasses must implement:
    - min_history: Number of closes needed for a vote
    - _compute(): Vote and indicator values from the closes
    """

    def __init__(self, name: str, enabled: bool = True) -> None:
        self._name = name
        self._enabled = enabled

    @property
    def name(self) -> str:
        """Signal source name."""
        return self._name

    @property
    def enabled(self) -> bool:
        """Whether source takes part in the vote."""
        return self._enabled

    @property
    @abstractmethod
    def min_history(self) -> int:
        """Closes required before the source can vote."""
        ...

    def evaluate(self, closes: Sequence[float]) -> IndicatorResult:
        """Vote on the given chronological closes."""
        if len(closes) < self.min_history:
            return IndicatorResult(self._name, Signal.HOLD, {})

        signal, values = self._compute(closes)
        if signal is None:
            return IndicatorResult(self._name, Signal.HOLD, values)
        return IndicatorResult(self._name, signal, values)

    @abstractmethod
    def _compute(
        self, closes: Sequence[float]
    ) -> tuple[Signal | None, dict[str, float | None]]:
        """Compute the vote.

        Args:
            closes: Chronological closes, at least min_history long

        Returns:
            (signal, values); signal None when an indicator value is missing
        """
        ...
