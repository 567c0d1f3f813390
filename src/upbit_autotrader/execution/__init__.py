"""Order models and executors.

Executors live in `upbit_autotrader.execution.executor`; they depend on the
exchange client, which itself uses the models exported here.
"""

from upbit_autotrader.execution.models import (
    AccountBalance,
    Balance,
    Fill,
    Order,
    Position,
    Rejection,
)

__all__ = ["AccountBalance", "Balance", "Fill", "Order", "Position", "Rejection"]
