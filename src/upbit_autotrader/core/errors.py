"""Error taxonomy shared by the client, the session controller and the API."""


class TradingError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        """Taxonomy name reported to API callers."""
        return type(self).__name__


class AuthError(TradingError):
    """Credentials rejected by the exchange (401/403)."""


class RateLimitError(TradingError):
    """Exchange rate limit hit (429)."""

    def __init__(self, message: str = "", retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamError(TradingError):
    """Any other non-2xx exchange response."""

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(TradingError):
    """Transport failure before a response was received."""


class ConflictError(TradingError):
    """A session already exists for the (user, market) pair."""


class NotFoundError(TradingError):
    """No session exists for the (user, market) pair."""


class ValidationError(TradingError):
    """Malformed input: order, market, granularity or configuration."""
