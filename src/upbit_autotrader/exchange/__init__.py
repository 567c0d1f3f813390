"""Exchange REST access."""

from upbit_autotrader.exchange.client import UpbitClient
from upbit_autotrader.exchange.signing import Credentials, auth_headers, build_query_string, sign

__all__ = ["Credentials", "UpbitClient", "auth_headers", "build_query_string", "sign"]
