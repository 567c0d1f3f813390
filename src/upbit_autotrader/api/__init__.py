"""HTTP control surface."""

from upbit_autotrader.api.app import create_app

__all__ = ["create_app"]
