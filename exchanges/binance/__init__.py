"""
Binance Connector

REST client for the Binance spot endpoints used by the refresh cycle and the
/history endpoint.
"""

from exchanges.binance.api_client import BinanceAPIClient, extract_close_prices, to_pair

__all__ = ["BinanceAPIClient", "extract_close_prices", "to_pair"]
