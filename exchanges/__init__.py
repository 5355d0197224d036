"""
Exchange Connectors Package

Each exchange lives in its own subfolder with an api_client.py holding the
REST logic. Only Binance spot is used.
"""
