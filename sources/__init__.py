"""
Price Source Connectors Package

Each provider has its own subfolder with:
- api_client.py: REST API logic (aiohttp) and payload normalization
- __init__.py: Source class implementing SourceAdapter

Registered sources:
- cryptocompare: OHLCV bars at hour/day granularity (primary provider)
- coingecko: close-only market chart quotes (secondary provider)
"""
