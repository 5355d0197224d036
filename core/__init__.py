"""
Core Package

Contains the building blocks shared by every component:
- config: Pydantic Settings loaded from the environment / .env
- logging: Central logger setup
- errors: Exception hierarchy for upstream, interval and subscriber failures
- schemas: Pydantic models (PriceQuote, CoinState, IntervalSpec, CycleReport)
- intervals: Static interval policy table
"""
