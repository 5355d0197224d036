"""
Data Schemas

Pydantic models for everything that crosses a component boundary.

Models:
    - PriceQuote: 24h ticker for one symbol, values kept as the exchange's decimal text
    - IntervalSpec: Lookback window and sample count for one history interval
    - CoinState: Merged per-symbol record that clients receive
    - CycleReport: Outcome of one refresh cycle

Key Principle:
    Prices, volumes and percent changes coming from the exchange are decimal
    strings. We pass them through untouched so clients see exactly what the
    exchange reported; only the history series is converted to floats (it is
    plotted, not displayed).
"""

from datetime import datetime, timedelta
from typing import List
from pydantic import BaseModel, Field, field_validator, ConfigDict


# ============================================
# Upstream Records
# ============================================

class PriceQuote(BaseModel):
    """
    24h Ticker Data Model

    Built from the Binance `/api/v3/ticker/24hr` response. Field aliases match
    the exchange's JSON keys so the raw payload validates directly.

    Attributes:
        symbol: Ticker code without the quote asset (e.g., "BTC")
        last_price: Last traded price
        volume: 24h volume in the base asset
        price_change_percent: 24h price change in percent

    Example:
        >>> PriceQuote.model_validate(
        ...     {"symbol": "BTC", "lastPrice": "65000.10", "volume": "1234.5", "priceChangePercent": "-1.25"}
        ... )
    """

    symbol: str = Field(
        ...,
        description="Ticker code in uppercase",
        examples=["BTC", "ETH"]
    )

    last_price: str = Field(
        ...,
        alias="lastPrice",
        description="Last traded price (decimal text)"
    )

    volume: str = Field(
        ...,
        description="24h base asset volume (decimal text)"
    )

    price_change_percent: str = Field(
        ...,
        alias="priceChangePercent",
        description="24h price change percent (decimal text)"
    )

    @field_validator("symbol")
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.upper()

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class IntervalSpec(BaseModel):
    """
    History Interval Policy

    Attributes:
        label: Binance kline interval label (e.g., "5m", "1d")
        lookback: How far back the history window reaches
        limit: Maximum number of candles requested
    """

    label: str
    lookback: timedelta
    limit: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)


# ============================================
# Snapshot Record
# ============================================

class CoinState(BaseModel):
    """
    Per-Symbol Snapshot Record

    This is what subscribers receive for each symbol. A new instance replaces
    the previous one on every successful refresh; instances are never modified.

    Attributes:
        price: Last traded price (decimal text)
        volume: 24h volume (decimal text)
        change24h: 24h percent change (decimal text)
        history: Close prices, oldest first (may be empty)
        interval: Interval label the history was fetched with
    """

    price: str
    volume: str
    change24h: str
    history: List[float] = Field(default_factory=list)
    interval: str

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "price": "65000.10",
                "volume": "1234.5",
                "change24h": "-1.25",
                "history": [64800.0, 64950.5, 65000.1],
                "interval": "5m"
            }
        }
    )

    @classmethod
    def from_quote(cls, quote: PriceQuote, history: List[float], interval: str) -> "CoinState":
        return cls(
            price=quote.last_price,
            volume=quote.volume,
            change24h=quote.price_change_percent,
            history=list(history),
            interval=interval,
        )


# ============================================
# Cycle Outcome
# ============================================

class CycleReport(BaseModel):
    """
    Outcome of One Refresh Cycle

    Attributes:
        interval: Interval label the cycle fetched history with
        updated: Symbols merged into the snapshot
        failed: Symbols skipped (quote failure or deadline)
        started_at: Cycle start time (UTC)
        duration_seconds: Wall time of the fetch phase plus merge and broadcast
        delivered: Number of subscribers the snapshot was delivered to
    """

    interval: str
    updated: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)
    started_at: datetime
    duration_seconds: float = 0.0
    delivered: int = 0
