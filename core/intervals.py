"""
Interval Policy Table

Maps each supported history interval label to the lookback window and the
maximum number of candles requested for it. The window is sized so that the
limit covers it exactly (e.g. 12h of 5m candles = 144 samples).
"""

from datetime import timedelta
from typing import Dict

from core.errors import UnknownInterval
from core.schemas import IntervalSpec


INTERVALS: Dict[str, IntervalSpec] = {
    spec.label: spec
    for spec in (
        IntervalSpec(label="5m", lookback=timedelta(hours=12), limit=144),
        IntervalSpec(label="15m", lookback=timedelta(hours=36), limit=144),
        IntervalSpec(label="30m", lookback=timedelta(hours=72), limit=144),
        IntervalSpec(label="1h", lookback=timedelta(hours=144), limit=144),
        IntervalSpec(label="1d", lookback=timedelta(days=30), limit=30),
    )
}


def get_interval_spec(label: str) -> IntervalSpec:
    """
    Look up the policy for an interval label.

    Raises:
        UnknownInterval: If the label is not supported
    """
    try:
        return INTERVALS[label]
    except KeyError:
        raise UnknownInterval(label) from None


def is_supported_interval(label: str) -> bool:
    return label in INTERVALS
