"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and kline window helpers
"""

from core.utils.time import current_utc_datetime, datetime_to_millis, history_window

__all__ = ["current_utc_datetime", "datetime_to_millis", "history_window"]
