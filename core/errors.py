"""
Error Types

Every failure the service distinguishes has its own exception class so callers
can decide what to contain and what to surface:

    PricePulseError
    ├── UpstreamError           - anything that went wrong talking to Binance
    │   ├── NetworkError        - transport failure or non-200 status
    │   ├── DecodeError         - body is not the JSON shape we expect
    │   └── UpstreamTimeoutError  (also a builtin TimeoutError)
    ├── UnknownInterval         - label not in the interval table (also a ValueError)
    └── ClientDisconnected      - a subscriber connection is gone

The refresh cycle contains UpstreamError per symbol; the /history endpoint
turns these into HTTP errors.
"""


class PricePulseError(Exception):
    """Base class for all service errors."""


class UpstreamError(PricePulseError):
    """Base class for failures talking to the exchange API."""


class NetworkError(UpstreamError):
    """Transport/connectivity failure, or an unexpected HTTP status."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.status = status


class DecodeError(UpstreamError):
    """Upstream payload could not be parsed into the expected shape."""


class UpstreamTimeoutError(UpstreamError, TimeoutError):
    """Request did not complete before its deadline."""


class UnknownInterval(PricePulseError, ValueError):
    """Requested interval label has no entry in the interval table."""

    def __init__(self, label: str):
        super().__init__(f"Unknown interval: '{label}'")
        self.label = label


class ClientDisconnected(PricePulseError):
    """Subscriber connection is broken."""
