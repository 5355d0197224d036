"""
Test Suite

Contains unit tests for the backend system.

Structure:
- tests/unit/: Tests for individual components (client parsing, snapshot store,
  registry, aggregator, scheduler) and for the HTTP/WebSocket surface.
  Upstream calls are always stubbed; no test needs network access.

Uses pytest with pytest-asyncio for testing async functionality.
"""
