"""
Tests for the snapshot summary printed by scripts/ws_watch.py

Run with:
    pytest tests/unit/test_ws_watch.py -v
"""

from scripts.ws_watch import summarize


class TestSummarize:

    def test_empty_snapshot(self):
        assert summarize({}) == "  (empty snapshot)"

    def test_one_line_per_coin_sorted(self):
        text = summarize({
            "ETH": {"price": "3000", "change24h": "-1.0", "history": [1.0, 2.0], "interval": "1h"},
            "BTC": {"price": "65000", "change24h": "2.5", "history": [], "interval": "5m"},
        })

        lines = text.splitlines()
        assert len(lines) == 2
        assert lines[0].strip().startswith("BTC")
        assert "history=0x5m" in lines[0]
        assert "history=2x1h" in lines[1]
