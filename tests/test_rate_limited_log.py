"""
Tests for the rate-limited logging helper.
"""
from unittest.mock import MagicMock

from cachetools import TTLCache

from x402_playground import _rate_limited_log
from x402_playground._rate_limited_log import rate_limited_log


class TestRateLimitedLog:
    """Tests for the rate-limited logging implementation."""

    def test_duplicate_suppressed(self):
        mock_logger = MagicMock()

        assert rate_limited_log("Agent down", logger_instance=mock_logger) is True
        assert rate_limited_log("Agent down", logger_instance=mock_logger) is False
        mock_logger.warning.assert_called_once_with("Agent down")

    def test_levels_are_separate_keys(self):
        mock_logger = MagicMock()

        rate_limited_log("Agent down", level="warning", logger_instance=mock_logger)
        rate_limited_log("Agent down", level="error", logger_instance=mock_logger)

        mock_logger.warning.assert_called_once_with("Agent down")
        mock_logger.error.assert_called_once_with("Agent down")

    def test_different_messages(self):
        mock_logger = MagicMock()

        rate_limited_log("first", logger_instance=mock_logger)
        rate_limited_log("second", logger_instance=mock_logger)

        assert mock_logger.warning.call_count == 2

    def test_intervals_have_their_own_cache(self):
        mock_logger = MagicMock()

        rate_limited_log("Agent down", interval=60, logger_instance=mock_logger)
        assert rate_limited_log("Agent down", interval=5, logger_instance=mock_logger) is True
        assert mock_logger.warning.call_count == 2

    def test_message_expires(self):
        now = [1000.0]
        _rate_limited_log._caches[60] = TTLCache(maxsize=100, ttl=60, timer=lambda: now[0])
        mock_logger = MagicMock()

        rate_limited_log("Agent down", logger_instance=mock_logger)
        now[0] += 30
        assert rate_limited_log("Agent down", logger_instance=mock_logger) is False
        now[0] += 31
        assert rate_limited_log("Agent down", logger_instance=mock_logger) is True
        assert mock_logger.warning.call_count == 2

    def test_reset(self):
        mock_logger = MagicMock()

        rate_limited_log("Agent down", logger_instance=mock_logger)
        _rate_limited_log.reset()
        assert rate_limited_log("Agent down", logger_instance=mock_logger) is True

    def test_default_logger(self, caplog):
        rate_limited_log("RPC flapping", level="error")
        assert "RPC flapping" in caplog.text
