"""Tests for application settings."""

from tvweather.config import Settings
from tvweather.protocol.constants import DEFAULT_TIMEOUT, MAX_TIMEOUT


class TestRequestTimeout:
    def test_default(self):
        assert Settings(_env_file=None).request_timeout == DEFAULT_TIMEOUT

    def test_clamped_to_bounds(self):
        assert Settings(_env_file=None, request_timeout=1).request_timeout == DEFAULT_TIMEOUT
        assert Settings(_env_file=None, request_timeout=30).request_timeout == MAX_TIMEOUT
        assert Settings(_env_file=None, request_timeout=7.5).request_timeout == 7.5
