"""Shared fixtures for the test-suite."""

import pytest

from stackoverflow_mcp.config import Config, Credentials, RateLimitConfig


@pytest.fixture
def read_only_config() -> Config:
    return Config(credentials=Credentials(api_key="test-key"))


@pytest.fixture
def write_config() -> Config:
    return Config(credentials=Credentials(api_key="test-key", access_token="test-token"))


@pytest.fixture
def fast_rate_limit() -> RateLimitConfig:
    return RateLimitConfig(max_requests_per_window=30, window_sec=60, backoff_sec=0, max_retries=3)
