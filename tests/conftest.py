"""Shared pytest fixtures for marketcache tests."""

from datetime import date
from unittest.mock import Mock

import pytest
from loguru import logger

from marketcache.cache import TTLCache
from marketcache.service import MarketDataService
from marketcache.synthetic import SyntheticDataGenerator
from marketcache.upstream import UpstreamCaller


@pytest.fixture(autouse=True)
def disable_loguru():
    """Disable loguru output during tests for cleaner output."""
    logger.disable("marketcache")
    yield
    logger.enable("marketcache")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    """Provider double with no data configured; tests set return values."""
    mock = Mock()
    mock.fetch_quote.return_value = None
    mock.fetch_historical.return_value = []
    mock.search_symbols.return_value = []
    return mock


@pytest.fixture
def service(provider, clock):
    svc = MarketDataService(
        provider,
        cache=TTLCache(ttl_seconds=300, clock=clock),
        upstream=UpstreamCaller(timeout=2.0, max_workers=2),
        generator=SyntheticDataGenerator(today=date(2024, 6, 14)),
    )
    yield svc
    svc.close()
