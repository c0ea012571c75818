"""Pytest configuration and fixtures."""
import asyncio
from pathlib import Path
import tempfile

import pytest
import yaml

from rate_engine.config import reset_config
from rate_engine.currency import CurrencyClass, CurrencyEntry, CurrencyRegistry
from rate_engine.providers import BaseRateSource, RateSnapshot
from rate_engine.utils.errors import DataProviderError


class FakeRateSource(BaseRateSource):
    """In-memory rate source that counts fetches and can block or fail."""

    NAME = "fake"

    def __init__(self, rates=None, changes=None, fail: bool = False, delay: float = 0.0):
        self.rates = rates if rates is not None else {"EUR": 0.9, "GBP": 0.8}
        self.changes = changes or {}
        self.fail = fail
        self.delay = delay
        self.calls = 0
        self.release = None

    async def fetch_rates(self) -> RateSnapshot:
        self.calls += 1
        if self.release is not None:
            await self.release.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise DataProviderError("upstream unavailable")
        return RateSnapshot(source=self.NAME, rates=dict(self.rates), changes=dict(self.changes))


@pytest.fixture
def temp_config_file():
    """Create a temporary config file for testing."""
    config_data = {
        'app': {
            'name': 'Test Rate Engine',
            'version': '0.1.0',
        },
        'rates': {
            'base_currency': 'USD',
            'default_primary': 'USD',
            'refresh_interval_seconds': 30,
            'stale_after_seconds': 600,
            'initial_delay_seconds': 0,
            'source': 'exchange_rate_api',
        },
        'providers': {
            'exchange_rate_api': {
                'base_url': 'https://rates.test',
                'timeout': 5,
            },
            'coingecko': {
                'base_url': 'https://coins.test',
                'timeout': 5,
                'coins': {'bitcoin': 'BTC', 'tether': 'USDT'},
            },
        },
        'logging': {
            'level': 'DEBUG',
            'format': 'text'
        }
    }

    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        yaml.dump(config_data, f)
        config_path = f.name

    yield config_path

    Path(config_path).unlink()


@pytest.fixture(autouse=True)
def clear_config():
    """Drop the global configuration between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def registry():
    """Registry seeded with the built-in currencies."""
    return CurrencyRegistry()


@pytest.fixture
def scenario_registry():
    """USD/EUR/BTC registry used by the worked conversion examples."""
    return CurrencyRegistry(
        builtins=[
            CurrencyEntry("USD", "$", "US Dollar", 1.0),
            CurrencyEntry("EUR", "€", "Euro", 0.92),
            CurrencyEntry("BTC", "₿", "Bitcoin", 0.0000153846, CurrencyClass.CRYPTO),
        ]
    )


@pytest.fixture
def fake_source():
    return FakeRateSource()


@pytest.fixture
def source_factory():
    """The fake source class, for tests that need several or a subclass."""
    return FakeRateSource
