"""Rate source factory and exports."""
from typing import Optional

from rate_engine.config import Config

from .base import BaseRateSource, RateSnapshot
from .coingecko import CoinGeckoSource
from .composite import CompositeRateSource
from .exchange_rate_api import ExchangeRateApiSource


def get_source(source_name: str, config: Optional[Config] = None) -> BaseRateSource:
    """Get a rate source by canonical name.

    Canonical names:
    - "exchange_rate_api"
    - "coingecko"
    - "composite" (exchange_rate_api for fiat, coingecko for crypto)
    """
    if source_name == "exchange_rate_api":
        return ExchangeRateApiSource(config=config)
    if source_name == "coingecko":
        return CoinGeckoSource(config=config)
    if source_name == "composite":
        return CompositeRateSource(
            [ExchangeRateApiSource(config=config), CoinGeckoSource(config=config)]
        )
    raise ValueError(f"Unknown rate source: {source_name}")


__all__ = [
    "BaseRateSource",
    "RateSnapshot",
    "CoinGeckoSource",
    "CompositeRateSource",
    "ExchangeRateApiSource",
    "get_source",
]
