"""Per-session container wiring the registry, selection and refresher."""
from __future__ import annotations

from typing import Optional

from rate_engine.config import Config, load_config
from rate_engine.currency.conversion import ConversionEngine
from rate_engine.currency.formatting import AmountFormatter
from rate_engine.currency.refresher import RateRefresher
from rate_engine.currency.registry import CurrencyRegistry
from rate_engine.currency.selection import SelectionState
from rate_engine.providers import BaseRateSource, get_source
from rate_engine.utils.logging import get_logger


logger = get_logger(__name__)


class CurrencySession:
    """
    Owns the single rate table of one session.

    Consumers receive this object (or its parts) instead of reaching for a
    module-level global. Use it as an async context manager to run the
    periodic refresh for the lifetime of the owning view.
    """

    def __init__(
        self,
        registry: CurrencyRegistry,
        selection: SelectionState,
        refresher: RateRefresher,
    ):
        self.registry = registry
        self.selection = selection
        self.refresher = refresher
        self.engine = ConversionEngine(registry)
        self.formatter = AmountFormatter(selection)

    async def start(self) -> None:
        self.refresher.start()

    async def stop(self) -> None:
        await self.refresher.stop()

    async def __aenter__(self) -> "CurrencySession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


def create_session(
    config: Optional[Config] = None,
    source: Optional[BaseRateSource] = None,
) -> CurrencySession:
    """Build a session from configuration, seeded with the built-in currencies."""
    cfg = config or load_config()

    registry = CurrencyRegistry(base_code=cfg.base_currency)
    selection = SelectionState(registry, default_code=cfg.default_primary)
    refresher = RateRefresher(
        registry,
        source or get_source(cfg.rate_source, cfg),
        interval=cfg.refresh_interval,
        stale_after=cfg.stale_after,
        initial_delay=cfg.initial_delay,
    )
    logger.info(
        f"Created currency session with {len(registry)} currencies "
        f"(source={refresher.source.NAME}, interval={refresher.interval}s)"
    )
    return CurrencySession(registry, selection, refresher)
